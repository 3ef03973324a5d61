"""Unit tests for JWT issuance and verification."""

from __future__ import annotations

import base64
import json
from datetime import UTC, datetime

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jose import jwt as jose_jwt

from sessionguard.core.errors import SigningKeyUnavailableError
from sessionguard.core.jwt import JWTService, TokenValidationError


def _generate_keypair() -> tuple[str, str]:
    """Create a PEM-encoded RSA keypair."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )
    return private_pem, public_pem


def test_issue_and_verify_access_token(jwt_service: JWTService) -> None:
    """Issued access token includes required claims and verifies successfully."""
    token = jwt_service.issue_token(subject="user-123", token_type="access", expires_in_seconds=60)
    payload = jwt_service.verify_token(token, expected_type="access")

    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"
    assert isinstance(payload["jti"], str)
    assert isinstance(payload["iat"], int)
    assert payload["exp"] > int(datetime.now(UTC).timestamp())


def test_additional_claims_cannot_override_registered_claims(jwt_service: JWTService) -> None:
    """Extra claims are merged without clobbering sub/type/exp."""
    token = jwt_service.issue_token(
        subject="user-123",
        token_type="refresh",
        expires_in_seconds=60,
        additional_claims={"sub": "someone-else", "sid": "abc"},
    )
    payload = jwt_service.verify_token(token, expected_type="refresh")

    assert payload["sub"] == "user-123"
    assert payload["sid"] == "abc"


def test_verify_token_rejects_wrong_type(jwt_service: JWTService) -> None:
    """Token verification fails when expected token type does not match."""
    token = jwt_service.issue_token(subject="user-123", token_type="refresh", expires_in_seconds=60)

    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(token, expected_type="access")

    assert exc_info.value.code == "invalid_token"


def test_verify_token_rejects_expired(jwt_service: JWTService) -> None:
    """Expired JWT fails with token_expired code."""
    token = jwt_service.issue_token(subject="user-123", token_type="access", expires_in_seconds=-1)

    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(token, expected_type="access")

    assert exc_info.value.code == "token_expired"


def test_verify_token_rejects_tampered_token(jwt_service: JWTService) -> None:
    """Tampered token fails signature validation."""
    token = jwt_service.issue_token(subject="user-123", token_type="access", expires_in_seconds=60)
    header, payload, signature = token.split(".")
    tampered_payload = ("a" if payload[0] != "a" else "b") + payload[1:]
    tampered = ".".join([header, tampered_payload, signature])

    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(tampered, expected_type="access")

    assert exc_info.value.code == "invalid_token"


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c"])
def test_verify_token_rejects_malformed_input(jwt_service: JWTService, garbage: str) -> None:
    """Malformed strings never escape as library exceptions."""
    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(garbage, expected_type="refresh")

    assert exc_info.value.code == "invalid_token"


def test_verify_token_rejects_foreign_signing_key(jwt_service: JWTService) -> None:
    """Tokens signed by another keypair fail verification."""
    other_private, _ = _generate_keypair()
    now = int(datetime.now(UTC).timestamp())
    token = jose_jwt.encode(
        {"jti": "jti-1", "iat": now, "exp": now + 60, "sub": "user-1", "type": "refresh"},
        other_private,
        algorithm="RS256",
    )

    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(token, expected_type="refresh")

    assert exc_info.value.code == "invalid_token"


def test_verify_token_rejects_hs256_algorithm(jwt_service: JWTService) -> None:
    """Tokens with a symmetric algorithm header are refused before decoding."""
    now = int(datetime.now(UTC).timestamp())
    token = jose_jwt.encode(
        {"jti": "jti-1", "iat": now, "exp": now + 60, "sub": "user-1", "type": "refresh"},
        "shared-secret",
        algorithm="HS256",
    )

    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(token, expected_type="refresh")

    assert exc_info.value.code == "invalid_token"


@pytest.mark.parametrize(
    ("private_pem", "public_pem"),
    [("", ""), ("   ", "x"), ("not a pem", "not a pem")],
)
def test_missing_or_unparsable_keys_fail_at_construction(private_pem: str, public_pem: str) -> None:
    """Signing-key misconfiguration surfaces when the service is built."""
    with pytest.raises(SigningKeyUnavailableError) as exc_info:
        JWTService(private_key_pem=private_pem, public_key_pem=public_pem)

    assert exc_info.value.code == "signing_key_unavailable"
    assert exc_info.value.status_code == 500


def test_mismatched_key_pair_fails_at_construction() -> None:
    """A public key from a different pair is rejected."""
    private_1, _ = _generate_keypair()
    _, public_2 = _generate_keypair()

    with pytest.raises(SigningKeyUnavailableError):
        JWTService(private_key_pem=private_1, public_key_pem=public_2)


def test_non_rsa_keys_fail_at_construction() -> None:
    """Only RSA material is accepted for RS256."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode("utf-8")
    )

    with pytest.raises(SigningKeyUnavailableError):
        JWTService(private_key_pem=private_pem, public_key_pem=public_pem)


@pytest.mark.parametrize("algorithm", ["RS256é", "ＲＳ256", 256, None, ["RS256"]])
def test_verify_token_rejects_unusual_algorithm_headers(
    jwt_service: JWTService, algorithm: object
) -> None:
    """Header algorithms that are not exactly RS256 fail as invalid tokens."""
    token = jwt_service.issue_token(subject="user-123", token_type="refresh", expires_in_seconds=60)
    _, payload, signature = token.split(".")
    header = base64.urlsafe_b64encode(json.dumps({"alg": algorithm}).encode("utf-8")).rstrip(b"=")
    crafted = ".".join([header.decode("ascii"), payload, signature])

    with pytest.raises(TokenValidationError) as exc_info:
        jwt_service.verify_token(crafted, expected_type="refresh")

    assert exc_info.value.code == "invalid_token"


def test_verify_token_rejects_non_ascii_token_type(keypair: tuple[str, str]) -> None:
    """A signed token whose type claim is unexpected text is refused."""
    private_pem, public_pem = keypair
    service = JWTService(private_key_pem=private_pem, public_key_pem=public_pem)
    now = int(datetime.now(UTC).timestamp())
    token = jose_jwt.encode(
        {"jti": "jti-1", "iat": now, "exp": now + 60, "sub": "user-1", "type": "réfresh"},
        private_pem,
        algorithm="RS256",
    )

    with pytest.raises(TokenValidationError) as exc_info:
        service.verify_token(token, expected_type="refresh")

    assert exc_info.value.code == "invalid_token"
