"""JWT issuance and verification for access and refresh credentials."""

from __future__ import annotations

import base64
import hashlib
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any, Literal
from uuid import uuid4

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from sessionguard.config import get_settings
from sessionguard.core.errors import SigningKeyUnavailableError

TokenType = Literal["access", "refresh"]
JWT_ALGORITHM = "RS256"


class TokenValidationError(Exception):
    """Raised when JWT validation fails."""

    def __init__(self, detail: str, code: str) -> None:
        super().__init__(detail)
        self.detail = detail
        self.code = code


class JWTService:
    """Service for issuing and verifying RS256 JWT tokens."""

    def __init__(self, private_key_pem: str, public_key_pem: str) -> None:
        self._validate_key_pair(private_key_pem, public_key_pem)
        self._private_key_pem = private_key_pem
        self._public_key_pem = public_key_pem
        self._kid = self._calculate_kid(public_key_pem)

    def issue_token(
        self,
        subject: str,
        token_type: TokenType,
        expires_in_seconds: int,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        """Issue a signed JWT with required claims."""
        issued_at = datetime.now(UTC)
        expires_at = issued_at + timedelta(seconds=expires_in_seconds)
        payload = {
            "jti": str(uuid4()),
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "sub": subject,
            "type": token_type,
        }
        if additional_claims:
            for key, value in additional_claims.items():
                if key in payload:
                    continue
                payload[key] = value
        return jwt.encode(
            payload,
            self._private_key_pem,
            algorithm=JWT_ALGORITHM,
            headers={"kid": self._kid},
        )

    def verify_token(self, token: str, expected_type: TokenType | None = None) -> dict[str, Any]:
        """Verify token signature and required claims."""
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise TokenValidationError("Invalid token.", "invalid_token") from exc
        algorithm = header.get("alg")
        if not isinstance(algorithm, str) or algorithm != JWT_ALGORITHM:
            raise TokenValidationError("Invalid token algorithm.", "invalid_token")

        try:
            payload = jwt.decode(
                token,
                self._public_key_pem,
                algorithms=[JWT_ALGORITHM],
                options={
                    "verify_aud": False,
                    "require_jti": True,
                    "require_iat": True,
                    "require_exp": True,
                    "require_sub": True,
                },
            )
        except ExpiredSignatureError as exc:
            raise TokenValidationError("Token has expired.", "token_expired") from exc
        except JWTError as exc:
            raise TokenValidationError("Invalid token.", "invalid_token") from exc

        token_type = payload.get("type")
        if not self._is_supported_token_type(token_type):
            raise TokenValidationError("Invalid token type.", "invalid_token")
        if expected_type and token_type != expected_type:
            raise TokenValidationError("Invalid token type.", "invalid_token")
        return payload

    @staticmethod
    def _validate_key_pair(private_key_pem: str, public_key_pem: str) -> None:
        """Fail fast when signing material is absent or not an RSA pair."""
        if not private_key_pem.strip() or not public_key_pem.strip():
            raise SigningKeyUnavailableError("JWT signing keys are not configured.")
        try:
            private_key = serialization.load_pem_private_key(
                private_key_pem.encode("utf-8"), password=None
            )
            public_key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise SigningKeyUnavailableError("JWT signing keys could not be loaded.") from exc
        if not isinstance(private_key, RSAPrivateKey) or not isinstance(public_key, RSAPublicKey):
            raise SigningKeyUnavailableError("JWT signing keys must be RSA.")
        if private_key.public_key().public_numbers() != public_key.public_numbers():
            raise SigningKeyUnavailableError("JWT public key does not match the private key.")

    def _is_supported_token_type(self, token_type: object) -> bool:
        """Check whether token type is one of the supported JWT classes."""
        return isinstance(token_type, str) and token_type in ("access", "refresh")

    @staticmethod
    def _calculate_kid(public_key_pem: str) -> str:
        """Derive a deterministic key ID from the public key."""
        digest = hashlib.sha256(public_key_pem.encode("utf-8")).digest()
        return base64.urlsafe_b64encode(digest[:16]).rstrip(b"=").decode("ascii")


@lru_cache
def get_jwt_service() -> JWTService:
    """Build and cache the JWT service from application settings."""
    settings = get_settings()
    return JWTService(
        private_key_pem=settings.jwt.private_key_pem.get_secret_value(),
        public_key_pem=settings.jwt.public_key_pem.get_secret_value(),
    )
