"""Shared fixtures: ephemeral RSA keys, a controllable clock, and wired services."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from sessionguard.core.expiry import ExpiryPolicy
from sessionguard.core.jwt import JWTService
from sessionguard.core.sessions import InMemorySessionStore
from sessionguard.services.session_service import SessionService
from sessionguard.services.token_service import TokenService


def generate_keypair() -> tuple[str, str]:
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


class FakeClock:
    """Controllable wall clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        """Return current synthetic time."""
        return self.current

    def advance(self, **delta: float) -> None:
        """Move the clock forward."""
        self.current += timedelta(**delta)


@pytest.fixture(scope="session")
def keypair() -> tuple[str, str]:
    """One RSA keypair per test session."""
    return generate_keypair()


@pytest.fixture
def jwt_service(keypair: tuple[str, str]) -> JWTService:
    """JWT service signing with the session keypair."""
    private_pem, public_pem = keypair
    return JWTService(private_key_pem=private_pem, public_key_pem=public_pem)


@pytest.fixture
def token_service(jwt_service: JWTService) -> TokenService:
    """Issuer with production lifetimes."""
    return TokenService(
        jwt_service=jwt_service,
        access_token_ttl_seconds=900,
        elevated_access_token_ttl_seconds=7200,
        refresh_token_ttl_seconds=30 * 24 * 3600,
        elevated_roles=("admin",),
    )


@pytest.fixture
def clock() -> FakeClock:
    """Fresh synthetic clock."""
    return FakeClock()


@pytest.fixture
def policy() -> ExpiryPolicy:
    """Thirty-day absolute ceiling with a seven-day inactivity window."""
    return ExpiryPolicy(absolute_ttl=timedelta(days=30), inactivity_ttl=timedelta(days=7))


@pytest.fixture
def store(clock: FakeClock) -> InMemorySessionStore:
    """Empty in-memory store on the synthetic clock."""
    return InMemorySessionStore(now=clock.now)


@pytest.fixture
def session_service(
    store: InMemorySessionStore,
    token_service: TokenService,
    jwt_service: JWTService,
    policy: ExpiryPolicy,
    clock: FakeClock,
) -> SessionService:
    """Session service wired to the in-memory store and synthetic clock."""
    return SessionService(
        store=store,
        token_service=token_service,
        jwt_service=jwt_service,
        policy=policy,
        now=clock.now,
    )
