"""Refresh session validation, rotation, and revocation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache

import structlog

from sessionguard.config import get_settings
from sessionguard.core.errors import (
    AbsoluteExpiryError,
    InvalidSignatureError,
    SessionError,
    SessionNotFoundError,
)
from sessionguard.core.expiry import ExpiryPolicy
from sessionguard.core.jwt import JWTService, TokenValidationError, get_jwt_service
from sessionguard.core.sessions import (
    InMemorySessionStore,
    SessionRecord,
    SessionStats,
    SessionStore,
    tokens_match,
)
from sessionguard.services.token_service import (
    IssuedCredentials,
    TokenPair,
    TokenService,
    get_token_service,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SessionClaims:
    """Identity resolved from a validated refresh token."""

    user_id: str
    session_id: str


class SessionService:
    """Service for session creation, validation, rotation, and revocation."""

    def __init__(
        self,
        store: SessionStore,
        token_service: TokenService,
        jwt_service: JWTService,
        policy: ExpiryPolicy,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._token_service = token_service
        self._jwt_service = jwt_service
        self._policy = policy
        self._now = now or (lambda: datetime.now(UTC))

    def issue(self, user_id: str, role: str = "user") -> IssuedCredentials:
        """Mint a credential pair without registering it."""
        return self._token_service.issue(user_id, role)

    def register(self, user_id: str, session_id: str, refresh_token: str) -> SessionRecord:
        """Register an issued refresh token as a live session."""
        record = self._store.register(user_id, session_id, refresh_token, now=self._now())
        logger.info("session_registered", user_id=user_id, session_id=session_id)
        return record

    def login(self, user_id: str, role: str = "user") -> IssuedCredentials:
        """Issue credentials for an authenticated user and register the session."""
        issued = self.issue(user_id, role)
        self.register(user_id, issued.session_id, issued.refresh_token)
        return issued

    def validate_and_touch(self, refresh_token: str) -> SessionClaims:
        """Validate a refresh token against its session and extend the idle window."""
        try:
            claims = self._resolve(refresh_token)
        except SessionError as exc:
            logger.warning("session_validation_failed", code=exc.code)
            raise
        return claims

    def rotate(self, refresh_token: str, user_id: str, role: str = "user") -> TokenPair:
        """Replace the presented session with a new one and return a fresh pair.

        The old refresh token stops validating the moment the swap commits. A
        caller whose ``user_id`` is not the token's subject is rejected before
        the session is touched.
        """
        try:
            claims = self._resolve(refresh_token, expected_user_id=user_id)
        except SessionError as exc:
            logger.warning("session_rotation_rejected", code=exc.code)
            raise

        issued = self._token_service.issue(user_id, role)
        now = self._now()
        new_record = SessionRecord(
            session_id=issued.session_id,
            user_id=user_id,
            refresh_token=issued.refresh_token,
            created_at=now,
            last_used_at=now,
        )
        if not self._store.swap(claims.session_id, refresh_token, new_record):
            logger.warning(
                "session_rotation_rejected",
                code=SessionNotFoundError.code,
                session_id=claims.session_id,
            )
            raise SessionNotFoundError("Session not found.")

        logger.info(
            "session_rotated",
            user_id=user_id,
            old_session_id=claims.session_id,
            new_session_id=issued.session_id,
        )
        return issued.pair

    def revoke(self, user_id: str, refresh_token: str) -> bool:
        """Remove one session; unknown or already removed tokens are a no-op."""
        removed = self._store.revoke(user_id, refresh_token)
        logger.info("session_revoked", user_id=user_id, removed=removed)
        return removed

    def logout(self, refresh_token: str) -> bool:
        """Revoke the session behind a refresh token without failing on bad input."""
        try:
            payload = self._jwt_service.verify_token(refresh_token, expected_type="refresh")
        except TokenValidationError as exc:
            logger.info("session_logout_unverified", code=exc.code)
            return False
        return self.revoke(str(payload["sub"]), refresh_token)

    def revoke_all(self, user_id: str, keep_refresh_token: str | None = None) -> int:
        """Remove every session of a user.

        A password reset drops everything. A password change passes the
        caller's own refresh token as ``keep_refresh_token`` so that device
        stays signed in.
        """
        removed = self._store.revoke_all(user_id, keep_refresh_token=keep_refresh_token)
        logger.info(
            "sessions_revoked_all",
            user_id=user_id,
            removed=removed,
            kept_current=keep_refresh_token is not None,
        )
        return removed

    def stats(self) -> SessionStats:
        """Return store-wide counters."""
        return self._store.stats()

    def subject_of(self, refresh_token: str) -> str:
        """Return the user id a refresh token was issued to, without touching state."""
        return str(self._verify_refresh(refresh_token)["sub"])

    def _verify_refresh(self, refresh_token: str) -> dict[str, object]:
        """Verify signature and type, mapping failures to session errors."""
        try:
            payload = self._jwt_service.verify_token(refresh_token, expected_type="refresh")
        except TokenValidationError as exc:
            if exc.code == "token_expired":
                raise AbsoluteExpiryError("Session expired.") from exc
            raise InvalidSignatureError("Invalid refresh token.") from exc
        session_id = payload.get("sid")
        if not isinstance(session_id, str) or not session_id:
            raise InvalidSignatureError("Invalid refresh token.")
        return payload

    def _resolve(
        self, refresh_token: str, expected_user_id: str | None = None
    ) -> SessionClaims:
        """Verify the token, check the session, and touch it."""
        payload = self._verify_refresh(refresh_token)
        session_id = str(payload["sid"])
        subject = str(payload["sub"])
        if expected_user_id is not None and subject != expected_user_id:
            raise SessionNotFoundError("Session not found.")

        record = self._store.get(session_id)
        if (
            record is None
            or record.user_id != subject
            or not tokens_match(record.refresh_token, refresh_token)
        ):
            raise SessionNotFoundError("Session not found.")

        now = self._now()
        self._policy.check(record, now)
        if not self._store.touch(session_id, now=now):
            raise SessionNotFoundError("Session not found.")
        return SessionClaims(user_id=record.user_id, session_id=session_id)


@lru_cache
def get_session_store() -> InMemorySessionStore:
    """Create and cache the process-wide session store."""
    return InMemorySessionStore()


@lru_cache
def get_expiry_policy() -> ExpiryPolicy:
    """Build and cache the expiry policy from settings."""
    settings = get_settings()
    return ExpiryPolicy.from_seconds(
        absolute_ttl_seconds=settings.sessions.absolute_ttl_seconds,
        inactivity_ttl_seconds=settings.sessions.inactivity_ttl_seconds,
    )


@lru_cache
def get_session_service() -> SessionService:
    """Create and cache session service."""
    return SessionService(
        store=get_session_store(),
        token_service=get_token_service(),
        jwt_service=get_jwt_service(),
        policy=get_expiry_policy(),
    )
