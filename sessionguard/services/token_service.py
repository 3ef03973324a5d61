"""Token issuance service."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from uuid import uuid4

from sessionguard.config import get_settings
from sessionguard.core.jwt import JWTService, get_jwt_service


@dataclass(frozen=True)
class TokenPair:
    """Returned access and refresh JWT pair."""

    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class IssuedCredentials:
    """Freshly minted credential pair plus the session it belongs to."""

    access_token: str
    refresh_token: str
    session_id: str
    access_expires_in: int
    refresh_expires_in: int

    @property
    def pair(self) -> TokenPair:
        """Return the credentials without session metadata."""
        return TokenPair(access_token=self.access_token, refresh_token=self.refresh_token)


class TokenService:
    """Service responsible for creating access and refresh tokens.

    Issuance has no store side effect; the caller registers the session.
    """

    def __init__(
        self,
        jwt_service: JWTService,
        access_token_ttl_seconds: int,
        elevated_access_token_ttl_seconds: int,
        refresh_token_ttl_seconds: int,
        elevated_roles: list[str] | tuple[str, ...] = ("admin",),
    ) -> None:
        self._jwt_service = jwt_service
        self._access_token_ttl_seconds = access_token_ttl_seconds
        self._elevated_access_token_ttl_seconds = elevated_access_token_ttl_seconds
        self._refresh_token_ttl_seconds = refresh_token_ttl_seconds
        self._elevated_roles = frozenset(elevated_roles)

    def access_token_ttl_for(self, role: str) -> int:
        """Return the access lifetime in seconds for a role."""
        if role in self._elevated_roles:
            return self._elevated_access_token_ttl_seconds
        return self._access_token_ttl_seconds

    def issue(self, user_id: str, role: str = "user") -> IssuedCredentials:
        """Issue access and refresh tokens bound to a new session id."""
        session_id = uuid4().hex
        access_ttl = self.access_token_ttl_for(role)
        access_token = self._jwt_service.issue_token(
            subject=user_id,
            token_type="access",
            expires_in_seconds=access_ttl,
            additional_claims={"role": role, "sid": session_id},
        )
        refresh_token = self._jwt_service.issue_token(
            subject=user_id,
            token_type="refresh",
            expires_in_seconds=self._refresh_token_ttl_seconds,
            additional_claims={"sid": session_id},
        )
        return IssuedCredentials(
            access_token=access_token,
            refresh_token=refresh_token,
            session_id=session_id,
            access_expires_in=access_ttl,
            refresh_expires_in=self._refresh_token_ttl_seconds,
        )


@lru_cache
def get_token_service() -> TokenService:
    """Build and cache token service based on application settings."""
    settings = get_settings()
    return TokenService(
        jwt_service=get_jwt_service(),
        access_token_ttl_seconds=settings.jwt.access_token_ttl_seconds,
        elevated_access_token_ttl_seconds=settings.jwt.elevated_access_token_ttl_seconds,
        refresh_token_ttl_seconds=settings.jwt.refresh_token_ttl_seconds,
        elevated_roles=tuple(settings.jwt.elevated_roles),
    )
