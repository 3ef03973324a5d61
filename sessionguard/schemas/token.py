"""Token and session response schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class TokenPairResponse(BaseModel):
    """Access/refresh token response payload."""

    access_token: str
    refresh_token: str
    token_type: Literal["bearer"] = "bearer"


class RefreshTokenRequest(BaseModel):
    """Refresh token request payload."""

    refresh_token: str = Field(min_length=16)


class LogoutResponse(BaseModel):
    """Logout result payload."""

    revoked: int = 0


class SessionStatsResponse(BaseModel):
    """Store-wide session counters."""

    total_users: int
    total_sessions: int
