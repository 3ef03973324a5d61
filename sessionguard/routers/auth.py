"""Session lifecycle routes: refresh, logout, and bulk revocation."""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Request, Response

from sessionguard.config import Settings, get_settings
from sessionguard.core.cookies import clear_refresh_cookie, set_refresh_cookie
from sessionguard.core.errors import InvalidSignatureError
from sessionguard.core.jwt import JWTService, TokenValidationError, get_jwt_service
from sessionguard.schemas.token import (
    LogoutResponse,
    RefreshTokenRequest,
    SessionStatsResponse,
    TokenPairResponse,
)
from sessionguard.services.session_service import SessionService, get_session_service

router = APIRouter(prefix="/auth", tags=["auth"])

RoleResolver = Callable[[str], str]


def _default_role(_user_id: str) -> str:
    return "user"


def get_role_resolver() -> RoleResolver:
    """Provide the user-to-role lookup; host applications override this dependency."""
    return _default_role


def _extract_bearer_token(request: Request) -> str | None:
    """Extract bearer token from Authorization header."""
    authorization = request.headers.get("authorization", "").strip()
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def _extract_refresh_token(
    request: Request, payload: RefreshTokenRequest | None, settings: Settings
) -> str | None:
    """Read the refresh token from the cookie, falling back to the JSON body."""
    cookie_value = request.cookies.get(settings.cookie.name, "").strip()
    if cookie_value:
        return cookie_value
    if payload is not None:
        return payload.refresh_token
    return None


@router.post("/refresh", response_model=TokenPairResponse)
def refresh(
    request: Request,
    response: Response,
    session_service: Annotated[SessionService, Depends(get_session_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    role_resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
    payload: Annotated[RefreshTokenRequest | None, Body()] = None,
) -> TokenPairResponse:
    """Rotate the presented refresh token and return a new credential pair."""
    refresh_token = _extract_refresh_token(request, payload, settings)
    if refresh_token is None:
        raise InvalidSignatureError("Refresh token required.")

    user_id = session_service.subject_of(refresh_token)
    token_pair = session_service.rotate(refresh_token, user_id, role_resolver(user_id))
    set_refresh_cookie(response, token_pair.refresh_token, settings)
    return TokenPairResponse(
        access_token=token_pair.access_token,
        refresh_token=token_pair.refresh_token,
    )


@router.post("/logout", response_model=LogoutResponse)
def logout(
    request: Request,
    response: Response,
    session_service: Annotated[SessionService, Depends(get_session_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    payload: Annotated[RefreshTokenRequest | None, Body()] = None,
) -> LogoutResponse:
    """Revoke the current session; always succeeds so retries are safe."""
    refresh_token = _extract_refresh_token(request, payload, settings)
    revoked = 0
    if refresh_token is not None and session_service.logout(refresh_token):
        revoked = 1
    clear_refresh_cookie(response, settings)
    return LogoutResponse(revoked=revoked)


@router.post("/logout-all", response_model=LogoutResponse)
def logout_all(
    request: Request,
    response: Response,
    session_service: Annotated[SessionService, Depends(get_session_service)],
    jwt_service: Annotated[JWTService, Depends(get_jwt_service)],
    settings: Annotated[Settings, Depends(get_settings)],
    keep_current: bool = False,
    payload: Annotated[RefreshTokenRequest | None, Body()] = None,
) -> LogoutResponse:
    """Revoke every session of the bearer's user.

    With ``keep_current`` the session behind the presented refresh token
    survives, as after a password change on this device.
    """
    access_token = _extract_bearer_token(request)
    if access_token is None:
        raise InvalidSignatureError("Access token required.")
    try:
        claims = jwt_service.verify_token(access_token, expected_type="access")
    except TokenValidationError as exc:
        raise InvalidSignatureError(exc.detail) from exc

    keep_refresh_token = None
    if keep_current:
        keep_refresh_token = _extract_refresh_token(request, payload, settings)
    revoked = session_service.revoke_all(
        str(claims["sub"]), keep_refresh_token=keep_refresh_token
    )
    if keep_refresh_token is None:
        clear_refresh_cookie(response, settings)
    return LogoutResponse(revoked=revoked)


@router.get("/sessions/stats", response_model=SessionStatsResponse)
def session_stats(
    session_service: Annotated[SessionService, Depends(get_session_service)],
) -> SessionStatsResponse:
    """Expose store-wide counters."""
    stats = session_service.stats()
    return SessionStatsResponse(
        total_users=stats.total_users,
        total_sessions=stats.total_sessions,
    )
