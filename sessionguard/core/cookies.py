"""Refresh token cookie helpers."""

from __future__ import annotations

from typing import Literal

from starlette.responses import Response

from sessionguard.config import Settings


def _cookie_options(settings: Settings) -> dict[str, object]:
    """Return HTTP-only cookie options; secure and cross-site only in production."""
    is_production = settings.app.environment == "production"
    secure = settings.cookie.secure if settings.cookie.secure is not None else is_production
    samesite: Literal["lax", "strict", "none"] = settings.cookie.samesite or (
        "none" if is_production else "lax"
    )
    return {
        "httponly": True,
        "secure": secure,
        "samesite": samesite,
        "path": settings.cookie.path,
    }


def set_refresh_cookie(response: Response, refresh_token: str, settings: Settings) -> None:
    """Attach the refresh token cookie for the absolute session lifetime."""
    response.set_cookie(
        settings.cookie.name,
        refresh_token,
        max_age=settings.sessions.absolute_ttl_seconds,
        **_cookie_options(settings),
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    """Expire the refresh token cookie."""
    response.delete_cookie(settings.cookie.name, **_cookie_options(settings))
