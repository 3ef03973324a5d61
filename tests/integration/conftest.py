"""Integration fixtures building the FastAPI app from environment settings."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI


def _clear_dependency_caches() -> None:
    """Clear all singleton/lru-cache dependencies between tests."""
    from sessionguard.config import get_settings
    from sessionguard.core.jwt import get_jwt_service
    from sessionguard.services.reaper import get_session_reaper
    from sessionguard.services.session_service import (
        get_expiry_policy,
        get_session_service,
        get_session_store,
    )
    from sessionguard.services.token_service import get_token_service

    get_settings.cache_clear()
    get_jwt_service.cache_clear()
    get_token_service.cache_clear()
    get_session_store.cache_clear()
    get_expiry_policy.cache_clear()
    get_session_service.cache_clear()
    get_session_reaper.cache_clear()


@pytest.fixture
def configured_env(
    monkeypatch: pytest.MonkeyPatch, keypair: tuple[str, str]
) -> Iterator[None]:
    """Point settings at an ephemeral keypair with the reaper disabled."""
    private_pem, public_pem = keypair
    monkeypatch.setenv("APP__ENVIRONMENT", "development")
    monkeypatch.setenv("JWT__PRIVATE_KEY_PEM", private_pem)
    monkeypatch.setenv("JWT__PUBLIC_KEY_PEM", public_pem)
    monkeypatch.setenv("SESSIONS__REAPER_ENABLED", "false")
    _clear_dependency_caches()
    yield
    _clear_dependency_caches()


@pytest.fixture
def app(configured_env: None) -> FastAPI:
    """Fully wired application."""
    from sessionguard.main import create_app

    return create_app()
