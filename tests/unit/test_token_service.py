"""Unit tests for credential issuance."""

from __future__ import annotations

from sessionguard.core.jwt import JWTService
from sessionguard.services.token_service import TokenService


def test_standard_role_gets_fifteen_minute_access(
    token_service: TokenService, jwt_service: JWTService
) -> None:
    """Standard users get 15m access and 30d refresh lifetimes."""
    issued = token_service.issue("u1", "user")

    access = jwt_service.verify_token(issued.access_token, expected_type="access")
    refresh = jwt_service.verify_token(issued.refresh_token, expected_type="refresh")

    assert issued.access_expires_in == 15 * 60
    assert issued.refresh_expires_in == 30 * 24 * 3600
    assert access["exp"] - access["iat"] == 15 * 60
    assert refresh["exp"] - refresh["iat"] == 30 * 24 * 3600
    assert access["sub"] == refresh["sub"] == "u1"
    assert access["role"] == "user"
    assert refresh["sid"] == issued.session_id
    assert "role" not in refresh


def test_elevated_role_gets_two_hour_access(
    token_service: TokenService, jwt_service: JWTService
) -> None:
    """Admins get the longer access window."""
    issued = token_service.issue("admin-1", "admin")

    access = jwt_service.verify_token(issued.access_token, expected_type="access")

    assert issued.access_expires_in == 2 * 60 * 60
    assert access["exp"] - access["iat"] == 2 * 60 * 60
    assert access["role"] == "admin"


def test_each_issue_mints_a_new_session_id(token_service: TokenService) -> None:
    """Session ids are never reused across issuances."""
    session_ids = {token_service.issue("u1").session_id for _ in range(20)}

    assert len(session_ids) == 20


def test_pair_drops_session_metadata(token_service: TokenService) -> None:
    """The public pair carries only the two tokens."""
    issued = token_service.issue("u1")

    assert issued.pair.access_token == issued.access_token
    assert issued.pair.refresh_token == issued.refresh_token
