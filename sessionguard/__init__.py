"""Refresh session lifecycle: issuance, validation, rotation, revocation, and reaping."""

from sessionguard.core.errors import (
    AbsoluteExpiryError,
    InactivityExpiryError,
    InvalidSignatureError,
    SessionError,
    SessionNotFoundError,
    SigningKeyUnavailableError,
)
from sessionguard.core.sessions import InMemorySessionStore, SessionRecord, SessionStats
from sessionguard.services.reaper import SessionReaper
from sessionguard.services.session_service import SessionClaims, SessionService
from sessionguard.services.token_service import IssuedCredentials, TokenPair, TokenService

__all__ = [
    "AbsoluteExpiryError",
    "InMemorySessionStore",
    "InactivityExpiryError",
    "InvalidSignatureError",
    "IssuedCredentials",
    "SessionClaims",
    "SessionError",
    "SessionNotFoundError",
    "SessionReaper",
    "SessionRecord",
    "SessionService",
    "SessionStats",
    "SigningKeyUnavailableError",
    "TokenPair",
    "TokenService",
]
