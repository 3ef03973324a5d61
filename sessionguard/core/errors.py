"""Typed failures raised by credential issuance and session lifecycle operations."""

from __future__ import annotations


class SessionError(Exception):
    """Base class for session lifecycle failures.

    Every per-call failure requires the client to re-authenticate; none is
    retried internally.
    """

    code = "session_error"
    status_code = 401

    def __init__(
        self, detail: str, code: str | None = None, status_code: int | None = None
    ) -> None:
        super().__init__(detail)
        self.detail = detail
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code


class InvalidSignatureError(SessionError):
    """Raised when a refresh credential is malformed or tampered with."""

    code = "invalid_token"


class SessionNotFoundError(SessionError):
    """Raised when a well-signed credential has no live session behind it."""

    code = "session_not_found"


class AbsoluteExpiryError(SessionError):
    """Raised when a session is older than the absolute ceiling."""

    code = "session_expired"


class InactivityExpiryError(SessionError):
    """Raised when a session sat idle longer than the inactivity window."""

    code = "session_inactive"


class SigningKeyUnavailableError(SessionError):
    """Raised at startup when signing keys are missing or unusable."""

    code = "signing_key_unavailable"
    status_code = 500
