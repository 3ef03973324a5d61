"""Absolute and sliding expiry checks for refresh sessions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sessionguard.core.errors import AbsoluteExpiryError, InactivityExpiryError
from sessionguard.core.sessions import SessionRecord


@dataclass(frozen=True)
class ExpiryPolicy:
    """Absolute ceiling plus inactivity window."""

    absolute_ttl: timedelta
    inactivity_ttl: timedelta

    @classmethod
    def from_seconds(
        cls, absolute_ttl_seconds: float, inactivity_ttl_seconds: float
    ) -> ExpiryPolicy:
        """Build a policy from second-based settings values."""
        return cls(
            absolute_ttl=timedelta(seconds=absolute_ttl_seconds),
            inactivity_ttl=timedelta(seconds=inactivity_ttl_seconds),
        )

    def check(self, record: SessionRecord, now: datetime) -> None:
        """Raise the matching expiry error when the session is no longer usable."""
        if now - record.created_at > self.absolute_ttl:
            raise AbsoluteExpiryError("Session expired.")
        if now - record.last_used_at > self.inactivity_ttl:
            raise InactivityExpiryError("Session expired due to inactivity.")

    def is_expired(self, record: SessionRecord, now: datetime) -> bool:
        """Return True when either expiry check fails."""
        return (
            now - record.created_at > self.absolute_ttl
            or now - record.last_used_at > self.inactivity_ttl
        )
