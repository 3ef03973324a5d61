"""In-process refresh session state management."""

from __future__ import annotations

import hmac
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from threading import Lock
from typing import Protocol


def tokens_match(stored: str, presented: str) -> bool:
    """Compare raw refresh credentials in constant time, whatever their characters."""
    return hmac.compare_digest(stored.encode("utf-8"), presented.encode("utf-8"))


@dataclass(frozen=True)
class SessionRecord:
    """Server-side record binding a refresh token to a user and its expiry clocks."""

    session_id: str
    user_id: str
    refresh_token: str
    created_at: datetime
    last_used_at: datetime


@dataclass(frozen=True)
class SessionStats:
    """Store-wide counters for observability."""

    total_users: int
    total_sessions: int


class SessionStore(Protocol):
    """Storage contract for refresh sessions.

    Implementations must keep the per-user index and the session metadata in
    lockstep: a session is live only when present in both.
    """

    def register(
        self,
        user_id: str,
        session_id: str,
        refresh_token: str,
        now: datetime | None = None,
    ) -> SessionRecord: ...

    def get(self, session_id: str) -> SessionRecord | None: ...

    def touch(self, session_id: str, now: datetime | None = None) -> bool: ...

    def revoke(self, user_id: str, refresh_token: str) -> bool: ...

    def revoke_all(self, user_id: str, keep_refresh_token: str | None = None) -> int: ...

    def remove(self, session_id: str) -> bool: ...

    def swap(
        self,
        old_session_id: str,
        expected_refresh_token: str,
        new_record: SessionRecord,
    ) -> bool: ...

    def snapshot(self) -> list[SessionRecord]: ...

    def stats(self) -> SessionStats: ...


class InMemorySessionStore:
    """Dual-indexed session store guarded by a single lock.

    Every mutation touches both indexes inside one critical section, so
    readers never observe a session id in one index but not the other.
    """

    def __init__(self, now: Callable[[], datetime] | None = None) -> None:
        self._by_session: dict[str, SessionRecord] = {}
        self._by_user: dict[str, set[str]] = {}
        self._now = now or (lambda: datetime.now(UTC))
        self._lock = Lock()

    def register(
        self,
        user_id: str,
        session_id: str,
        refresh_token: str,
        now: datetime | None = None,
    ) -> SessionRecord:
        """Add a session for a user without disturbing their other sessions."""
        issued_at = now or self._now()
        record = SessionRecord(
            session_id=session_id,
            user_id=user_id,
            refresh_token=refresh_token,
            created_at=issued_at,
            last_used_at=issued_at,
        )
        with self._lock:
            if session_id in self._by_session:
                raise ValueError(f"Session {session_id} is already registered.")
            self._insert(record)
        return record

    def get(self, session_id: str) -> SessionRecord | None:
        """Return the session record, or None when it is not live."""
        with self._lock:
            return self._by_session.get(session_id)

    def touch(self, session_id: str, now: datetime | None = None) -> bool:
        """Refresh last-use time; False when the session is gone."""
        used_at = now or self._now()
        with self._lock:
            record = self._by_session.get(session_id)
            if record is None:
                return False
            self._by_session[session_id] = replace(record, last_used_at=used_at)
            return True

    def revoke(self, user_id: str, refresh_token: str) -> bool:
        """Remove the user's session holding this refresh token, if any."""
        with self._lock:
            for session_id in list(self._by_user.get(user_id, ())):
                record = self._by_session.get(session_id)
                if record is not None and tokens_match(record.refresh_token, refresh_token):
                    self._delete(session_id)
                    return True
        return False

    def revoke_all(self, user_id: str, keep_refresh_token: str | None = None) -> int:
        """Remove every session of a user; metadata first, then the index.

        When ``keep_refresh_token`` matches one of the user's sessions, that
        session survives and the user stays indexed with it alone.
        """
        with self._lock:
            session_ids = self._by_user.get(user_id, set())
            kept_id: str | None = None
            removed = 0
            for session_id in list(session_ids):
                record = self._by_session.get(session_id)
                if (
                    kept_id is None
                    and keep_refresh_token is not None
                    and record is not None
                    and tokens_match(record.refresh_token, keep_refresh_token)
                ):
                    kept_id = session_id
                    continue
                if self._by_session.pop(session_id, None) is not None:
                    removed += 1
            if kept_id is None:
                self._by_user.pop(user_id, None)
            else:
                self._by_user[user_id] = {kept_id}
            return removed

    def remove(self, session_id: str) -> bool:
        """Remove a session by id; False when it was already removed."""
        with self._lock:
            if session_id not in self._by_session:
                return False
            self._delete(session_id)
            return True

    def swap(
        self,
        old_session_id: str,
        expected_refresh_token: str,
        new_record: SessionRecord,
    ) -> bool:
        """Atomically replace a live session with a new one.

        Fails without side effects when the old session is no longer live or
        now holds a different refresh token.
        """
        with self._lock:
            current = self._by_session.get(old_session_id)
            if current is None:
                return False
            if not tokens_match(current.refresh_token, expected_refresh_token):
                return False
            if new_record.session_id in self._by_session:
                raise ValueError(f"Session {new_record.session_id} is already registered.")
            self._delete(old_session_id)
            self._insert(new_record)
            return True

    def snapshot(self) -> list[SessionRecord]:
        """Return a point-in-time copy of all live sessions."""
        with self._lock:
            return list(self._by_session.values())

    def user_session_ids(self, user_id: str) -> set[str]:
        """Return a copy of the session ids indexed for a user."""
        with self._lock:
            return set(self._by_user.get(user_id, ()))

    def stats(self) -> SessionStats:
        """Count indexed users and live sessions."""
        with self._lock:
            return SessionStats(
                total_users=len(self._by_user),
                total_sessions=len(self._by_session),
            )

    def _insert(self, record: SessionRecord) -> None:
        """Add a record to both indexes; caller holds the lock."""
        self._by_session[record.session_id] = record
        self._by_user.setdefault(record.user_id, set()).add(record.session_id)

    def _delete(self, session_id: str) -> None:
        """Drop a record from both indexes; caller holds the lock."""
        record = self._by_session.pop(session_id)
        user_sessions = self._by_user.get(record.user_id)
        if user_sessions is None:
            return
        user_sessions.discard(session_id)
        if not user_sessions:
            del self._by_user[record.user_id]
