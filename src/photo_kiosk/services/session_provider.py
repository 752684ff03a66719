"""Anonymous kiosk session ids with a fixed time-to-live."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import uuid4

from photo_kiosk.domain.sessions import StoredSession
from photo_kiosk.errors import StorageUnavailable

logger = logging.getLogger(__name__)

SESSION_TTL = timedelta(hours=24)


class SessionStore(Protocol):
    """Client-local persistence for the session id pair."""

    def load(self) -> StoredSession | None:
        """Return the stored session, if any."""

    def save(self, session: StoredSession) -> None:
        """Persist the session id and timestamp."""

    def remove(self) -> None:
        """Delete the stored session."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Session store that lives for the process only."""

    session: StoredSession | None = None

    def load(self) -> StoredSession | None:
        return self.session

    def save(self, session: StoredSession) -> None:
        self.session = session

    def remove(self) -> None:
        self.session = None


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionProvider:
    """Issues and refreshes the correlation id used by transform and deliver.

    The id is never an authentication credential. When the backing store
    fails, the provider falls back to an ephemeral in-memory store for the
    rest of the process so the kiosk flow keeps working.
    """

    store: SessionStore
    ttl: timedelta = SESSION_TTL
    clock: Callable[[], datetime] = _utcnow
    _fallback: InMemorySessionStore | None = field(default=None, init=False)

    @property
    def degraded(self) -> bool:
        return self._fallback is not None

    def get_or_create_id(self) -> str:
        """Return the current id, minting a new one if missing or expired."""
        now = self.clock()
        existing = self._load()
        if existing is not None and now - existing.created_at < self.ttl:
            return existing.id
        session = StoredSession(id=str(uuid4()), created_at=now)
        self._save(session)
        logger.info("New kiosk session created", extra={"session_id": session.id})
        return session.id

    def refresh(self) -> None:
        """Extend the TTL window of the current id without changing it."""
        existing = self._load()
        if existing is None:
            return
        self._save(StoredSession(id=existing.id, created_at=self.clock()))

    def clear(self) -> None:
        """Forget the current id; the next call mints a new identity."""
        if self._fallback is not None:
            self._fallback.remove()
            return
        try:
            self.store.remove()
        except StorageUnavailable:
            self._degrade()
            self._fallback.remove()

    def _load(self) -> StoredSession | None:
        if self._fallback is not None:
            return self._fallback.load()
        try:
            return self.store.load()
        except StorageUnavailable:
            self._degrade()
            return None

    def _save(self, session: StoredSession) -> None:
        if self._fallback is None:
            try:
                self.store.save(session)
                return
            except StorageUnavailable:
                self._degrade()
        self._fallback.save(session)

    def _degrade(self) -> None:
        if self._fallback is None:
            logger.warning("Session storage unavailable; using an ephemeral id")
            self._fallback = InMemorySessionStore()
