"""JSON file session store for the kiosk machine."""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from photo_kiosk.domain.sessions import StoredSession
from photo_kiosk.errors import StorageUnavailable
from photo_kiosk.services.session_provider import SessionStore

SESSION_KEY = "session_id"
SESSION_CREATED_KEY = "session_created_at"


@dataclass
class JsonFileSessionStore(SessionStore):
    """Keeps the two session keys in a small JSON document."""

    path: Path

    def load(self) -> StoredSession | None:
        """Read the session pair; a missing or partial file means no session."""
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageUnavailable(str(exc)) from exc
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict):
            return None
        session_id = data.get(SESSION_KEY)
        created_ms = data.get(SESSION_CREATED_KEY)
        if not isinstance(session_id, str) or not isinstance(created_ms, int | float):
            return None
        return StoredSession(
            id=session_id,
            created_at=datetime.fromtimestamp(created_ms / 1000, tz=UTC),
        )

    def save(self, session: StoredSession) -> None:
        """Write both keys, creating the parent directory on first use."""
        payload = {
            SESSION_KEY: session.id,
            SESSION_CREATED_KEY: int(session.created_at.timestamp() * 1000),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload), encoding="utf-8")
        except OSError as exc:
            raise StorageUnavailable(str(exc)) from exc

    def remove(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailable(str(exc)) from exc
