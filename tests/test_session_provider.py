"""Tests for kiosk session ids and their local storage."""

import json
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from photo_kiosk.adapters.file_session_store import JsonFileSessionStore
from photo_kiosk.domain.sessions import StoredSession
from photo_kiosk.errors import StorageUnavailable
from photo_kiosk.services.session_provider import (
    InMemorySessionStore,
    SessionProvider,
    SessionStore,
)
from tests.conftest import FakeClock


@dataclass
class BrokenSessionStore(SessionStore):
    """Store whose every operation fails, like a locked-down browser profile."""

    def load(self) -> StoredSession | None:
        raise StorageUnavailable("read-only")

    def save(self, session: StoredSession) -> None:
        raise StorageUnavailable("read-only")

    def remove(self) -> None:
        raise StorageUnavailable("read-only")


def test_get_or_create_is_stable_within_ttl() -> None:
    clock = FakeClock()
    provider = SessionProvider(store=InMemorySessionStore(), clock=clock)

    first = provider.get_or_create_id()
    clock.advance(23 * 3600)
    second = provider.get_or_create_id()

    assert first == second


def test_expired_session_gets_new_id() -> None:
    clock = FakeClock()
    store = InMemorySessionStore()
    provider = SessionProvider(store=store, clock=clock)

    first = provider.get_or_create_id()
    clock.advance(24 * 3600)
    second = provider.get_or_create_id()

    assert first != second
    assert store.session is not None
    assert store.session.id == second
    assert store.session.created_at == clock.now


def test_refresh_extends_window_without_changing_id() -> None:
    clock = FakeClock()
    provider = SessionProvider(store=InMemorySessionStore(), clock=clock)
    first = provider.get_or_create_id()

    clock.advance(20 * 3600)
    provider.refresh()
    clock.advance(20 * 3600)

    assert provider.get_or_create_id() == first


def test_refresh_without_session_is_noop() -> None:
    store = InMemorySessionStore()
    provider = SessionProvider(store=store, clock=FakeClock())

    provider.refresh()

    assert store.session is None


def test_clear_mints_new_identity() -> None:
    provider = SessionProvider(store=InMemorySessionStore(), clock=FakeClock())
    first = provider.get_or_create_id()

    provider.clear()

    assert provider.get_or_create_id() != first


def test_custom_ttl_is_respected() -> None:
    clock = FakeClock()
    provider = SessionProvider(
        store=InMemorySessionStore(), ttl=timedelta(minutes=5), clock=clock
    )
    first = provider.get_or_create_id()

    clock.advance(301)

    assert provider.get_or_create_id() != first


def test_unavailable_storage_degrades_to_ephemeral_id() -> None:
    clock = FakeClock()
    provider = SessionProvider(store=BrokenSessionStore(), clock=clock)

    first = provider.get_or_create_id()
    second = provider.get_or_create_id()

    assert provider.degraded
    assert first == second

    provider.clear()

    assert provider.get_or_create_id() != first


def test_file_store_round_trips_epoch_milliseconds(tmp_path: Path) -> None:
    path = tmp_path / "kiosk" / "session.json"
    clock = FakeClock()
    store = JsonFileSessionStore(path)

    session_id = SessionProvider(store=store, clock=clock).get_or_create_id()
    data = json.loads(path.read_text(encoding="utf-8"))

    assert data == {
        "session_id": session_id,
        "session_created_at": int(clock.now.timestamp() * 1000),
    }
    loaded = store.load()
    assert loaded == StoredSession(id=session_id, created_at=clock.now)


def test_file_store_survives_restart(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    clock = FakeClock()

    first = SessionProvider(
        store=JsonFileSessionStore(path), clock=clock
    ).get_or_create_id()
    second = SessionProvider(
        store=JsonFileSessionStore(path), clock=clock
    ).get_or_create_id()

    assert first == second


def test_file_store_treats_corrupt_or_partial_file_as_missing(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    store = JsonFileSessionStore(path)

    assert store.load() is None

    path.write_text("{not json", encoding="utf-8")
    assert store.load() is None

    path.write_text(json.dumps({"session_id": "abc"}), encoding="utf-8")
    assert store.load() is None


def test_file_store_remove_is_idempotent(tmp_path: Path) -> None:
    path = tmp_path / "session.json"
    store = JsonFileSessionStore(path)
    SessionProvider(store=store, clock=FakeClock()).get_or_create_id()

    store.remove()
    store.remove()

    assert not path.exists()
