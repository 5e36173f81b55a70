"""Tests for session and authorization-state storage."""

from __future__ import annotations

import stat
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sessionbridge.auth.credential_store import (
    PENDING_TTL,
    PendingAuthorization,
    SessionStore,
    StateStore,
    StoredSession,
)


@pytest.fixture()
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point get_data_dir() to tmp_path so files land in a disposable location."""
    monkeypatch.setattr("sessionbridge.auth.credential_store.get_data_dir", lambda: tmp_path)
    return tmp_path


class TestStoredSession:
    def test_no_expiry_never_expires(self) -> None:
        assert not StoredSession(sub="did:plc:a", access_token="t").is_expired()

    def test_future_expiry(self) -> None:
        session = StoredSession(
            sub="did:plc:a",
            access_token="t",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )
        assert not session.is_expired()

    def test_within_leeway_counts_as_expired(self) -> None:
        session = StoredSession(
            sub="did:plc:a",
            access_token="t",
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=10),
        )
        assert session.is_expired()

    def test_naive_expiry_is_treated_as_utc(self) -> None:
        session = StoredSession(
            sub="did:plc:a",
            access_token="t",
            expires_at=datetime(2000, 1, 1),
        )
        assert session.is_expired()


class TestSessionStore:
    def test_empty(self, data_dir: Path) -> None:
        assert SessionStore().load() is None

    def test_save_and_load(self, data_dir: Path) -> None:
        store = SessionStore()
        store.save(StoredSession(sub="did:plc:alice", access_token="tok", refresh_token="ref"))

        loaded = SessionStore().load()

        assert loaded is not None
        assert loaded.sub == "did:plc:alice"
        assert loaded.refresh_token == "ref"
        assert store.path == data_dir / "sessions" / "default.json"

    def test_file_permissions(self, data_dir: Path) -> None:
        store = SessionStore("perm")
        store.save(StoredSession(sub="did:plc:alice", access_token="tok"))
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    def test_save_replaces_previous(self, data_dir: Path) -> None:
        store = SessionStore()
        store.save(StoredSession(sub="did:plc:alice", access_token="one"))
        store.save(StoredSession(sub="did:plc:bob", access_token="two"))
        assert store.load().sub == "did:plc:bob"

    def test_clear(self, data_dir: Path) -> None:
        store = SessionStore()
        store.save(StoredSession(sub="did:plc:alice", access_token="tok"))
        store.clear()
        store.clear()
        assert store.load() is None

    def test_corrupt_file_loads_as_none(self, data_dir: Path) -> None:
        store = SessionStore()
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{broken")
        assert store.load() is None

    def test_invalid_contents_load_as_none(self, data_dir: Path) -> None:
        store = SessionStore()
        store.path.parent.mkdir(parents=True)
        store.path.write_text('{"sub": "did:plc:alice"}')
        assert store.load() is None


class TestStateStore:
    def test_pop_returns_pending_once(self, data_dir: Path) -> None:
        states = StateStore()
        states.put(
            PendingAuthorization(
                state="s1", code_verifier="v", redirect_uri="https://app.example.com/cb"
            )
        )

        pending = states.pop("s1")

        assert pending is not None
        assert pending.code_verifier == "v"
        assert states.pop("s1") is None

    def test_unknown_state(self, data_dir: Path) -> None:
        assert StateStore().pop("never-issued") is None

    def test_state_is_not_used_as_file_name(self, data_dir: Path) -> None:
        StateStore().put(
            PendingAuthorization(state="../escape", code_verifier="v", redirect_uri="r")
        )
        names = [p.name for p in (data_dir / "pending").iterdir()]
        assert len(names) == 1
        assert "escape" not in names[0]

    def test_stale_state_is_rejected(self, data_dir: Path) -> None:
        states = StateStore()
        states.put(
            PendingAuthorization(
                state="old",
                code_verifier="v",
                redirect_uri="r",
                created_at=datetime.now(timezone.utc) - PENDING_TTL - timedelta(seconds=1),
            )
        )
        assert states.pop("old") is None
        assert list((data_dir / "pending").iterdir()) == []

    def test_put_removes_abandoned_requests(self, data_dir: Path) -> None:
        states = StateStore()
        states.put(
            PendingAuthorization(
                state="abandoned",
                code_verifier="v",
                redirect_uri="r",
                created_at=datetime.now(timezone.utc) - PENDING_TTL - timedelta(minutes=1),
            )
        )
        states.put(PendingAuthorization(state="recent", code_verifier="v", redirect_uri="r"))
        pending_dir = data_dir / "pending"
        (pending_dir / "garbage.json").write_text("{not json", encoding="utf-8")
        (pending_dir / "wrong-shape.json").write_text('{"state": 1}', encoding="utf-8")

        states.put(PendingAuthorization(state="new", code_verifier="v", redirect_uri="r"))

        assert len(list(pending_dir.glob("*.json"))) == 2
        assert states.pop("abandoned") is None
        assert states.pop("recent") is not None
        assert states.pop("new") is not None
