"""Persistent session and authorization-state storage.

Two stores back :class:`~sessionbridge.auth.oauth_client.PkceOAuthClient`:

- :class:`SessionStore` keeps the tokens of the one persisted session in
  ``~/.local/share/sessionbridge/sessions/<name>.json``. It is the single
  source of truth for "the" session: status and logout read it fresh on
  every call.
- :class:`StateStore` keeps pending authorization requests (PKCE verifier,
  expected redirect) keyed by their ``state`` parameter until the matching
  callback arrives.

Files are written atomically with ``0o600`` permissions via
:func:`~sessionbridge.config.atomic_write` so that tokens are never
world-readable, even momentarily.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from sessionbridge.config import atomic_write, get_data_dir

logger = logging.getLogger(__name__)

PENDING_TTL = timedelta(minutes=10)
"""How long an authorization request may wait for its callback."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class StoredSession(BaseModel):
    """Tokens of a persisted session.

    Attributes:
        sub: Account identifier (DID) returned by the token endpoint.
        access_token: Bearer token for API requests.
        refresh_token: Token used to renew ``access_token``, if issued.
        token_type: Token type reported by the provider.
        scope: Scope actually granted.
        expires_at: UTC expiry of ``access_token``; ``None`` means unknown.
    """

    sub: str
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None
    expires_at: Optional[datetime] = None

    def is_expired(self, leeway: timedelta = timedelta(seconds=30)) -> bool:
        """Return True when the access token expires within *leeway*."""
        if self.expires_at is None:
            return False
        return _utcnow() + leeway >= _as_utc(self.expires_at)


class PendingAuthorization(BaseModel):
    """An authorization request waiting for its callback."""

    state: str
    code_verifier: str
    redirect_uri: str
    created_at: datetime = Field(default_factory=_utcnow)

    def is_stale(self) -> bool:
        return _utcnow() - _as_utc(self.created_at) > PENDING_TTL


def _read_json(path: Path) -> Optional[dict]:
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return None
    return data if isinstance(data, dict) else None


class SessionStore:
    """Read/write the persisted session for one client.

    Args:
        name: Store identifier used to derive the file name.

    Example::

        store = SessionStore()
        store.save(StoredSession(sub="did:plc:abc", access_token="tok"))
        assert store.load().sub == "did:plc:abc"
    """

    def __init__(self, name: str = "default") -> None:
        self._path = get_data_dir() / "sessions" / f"{name}.json"

    @property
    def path(self) -> Path:
        return self._path

    def save(self, session: StoredSession) -> None:
        """Persist *session* atomically, replacing any previous one."""
        data = session.model_dump(mode="json")
        atomic_write(self._path, json.dumps(data, indent=2) + "\n", mode=0o600)

    def load(self) -> Optional[StoredSession]:
        """Return the stored session, or ``None`` if absent or unreadable."""
        data = _read_json(self._path)
        if data is None:
            return None
        try:
            return StoredSession.model_validate(data)
        except ValueError:
            return None

    def clear(self) -> None:
        """Delete the stored session. A no-op when there is none."""
        self._path.unlink(missing_ok=True)


class StateStore:
    """Pending authorization requests keyed by their ``state`` parameter.

    The state value comes back from the provider inside the redirect URL,
    so it is hashed before being used as a file name.
    """

    def __init__(self) -> None:
        self._dir = get_data_dir() / "pending"

    def _path_for(self, state: str) -> Path:
        digest = hashlib.sha256(state.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"

    def _prune(self) -> None:
        """Delete abandoned requests: stale, unreadable or malformed files."""
        if not self._dir.is_dir():
            return
        for path in self._dir.glob("*.json"):
            data = _read_json(path)
            try:
                stale = data is None or PendingAuthorization.model_validate(data).is_stale()
            except ValueError:
                stale = True
            if stale:
                logger.debug("Removing abandoned authorization request %s", path.name)
                path.unlink(missing_ok=True)

    def put(self, pending: PendingAuthorization) -> None:
        self._prune()
        data = pending.model_dump(mode="json")
        atomic_write(
            self._path_for(pending.state), json.dumps(data, indent=2) + "\n", mode=0o600
        )

    def pop(self, state: str) -> Optional[PendingAuthorization]:
        """Remove and return the pending request for *state*.

        Returns ``None`` for unknown or expired states. A state can be
        consumed only once.
        """
        path = self._path_for(state)
        data = _read_json(path)
        path.unlink(missing_ok=True)
        if data is None:
            return None
        try:
            pending = PendingAuthorization.model_validate(data)
        except ValueError:
            return None
        if pending.state != state or pending.is_stale():
            return None
        return pending
