"""Token storage helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from mtaa.auth.constants import (
    ACCESS_TOKEN_KEY,
    LOCK_SUFFIX,
    REFRESH_TOKEN_KEY,
)
from mtaa.auth.models import TokenPair
from mtaa.utils.helpers import ensure_dir

logger = logging.getLogger(__name__)


class TokenStore:
    """
    Durable access/refresh credential slots.

    Each slot is a named string stored in a JSON file shared by every client
    on this machine. With ``path=None`` the slots only live in memory.
    """

    def __init__(self, path: Path | None = None):
        self._path = path
        self._slots: dict[str, str] = {}

    @property
    def path(self) -> Path | None:
        return self._path

    def set_tokens(self, tokens: TokenPair) -> None:
        with self._locked():
            slots = self._read()
            slots[ACCESS_TOKEN_KEY] = tokens.access
            slots[REFRESH_TOKEN_KEY] = tokens.refresh
            self._write(slots)

    def get_access_token(self) -> str | None:
        return self._read().get(ACCESS_TOKEN_KEY)

    def get_refresh_token(self) -> str | None:
        return self._read().get(REFRESH_TOKEN_KEY)

    def clear_tokens(self) -> None:
        with self._locked():
            slots = self._read()
            slots.pop(ACCESS_TOKEN_KEY, None)
            slots.pop(REFRESH_TOKEN_KEY, None)
            self._write(slots)

    def is_authenticated(self) -> bool:
        # Presence only; an expired access token still counts until a call fails.
        return bool(self.get_access_token())

    def _locked(self) -> "_FileLock | _NullLock":
        if self._path is None:
            return _NullLock()
        return _FileLock(self._path.with_suffix(LOCK_SUFFIX))

    def _read(self) -> dict[str, str]:
        if self._path is None:
            return {k: v for k, v in self._slots.items() if v}
        return _load_slot_file(self._path)

    def _write(self, slots: dict[str, str]) -> None:
        if self._path is None:
            self._slots = dict(slots)
            return
        _save_slot_file(self._path, slots)


def _load_slot_file(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.debug("Ignoring unreadable session file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    return {k: v for k, v in data.items() if isinstance(v, str) and v}


def _save_slot_file(path: Path, slots: dict[str, str]) -> None:
    ensure_dir(path.parent)
    path.write_text(
        json.dumps(slots, ensure_ascii=True, indent=2),
        encoding="utf-8",
    )
    try:
        os.chmod(path, 0o600)
    except OSError:
        # Ignore permission setting failures.
        pass


class _NullLock:
    def __enter__(self) -> "_NullLock":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


class _FileLock:
    """Simple file lock so concurrent processes do not interleave writes."""

    def __init__(self, path: Path):
        self._path = path
        self._fp = None

    def __enter__(self) -> "_FileLock":
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._fp = open(self._path, "a+")
        try:
            import fcntl

            fcntl.flock(self._fp.fileno(), fcntl.LOCK_EX)
        except (ImportError, OSError):
            # Non-POSIX or failed lock: continue without locking.
            pass
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            import fcntl

            fcntl.flock(self._fp.fileno(), fcntl.LOCK_UN)
        except (ImportError, OSError):
            pass
        if self._fp:
            self._fp.close()
