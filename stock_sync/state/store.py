"""Persistent key/value state with expiring (leased) keys.

State lives in one JSON file. Every operation re-reads the file so a CLI
process and a running server see each other's writes. Each read-modify-write
runs under an exclusive ``flock`` on a sidecar ``.lock`` file, and writes go
through a uniquely named temp file and ``os.replace``.
"""

import fcntl
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Generator

from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.state.store")

Clock = Callable[[], datetime]

_LEASES = "_leases"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class StateStore:
    """JSON-file store, safe across threads and processes."""

    def __init__(self, store_path: str | Path, now: Clock = utcnow):
        self._store_path = Path(store_path)
        self._lock_path = self._store_path.with_name(self._store_path.name + ".lock")
        self._now = now
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._store_path

    @contextmanager
    def _locked(self) -> Generator[None, None, None]:
        """Hold the thread lock and an exclusive lock on the sidecar file."""
        with self._lock:
            self._store_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._lock_path, "a", encoding="utf-8") as handle:
                fcntl.flock(handle, fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(handle, fcntl.LOCK_UN)

    def _load(self) -> dict[str, Any]:
        """Read state from disk. Empty state if file missing or invalid."""
        if not self._store_path.exists():
            return {}
        try:
            data = json.loads(self._store_path.read_text(encoding="utf-8"))
        except Exception as e:
            logger.warning("state_store.load_error", path=str(self._store_path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        """Write state to disk. Caller should hold _locked()."""
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._store_path.parent,
                prefix=self._store_path.name + ".",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                json.dump(data, tmp, indent=2, default=str)
            os.replace(tmp_name, self._store_path)
        except Exception as e:
            logger.error("state_store.save_error", path=str(self._store_path), error=str(e))
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        with self._locked():
            return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._locked():
            data = self._load()
            data[key] = value
            self._save(data)

    def delete(self, key: str) -> None:
        with self._locked():
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)

    def update(self, values: dict[str, Any]) -> None:
        """Set several keys in one write."""
        with self._locked():
            data = self._load()
            data.update(values)
            self._save(data)

    # Leases: a key that exists only until its TTL runs out.

    def _live_leases(self, data: dict[str, Any]) -> dict[str, str]:
        now = self._now()
        live: dict[str, str] = {}
        for name, expires in (data.get(_LEASES) or {}).items():
            parsed = from_iso(expires)
            if parsed is not None and parsed > now:
                live[name] = expires
        return live

    def has_lease(self, name: str) -> bool:
        with self._locked():
            return name in self._live_leases(self._load())

    def acquire_lease(self, name: str, ttl_seconds: int) -> bool:
        """Take the lease if free (or expired). Returns False when someone holds it."""
        with self._locked():
            data = self._load()
            leases = self._live_leases(data)
            if name in leases:
                return False
            leases[name] = to_iso(self._now() + timedelta(seconds=ttl_seconds))
            data[_LEASES] = leases
            self._save(data)
            return True

    def set_lease(self, name: str, ttl_seconds: int) -> None:
        """Set (or refresh) the lease unconditionally."""
        with self._locked():
            data = self._load()
            leases = self._live_leases(data)
            leases[name] = to_iso(self._now() + timedelta(seconds=ttl_seconds))
            data[_LEASES] = leases
            self._save(data)

    def release_lease(self, name: str) -> None:
        with self._locked():
            data = self._load()
            leases = data.get(_LEASES) or {}
            if name in leases:
                del leases[name]
                data[_LEASES] = leases
                self._save(data)
