"""Key-value persistence for migration state.

The engine talks to an async gateway with ``get``/``set``. Gateways that
can also enumerate and delete keys support pruning of stale completion
markers. Any gateway failure surfaces as :class:`PersistenceError`.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from markwell.errors import PersistenceError

logger = logging.getLogger(__name__)

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "gclid",
        "fbclid",
        "mc_cid",
        "mc_eid",
        "igshid",
        "vero_id",
    }
)


def normalize_url(raw_url: str) -> str:
    """Normalise a page URL so equivalent addresses share one storage key.

    Drops the fragment, tracking parameters and a trailing slash (the root
    path keeps its slash). Relative or unparsable URLs are returned as-is.
    """
    if not raw_url:
        return ""
    if "://" not in raw_url:
        return raw_url
    try:
        parts = urlsplit(raw_url)
    except ValueError:
        logger.warning("Could not normalise URL %r", raw_url)
        return raw_url

    query = urlencode(
        [
            (name, value)
            for name, value in parse_qsl(parts.query, keep_blank_values=True)
            if name not in TRACKING_PARAMS
        ]
    )
    path = parts.path
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")
    if not path:
        path = "/"
    return urlunsplit((parts.scheme, parts.netloc.lower(), path, query, ""))


def state_key(url: str, prefix: str = "migration_state") -> str:
    return f"{prefix}:{normalize_url(url)}"


class PersistenceGateway(Protocol):
    """Async key-value store for JSON-compatible values."""

    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None if absent."""
        ...

    async def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        ...


@runtime_checkable
class PrunablePersistence(PersistenceGateway, Protocol):
    """Gateway that can also list and delete keys."""

    async def keys(self) -> list[str]: ...

    async def remove(self, keys: list[str]) -> None: ...


class InMemoryPersistence:
    """Dict-backed gateway; values are deep-copied in and out."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial or {})
        self.writes = 0

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        self.writes += 1

    async def keys(self) -> list[str]:
        return list(self._data)

    async def remove(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


class JsonFilePersistence:
    """Gateway storing all keys in one JSON object on disk.

    File I/O runs in a worker thread; a lock serialises read-modify-write
    cycles from one process.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            msg = f"Failed to read {self.path}: {exc}"
            raise PersistenceError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{self.path} does not contain a JSON object"
            raise PersistenceError(msg)
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
            tmp.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            msg = f"Failed to write {self.path}: {exc}"
            raise PersistenceError(msg) from exc

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def set(self, key: str, value: Any) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            data[key] = value
            await asyncio.to_thread(self._dump, data)

    async def keys(self) -> list[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
        return list(data)

    async def remove(self, keys: list[str]) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            changed = False
            for key in keys:
                if data.pop(key, None) is not None:
                    changed = True
            if changed:
                await asyncio.to_thread(self._dump, data)
