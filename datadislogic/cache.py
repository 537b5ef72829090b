"""
Expiring, best-effort key-value cache.

Values are wrapped in a CacheEntry envelope ({value, storedAt, expiresAt},
epoch milliseconds) and persisted as JSON text in a pluggable store. The
cache never raises into the caller's data flow: read problems degrade to a
miss, write problems to a dropped write.
"""

from __future__ import annotations

import json
import math
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

from loguru import logger
from pydantic import ValidationError

from . import exceptions
from .config import CacheConfig
from .types import CacheEntry

MS_PER_HOUR = 60 * 60 * 1000


class KeyValueStore(Protocol):
    """Durable string store. set_item raises QuotaExceededError when full."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryStore:
    """
    In-memory store with optional capacity limits.

    Parameters
    ----------
    max_entries:
        Maximum number of keys held; writing a new key beyond it raises.
    max_bytes:
        Maximum total size of keys plus values (UTF-8).
    """

    def __init__(self, max_entries: Optional[int] = None, max_bytes: Optional[int] = None):
        self._data: Dict[str, str] = {}
        self.max_entries = max_entries
        self.max_bytes = max_bytes

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def _size_with(self, key: str, value: str) -> int:
        size = sum(len(k.encode()) + len(v.encode()) for k, v in self._data.items() if k != key)
        return size + len(key.encode()) + len(value.encode())

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if (
            self.max_entries is not None
            and key not in self._data
            and len(self._data) >= self.max_entries
        ):
            raise exceptions.QuotaExceededError(
                f"Store full ({self.max_entries} entries)"
            )
        if self.max_bytes is not None and self._size_with(key, value) > self.max_bytes:
            raise exceptions.QuotaExceededError(
                f"Store quota exceeded ({self.max_bytes} bytes)"
            )
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """
    Store persisted as a single JSON object on disk.

    Every write rewrites the file atomically (temp file + os.replace);
    max_bytes bounds the serialized document size.
    """

    def __init__(self, path: str | os.PathLike, max_bytes: Optional[int] = None):
        self.path = Path(path)
        self.max_bytes = max_bytes

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable cache file {}: {}", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: Dict[str, str]) -> None:
        text = json.dumps(data)
        if self.max_bytes is not None and len(text.encode()) > self.max_bytes:
            raise exceptions.QuotaExceededError(
                f"Cache file quota exceeded ({self.max_bytes} bytes)"
            )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)

    def keys(self) -> list[str]:
        return list(self._load())


class TTLCache:
    """
    Expiring cache over a KeyValueStore.

    - set() stamps storedAt/expiresAt; on quota pressure it evicts the oldest
      entries and retries exactly once, then gives up quietly.
    - get() expires lazily: an entry past expiresAt is deleted on read.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        *,
        clock: Callable[[], float] = time.time,
        default_ttl_hours: float = 24,
        evict_min: int = 3,
        evict_fraction: float = 0.2,
    ) -> None:
        self.store: KeyValueStore = store if store is not None else MemoryStore()
        self._clock = clock
        self.default_ttl_hours = default_ttl_hours
        self.evict_min = evict_min
        self.evict_fraction = evict_fraction

    @classmethod
    def from_config(
        cls,
        cfg: CacheConfig,
        store: Optional[KeyValueStore] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> "TTLCache":
        return cls(
            store,
            clock=clock,
            default_ttl_hours=cfg.default_ttl_hours,
            evict_min=cfg.evict_min,
            evict_fraction=cfg.evict_fraction,
        )

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    def set(self, key: str, value: Any, ttl_hours: Optional[float] = None) -> bool:
        """Store value under key; returns False when the write was dropped."""
        ttl = self.default_ttl_hours if ttl_hours is None else ttl_hours
        now = self._now_ms()
        try:
            entry = CacheEntry(value=value, stored_at=now, expires_at=now + ttl * MS_PER_HOUR)
            payload = entry.model_dump_json(by_alias=True)
        except (TypeError, ValueError) as exc:
            logger.warning("Failed to cache data for key {}: {}", key, exc)
            return False

        try:
            self._write(key, payload)
            return True
        except exceptions.QuotaExceededError:
            logger.warning("Storage quota exceeded. Clearing older cached items...")
        except exceptions.CacheWriteError as exc:
            logger.warning("Failed to cache data for key {}: {}", key, exc)
            return False

        try:
            self.evict_oldest()
            self._write(key, payload)
            return True
        except exceptions.CacheWriteError as exc:
            logger.warning("Failed to make space for key {}: {}", key, exc)
            return False

    def _write(self, key: str, payload: str) -> None:
        try:
            self.store.set_item(key, payload)
        except exceptions.CacheWriteError:
            raise
        except Exception as exc:
            raise exceptions.CacheWriteError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Unexpired entry for key, or None. Expired and malformed entries are removed."""
        try:
            raw = self.store.get_item(key)
        except Exception as exc:
            logger.warning("Failed to retrieve cache for key {}: {}", key, exc)
            return None
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError:
            logger.warning("Malformed cache entry for key {}; removing", key)
            self.delete(key)
            return None

        if entry.is_expired(self._now_ms()):
            logger.debug("Cache entry {} expired; removing", key)
            self.delete(key)
            return None
        return entry

    def get(self, key: str) -> Any:
        entry = self.get_entry(key)
        return None if entry is None else entry.value

    def delete(self, key: str) -> None:
        try:
            self.store.remove_item(key)
        except Exception as exc:
            logger.warning("Failed to remove cache key {}: {}", key, exc)

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def _timestamped(self) -> Iterator[tuple[str, float]]:
        for key in self.store.keys():
            raw = self.store.get_item(key)
            if raw is None:
                continue
            try:
                item = json.loads(raw)
            except ValueError:
                continue
            stored = item.get("storedAt") if isinstance(item, dict) else None
            if isinstance(stored, (int, float)) and not isinstance(stored, bool):
                yield key, float(stored)

    def evict_oldest(self) -> list[str]:
        """
        Remove the oldest max(evict_min, ceil(evict_fraction * n)) entries,
        where n counts store items that carry a storedAt timestamp.
        """
        try:
            candidates = sorted(self._timestamped(), key=lambda kv: kv[1])
        except Exception as exc:
            logger.warning("Could not scan cache for eviction: {}", exc)
            return []

        count = max(self.evict_min, math.ceil(len(candidates) * self.evict_fraction))
        removed = []
        for key, _ in candidates[:count]:
            self.delete(key)
            removed.append(key)
            logger.debug("Removed old cache item: {}", key)
        return removed
