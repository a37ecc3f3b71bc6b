"""TTL caches for quote data.

Two backends behind one contract:

- ``MemoryCache``: in-process dict guarded by a lock. Lost on restart, which
  is fine for the live price key space.
- ``StoreCache``: serialized entries in the SQLite entry store. Survives
  restarts. Store failures degrade to cache misses and never fail a request.

TTLs are chosen by the caller on every write (in minutes). Expiry is checked
lazily on lookup; nothing sweeps in the background.
"""

import copy
import json
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from errors import EntryNotFoundError
from schemas import CacheEntryInfo
from services.entry_store import EntryStore

logger = logging.getLogger(__name__)

KEY_SEPARATOR = ":"

Clock = Callable[[], float]


def cache_key(section: str, identifier: str) -> str:
    """Build ``section:IDENTIFIER``. Sections can't contain the separator, so keys never collide."""
    if not section or KEY_SEPARATOR in section:
        raise ValueError(f"Invalid cache section: {section!r}")
    return f"{section}{KEY_SEPARATOR}{identifier.upper()}"


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

# Model classes a StoreCache can round-trip, keyed by type tag.
_payload_types: dict[str, type[BaseModel]] = {}


class EntryDecodeError(ValueError):
    pass


def register_payload_type(model: type[BaseModel]) -> type[BaseModel]:
    _payload_types[model.__name__] = model
    return model


def encode_entry(entry: CacheEntry) -> bytes:
    """Serialize an entry as JSON. Models carry a type tag; plain JSON values don't."""
    value = entry.value
    if isinstance(value, BaseModel):
        type_name = type(value).__name__
        if _payload_types.get(type_name) is not type(value):
            raise TypeError(f"Unregistered cache payload type: {type_name}")
        data = value.model_dump(mode="json")
    else:
        type_name = None
        data = value
    payload = {"type": type_name, "value": data, "expires_at": entry.expires_at}
    return json.dumps(payload).encode("utf-8")


def decode_entry(content: bytes) -> CacheEntry:
    try:
        payload = json.loads(content)
        type_name = payload["type"]
        value = payload["value"]
        if type_name is not None:
            value = _payload_types[type_name].model_validate(value)
        return CacheEntry(value=value, expires_at=float(payload["expires_at"]))
    except (ValueError, KeyError, TypeError) as e:
        raise EntryDecodeError(f"Undecodable cache entry: {e}") from e


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


class Cache(ABC):
    """Key-value cache with a per-write TTL in minutes.

    Backends behave the same for values that are registered payload models or
    plain JSON (dicts, lists, strings, numbers, bools, None). StoreCache drops
    anything else on ``set`` and hands JSON arrays back as lists.
    """

    backend = "abstract"

    def __init__(self, clock: Clock = time.time):
        self.clock = clock

    @abstractmethod
    def lookup(self, section: str, identifier: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""

    @abstractmethod
    def set(self, section: str, identifier: str, value: Any, ttl_minutes: int) -> None:
        """Store value, replacing any existing entry for the key."""

    @abstractmethod
    def remove(self, section: str, identifier: str) -> None:
        """Drop one entry. Removing an absent key is a no-op."""

    @abstractmethod
    def reset(self) -> None:
        """Drop every entry."""

    def close(self) -> None:
        pass

    def _entry(self, value: Any, ttl_minutes: int) -> CacheEntry:
        return CacheEntry(value=value, expires_at=self.clock() + ttl_minutes * 60)


class MemoryCache(Cache):
    backend = "memory"

    def __init__(self, clock: Clock = time.time):
        super().__init__(clock)
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def lookup(self, section: str, identifier: str) -> Any | None:
        key = cache_key(section, identifier)
        now = self.clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._store[key]
                return None
        # Stored values are never mutated, so copying outside the lock is safe.
        return copy.deepcopy(entry.value)

    def set(self, section: str, identifier: str, value: Any, ttl_minutes: int) -> None:
        key = cache_key(section, identifier)
        entry = self._entry(copy.deepcopy(value), ttl_minutes)
        with self._lock:
            self._store[key] = entry

    def remove(self, section: str, identifier: str) -> None:
        key = cache_key(section, identifier)
        with self._lock:
            self._store.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


class StoreCache(Cache):
    """Cache persisted through an EntryStore. All store errors are best-effort."""

    backend = "store"

    def __init__(self, store: EntryStore, clock: Clock = time.time):
        super().__init__(clock)
        self.store = store

    def lookup(self, section: str, identifier: str) -> Any | None:
        key = cache_key(section, identifier)
        entry = self._load(key)
        if entry is None or entry.is_expired(self.clock()):
            return None
        return entry.value

    def set(self, section: str, identifier: str, value: Any, ttl_minutes: int) -> None:
        key = cache_key(section, identifier)
        try:
            content = encode_entry(self._entry(value, ttl_minutes))
        except (TypeError, ValueError) as e:
            logger.warning("Cannot serialize cache entry %s: %s", key, e)
            return
        try:
            self.store.put(key, content)
        except SQLAlchemyError as e:
            logger.warning("Cache store write failed for %s: %s", key, e)

    def remove(self, section: str, identifier: str) -> None:
        key = cache_key(section, identifier)
        try:
            self.store.delete(key)
        except SQLAlchemyError as e:
            logger.warning("Cache store delete failed for %s: %s", key, e)

    def reset(self) -> None:
        try:
            self.store.clear()
        except SQLAlchemyError as e:
            logger.warning("Cache store reset failed: %s", e)

    def close(self) -> None:
        self.store.dispose()

    def describe(self, section: str, identifier: str) -> CacheEntryInfo:
        """Inspect the stored row for a key, expired or not. Store errors propagate."""
        key = cache_key(section, identifier)
        content = self.store.get(key)
        if content is None:
            raise EntryNotFoundError(key)
        try:
            entry = decode_entry(content)
        except EntryDecodeError as e:
            logger.warning("Discarding undecodable cache entry %s: %s", key, e)
            raise EntryNotFoundError(key) from e
        return CacheEntryInfo(
            key=key,
            type=type(entry.value).__name__ if isinstance(entry.value, BaseModel) else None,
            expires_at=entry.expires_at,
            expired=entry.is_expired(self.clock()),
        )

    def _load(self, key: str) -> CacheEntry | None:
        try:
            content = self.store.get(key)
        except SQLAlchemyError as e:
            logger.warning("Cache store lookup failed for %s: %s", key, e)
            return None
        if content is None:
            return None
        try:
            return decode_entry(content)
        except EntryDecodeError as e:
            logger.warning("Discarding undecodable cache entry %s: %s", key, e)
            return None
