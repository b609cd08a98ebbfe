# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Concrete cache provider implementations."""

from __future__ import annotations

import json
import logging
import os
import time
from collections import OrderedDict
from collections.abc import Callable
from hashlib import sha256
from pathlib import Path
from threading import RLock
from typing import Final

from ..errors import CacheBackendFailure
from ..types import JSONValue
from .interfaces import CacheProvider

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_MAX_ENTRIES: Final[int] = 100


class InMemoryCacheProvider(CacheProvider):
    """Provide an in-memory cache with TTL expiry and an optional LRU bound."""

    def __init__(self, *, max_entries: int | None = None, clock: Clock = time.monotonic) -> None:
        """Initialise the provider.

        Args:
            max_entries: Maximum number of live entries, ``None`` for unbounded.
            clock: Monotonic clock used for expiry calculations.
        """

        self._store: OrderedDict[str, tuple[float | None, JSONValue]] = OrderedDict()
        self._lock = RLock()
        self._max_entries = max_entries
        self._clock = clock

    def get(self, key: str) -> JSONValue | None:
        """Return the cached value for ``key`` when it has not expired."""

        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at is not None and expires_at <= now:
                self._store.pop(key, None)
                return None
            self._store.move_to_end(key)
            return value

    def set(self, key: str, value: JSONValue, *, ttl_seconds: float | None = None) -> None:
        """Store ``value`` for ``key`` with an optional TTL."""

        expires_at = (self._clock() + ttl_seconds) if ttl_seconds is not None else None
        with self._lock:
            self._store[key] = (expires_at, value)
            self._store.move_to_end(key)
            self._evict()

    def contains(self, key: str) -> bool:
        """Return ``True`` when ``key`` holds an unexpired entry."""

        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            expires_at = entry[0]
            if expires_at is not None and expires_at <= now:
                self._store.pop(key, None)
                return False
            return True

    def delete(self, key: str) -> None:
        """Remove the cached value stored for ``key``."""

        with self._lock:
            self._store.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        """Remove every cached value whose key starts with ``prefix``."""

        with self._lock:
            for key in [key for key in self._store if key.startswith(prefix)]:
                del self._store[key]

    def clear(self) -> None:
        """Remove all cached values maintained by the provider."""

        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _evict(self) -> None:
        if self._max_entries is None:
            return
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._store.items() if expires_at is not None and expires_at <= now]
        for key in expired:
            del self._store[key]
        while len(self._store) > self._max_entries:
            evicted, _ = self._store.popitem(last=False)
            LOGGER.debug("Evicted cache entry %s", evicted)


class DirectoryCacheProvider(CacheProvider):
    """Persist cached values on disk as JSON envelopes.

    Each entry is stored as ``{"key", "expires_at", "value"}`` in a file named
    after the SHA-256 digest of its key. Expiry uses wall-clock time so entries
    survive process restarts. When ``max_entries`` is set, the files accessed
    least recently are removed first.
    """

    def __init__(
        self,
        directory: Path,
        *,
        max_entries: int | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._directory = directory
        self._directory.mkdir(parents=True, exist_ok=True)
        self._max_entries = max_entries
        self._clock = clock
        self._lock = RLock()

    @property
    def directory(self) -> Path:
        """Return the directory holding the cache files."""

        return self._directory

    def get(self, key: str) -> JSONValue | None:
        """Return the cached value for ``key`` when an unexpired envelope exists."""

        path = self._path_for(key)
        with self._lock:
            envelope = self._read(path)
            if envelope is None:
                return None
            if self._expired(envelope):
                path.unlink(missing_ok=True)
                return None
            self._touch(path)
            return envelope.get("value")

    def set(self, key: str, value: JSONValue, *, ttl_seconds: float | None = None) -> None:
        """Persist ``value`` for ``key``.

        Raises:
            CacheBackendFailure: If the value is not serialisable or cannot be written.
        """

        expires_at = (self._clock() + ttl_seconds) if ttl_seconds is not None else None
        envelope = {"key": key, "expires_at": expires_at, "value": value}
        path = self._path_for(key)
        temp_path = path.with_suffix(".tmp")
        with self._lock:
            try:
                temp_path.write_text(json.dumps(envelope), encoding="utf-8")
                os.replace(temp_path, path)
            except (OSError, TypeError, ValueError) as exc:
                temp_path.unlink(missing_ok=True)
                raise CacheBackendFailure(f"Failed to write cache entry {key}: {exc}") from exc
            self._evict()

    def contains(self, key: str) -> bool:
        """Return ``True`` when ``key`` holds an unexpired envelope."""

        with self._lock:
            envelope = self._read(self._path_for(key))
            return envelope is not None and not self._expired(envelope)

    def delete(self, key: str) -> None:
        """Remove the cached JSON entry for ``key`` when it exists."""

        with self._lock:
            self._path_for(key).unlink(missing_ok=True)

    def delete_prefix(self, prefix: str) -> None:
        """Remove every cached entry whose key starts with ``prefix``."""

        with self._lock:
            for path in self._directory.glob("*.json"):
                envelope = self._read(path)
                if envelope is None or str(envelope.get("key", "")).startswith(prefix):
                    path.unlink(missing_ok=True)

    def clear(self) -> None:
        """Remove all cached JSON files managed by the provider."""

        with self._lock:
            for child in self._directory.glob("*.json"):
                child.unlink(missing_ok=True)

    def _path_for(self, key: str) -> Path:
        digest = sha256(key.encode("utf-8"), usedforsecurity=False).hexdigest()
        return self._directory / f"{digest}.json"

    def _expired(self, envelope: dict[str, JSONValue]) -> bool:
        expires_at = envelope.get("expires_at")
        return isinstance(expires_at, (int, float)) and expires_at <= self._clock()

    @staticmethod
    def _read(path: Path) -> dict[str, JSONValue] | None:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Discarding unreadable cache file %s: %s", path, exc)
            path.unlink(missing_ok=True)
            return None
        return payload if isinstance(payload, dict) else None

    @staticmethod
    def _touch(path: Path) -> None:
        try:
            os.utime(path)
        except OSError as exc:
            LOGGER.debug("Failed to refresh access time of %s: %s", path, exc)

    def _evict(self) -> None:
        if self._max_entries is None:
            return
        files = sorted(self._directory.glob("*.json"), key=_mtime)
        for path in files[: max(len(files) - self._max_entries, 0)]:
            path.unlink(missing_ok=True)
            LOGGER.debug("Evicted cache file %s", path.name)


def _mtime(path: Path) -> float:
    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


__all__ = ["DEFAULT_MAX_ENTRIES", "DirectoryCacheProvider", "InMemoryCacheProvider"]
