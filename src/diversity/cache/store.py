# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Namespaced cache facade with single-flight computation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from threading import Lock

from ..types import JSONValue
from .interfaces import CacheProvider

LOGGER = logging.getLogger(__name__)

_SEPARATOR = "\x1f"


class _KeyLocks:
    """Hand out one lock per key, dropping it once no thread holds it."""

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[str, tuple[Lock, int]] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (Lock(), 0))
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[key]
                if users <= 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


class Cache:
    """Key/value cache bound to a namespace and a set of option values.

    The namespace and options are folded into every provider key so caches
    sharing one provider never collide. ``get_or_compute`` runs the
    computation at most once per key at a time within the process; concurrent
    callers for the same key wait for the first computation and reuse its
    result. ``None`` results are returned but never stored.
    """

    def __init__(
        self,
        provider: CacheProvider,
        *,
        namespace: str,
        default_ttl: float | None = None,
        options: Sequence[object] = (),
    ) -> None:
        """Initialise the cache facade.

        Args:
            provider: Backend storing the entries.
            namespace: Purpose of the cache (``listing``, ``schema``, ``fragment`` ...).
            default_ttl: Expiry applied when callers do not pass a TTL.
            options: Values affecting cached results, folded into every key.
        """

        self._provider = provider
        self._namespace = namespace
        self._default_ttl = default_ttl
        self._prefix = _SEPARATOR.join([namespace, *(repr(option) for option in options)]) + _SEPARATOR
        self._locks = _KeyLocks()

    @property
    def namespace(self) -> str:
        """Return the namespace the cache is bound to."""

        return self._namespace

    @property
    def provider(self) -> CacheProvider:
        """Return the backing provider."""

        return self._provider

    def key_for(self, key: str) -> str:
        """Return the provider key used for ``key``."""

        return f"{self._prefix}{key}"

    def get(self, key: str) -> JSONValue | None:
        """Return the cached value for ``key`` or ``None`` on a miss."""

        return self._provider.get(self.key_for(key))

    def set(self, key: str, value: JSONValue, *, ttl: float | None = None) -> None:
        """Store ``value`` for ``key``.

        Raises:
            CacheBackendFailure: If the provider cannot persist the entry.
        """

        self._provider.set(self.key_for(key), value, ttl_seconds=self._ttl(ttl))

    def contains(self, key: str) -> bool:
        """Return ``True`` when an unexpired entry exists for ``key``."""

        return self._provider.contains(self.key_for(key))

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], JSONValue],
        *,
        ttl: float | None = None,
    ) -> JSONValue:
        """Return the cached value for ``key``, computing and storing it on a miss.

        Args:
            key: Cache key within the namespace.
            compute: Callable producing the value on a miss.
            ttl: Optional expiry overriding the default TTL.

        Returns:
            JSONValue: Cached or freshly computed value.

        Raises:
            CacheBackendFailure: If the provider cannot persist the computed value.
        """

        full_key = self.key_for(key)
        cached = self._provider.get(full_key)
        if cached is not None:
            LOGGER.debug("Cache hit %s/%s", self._namespace, key)
            return cached
        with self._locks.hold(full_key):
            cached = self._provider.get(full_key)
            if cached is not None:
                return cached
            LOGGER.debug("Cache miss %s/%s", self._namespace, key)
            value = compute()
            if value is not None:
                self._provider.set(full_key, value, ttl_seconds=self._ttl(ttl))
            return value

    def invalidate(self, key: str | None = None) -> None:
        """Drop one entry, or every entry of the namespace when ``key`` is ``None``."""

        if key is None:
            self._provider.delete_prefix(self._prefix)
        else:
            self._provider.delete(self.key_for(key))

    def _ttl(self, ttl: float | None) -> float | None:
        return self._default_ttl if ttl is None else ttl


__all__ = ["Cache"]
