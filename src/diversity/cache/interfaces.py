# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Cache provider contract shared by the registry, schema and fragment caches."""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from ..types import JSONValue


@runtime_checkable
class CacheProvider(Protocol):
    """Define the contract implemented by cache backends.

    Providers must be safe to call from several threads. Values are restricted
    to JSON-serialisable data so directory-backed providers can round-trip
    every entry.
    """

    @abstractmethod
    def get(self, key: str) -> JSONValue | None:
        """Fetch the cached value associated with ``key`` when present.

        Args:
            key: Unique identifier representing the cached entry.

        Returns:
            JSONValue | None: Cached value when present and unexpired, otherwise ``None``.
        """
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: JSONValue, *, ttl_seconds: float | None = None) -> None:
        """Store ``value`` under ``key`` with an optional TTL expressed in seconds.

        Args:
            key: Unique identifier representing the cached entry.
            value: JSON-serialisable value to store under ``key``.
            ttl_seconds: Optional time-to-live in seconds; ``None`` disables expiry.

        Raises:
            CacheBackendFailure: If the backend fails to persist the entry.
        """
        raise NotImplementedError

    @abstractmethod
    def contains(self, key: str) -> bool:
        """Return ``True`` when an unexpired entry exists for ``key``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove any cached value associated with ``key``."""
        raise NotImplementedError

    @abstractmethod
    def delete_prefix(self, prefix: str) -> None:
        """Remove every cached value whose key starts with ``prefix``."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Remove all cached values managed by the provider."""
        raise NotImplementedError


__all__ = ["CacheProvider"]
