# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for cache providers, the namespaced cache facade and provider selection."""

from __future__ import annotations

import json
import os
import threading
import time
from pathlib import Path

import pytest

from diversity.cache import (
    Cache,
    CacheSettings,
    DirectoryCacheProvider,
    InMemoryCacheProvider,
    create_cache_provider,
    resolve_cache_settings,
)
from diversity.errors import CacheBackendFailure, ConfigError


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_in_memory_expiry() -> None:
    clock = FakeClock()
    provider = InMemoryCacheProvider(clock=clock)
    provider.set("key", {"a": 1}, ttl_seconds=10)

    assert provider.get("key") == {"a": 1}
    assert provider.contains("key")

    clock.now += 10
    assert provider.get("key") is None
    assert not provider.contains("key")


def test_in_memory_without_ttl_never_expires() -> None:
    clock = FakeClock()
    provider = InMemoryCacheProvider(clock=clock)
    provider.set("key", "value")

    clock.now += 10**9
    assert provider.get("key") == "value"


def test_in_memory_evicts_least_recently_used() -> None:
    provider = InMemoryCacheProvider(max_entries=2)
    provider.set("a", 1)
    provider.set("b", 2)
    assert provider.get("a") == 1

    provider.set("c", 3)

    assert provider.get("b") is None
    assert provider.get("a") == 1
    assert provider.get("c") == 3
    assert len(provider) == 2


def test_in_memory_delete_prefix_and_clear() -> None:
    provider = InMemoryCacheProvider()
    provider.set("listing:a", 1)
    provider.set("listing:b", 2)
    provider.set("schema:a", 3)

    provider.delete_prefix("listing:")
    assert provider.get("listing:a") is None
    assert provider.get("schema:a") == 3

    provider.delete("schema:a")
    assert not provider.contains("schema:a")

    provider.set("x", 1)
    provider.clear()
    assert len(provider) == 0


def test_directory_round_trip_and_envelope(tmp_path: Path) -> None:
    provider = DirectoryCacheProvider(tmp_path / "cache")
    provider.set("key", {"nested": [1, 2]}, ttl_seconds=60)

    assert provider.get("key") == {"nested": [1, 2]}
    files = list((tmp_path / "cache").glob("*.json"))
    assert len(files) == 1
    envelope = json.loads(files[0].read_text(encoding="utf-8"))
    assert envelope["key"] == "key"
    assert envelope["value"] == {"nested": [1, 2]}
    assert isinstance(envelope["expires_at"], float)


def test_directory_expiry_uses_clock(tmp_path: Path) -> None:
    clock = FakeClock()
    provider = DirectoryCacheProvider(tmp_path, clock=clock)
    provider.set("key", 1, ttl_seconds=5)

    clock.now += 5

    assert not provider.contains("key")
    assert provider.get("key") is None
    assert not list(tmp_path.glob("*.json"))


def test_directory_survives_new_provider(tmp_path: Path) -> None:
    DirectoryCacheProvider(tmp_path).set("key", "persisted")

    assert DirectoryCacheProvider(tmp_path).get("key") == "persisted"


def test_directory_evicts_oldest_file(tmp_path: Path) -> None:
    provider = DirectoryCacheProvider(tmp_path, max_entries=2)
    provider.set("old", 1)
    provider.set("newer", 2)
    now = time.time()
    os.utime(provider._path_for("old"), (now - 100, now - 100))
    os.utime(provider._path_for("newer"), (now - 50, now - 50))

    provider.set("newest", 3)

    assert provider.get("old") is None
    assert provider.get("newer") == 2
    assert provider.get("newest") == 3


def test_directory_discards_corrupt_files(tmp_path: Path) -> None:
    provider = DirectoryCacheProvider(tmp_path)
    provider.set("key", 1)
    path = provider._path_for("key")
    path.write_text("{not json", encoding="utf-8")

    assert provider.get("key") is None
    assert not path.exists()


def test_directory_rejects_unserialisable_values(tmp_path: Path) -> None:
    provider = DirectoryCacheProvider(tmp_path)

    with pytest.raises(CacheBackendFailure):
        provider.set("key", {"value": object()})  # type: ignore[dict-item]
    assert not list(tmp_path.iterdir())


def test_directory_delete_prefix(tmp_path: Path) -> None:
    provider = DirectoryCacheProvider(tmp_path)
    provider.set("fragment:1", 1)
    provider.set("schema:1", 2)

    provider.delete_prefix("fragment:")

    assert provider.get("fragment:1") is None
    assert provider.get("schema:1") == 2


def test_namespaces_do_not_collide() -> None:
    provider = InMemoryCacheProvider()
    listing = Cache(provider, namespace="listing", options=("/srv/a",))
    other_listing = Cache(provider, namespace="listing", options=("/srv/b",))
    schema = Cache(provider, namespace="schema")

    listing.set("index", 1)
    other_listing.set("index", 2)
    schema.set("index", 3)

    assert listing.get("index") == 1
    assert other_listing.get("index") == 2
    assert schema.get("index") == 3

    listing.invalidate()
    assert listing.get("index") is None
    assert other_listing.get("index") == 2
    assert schema.get("index") == 3


def test_get_or_compute_stores_once() -> None:
    cache = Cache(InMemoryCacheProvider(), namespace="schema", default_ttl=60)
    calls: list[str] = []

    def compute() -> dict[str, int]:
        calls.append("computed")
        return {"value": 1}

    assert cache.get_or_compute("key", compute) == {"value": 1}
    assert cache.get_or_compute("key", compute) == {"value": 1}
    assert calls == ["computed"]
    assert cache.contains("key")


def test_get_or_compute_recomputes_after_expiry() -> None:
    clock = FakeClock()
    cache = Cache(InMemoryCacheProvider(clock=clock), namespace="fragment", default_ttl=60)
    calls: list[int] = []

    def compute() -> int:
        calls.append(len(calls))
        return len(calls)

    assert cache.get_or_compute("key", compute) == 1
    clock.now += 59
    assert cache.get_or_compute("key", compute) == 1
    clock.now += 2
    assert cache.get_or_compute("key", compute) == 2
    assert calls == [0, 1]


def test_get_or_compute_does_not_store_none() -> None:
    cache = Cache(InMemoryCacheProvider(), namespace="schema")
    calls: list[str] = []

    def compute() -> None:
        calls.append("computed")

    assert cache.get_or_compute("key", compute) is None
    assert cache.get_or_compute("key", compute) is None
    assert len(calls) == 2


def test_get_or_compute_is_single_flight() -> None:
    cache = Cache(InMemoryCacheProvider(), namespace="fragment")
    started = threading.Event()
    release = threading.Event()
    calls: list[int] = []
    results: list[object] = []

    def compute() -> int:
        calls.append(1)
        started.set()
        release.wait(timeout=5)
        return 42

    def worker() -> None:
        results.append(cache.get_or_compute("key", compute))

    first = threading.Thread(target=worker)
    first.start()
    assert started.wait(timeout=5)
    second = threading.Thread(target=worker)
    second.start()
    release.set()
    first.join(timeout=5)
    second.join(timeout=5)

    assert results == [42, 42]
    assert calls == [1]


def test_invalidate_single_key() -> None:
    cache = Cache(InMemoryCacheProvider(), namespace="api")
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")

    assert cache.get("a") is None
    assert cache.get("b") == 2


def test_environment_selects_directory_provider(tmp_path: Path) -> None:
    env = {"DIVERSITY_CACHE_PROVIDER": f"directory:{tmp_path / 'env-cache'}"}

    provider = create_cache_provider(CacheSettings(max_entries=5), env=env)

    assert isinstance(provider, DirectoryCacheProvider)
    assert provider.directory == tmp_path / "env-cache"


def test_environment_memory_override_keeps_bound(tmp_path: Path) -> None:
    settings = resolve_cache_settings(
        CacheSettings(kind="directory", directory=tmp_path, max_entries=7),
        env={"DIVERSITY_CACHE_PROVIDER": "memory"},
    )

    assert settings == CacheSettings(kind="memory", max_entries=7)


@pytest.mark.parametrize("value", ["directory", "directory:", "redis"])
def test_environment_rejects_bad_providers(value: str) -> None:
    with pytest.raises(ConfigError):
        create_cache_provider(env={"DIVERSITY_CACHE_PROVIDER": value})


def test_directory_settings_need_a_directory() -> None:
    with pytest.raises(ConfigError):
        create_cache_provider(CacheSettings(kind="directory"), env={})
