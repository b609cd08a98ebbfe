# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Provide cache providers, the namespaced cache facade and provider factories."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal

from ..errors import ConfigError
from .interfaces import CacheProvider
from .providers import DEFAULT_MAX_ENTRIES, DirectoryCacheProvider, InMemoryCacheProvider
from .store import Cache

ProviderKind = Literal["memory", "directory"]
_PROVIDER_ENV_VAR: Final[str] = "DIVERSITY_CACHE_PROVIDER"
_MEMORY_KIND: Final[ProviderKind] = "memory"
_DIRECTORY_KIND: Final[ProviderKind] = "directory"


@dataclass(frozen=True, slots=True)
class CacheSettings:
    """Define cache provider selection parameters.

    Attributes:
        kind: Backend identifier. ``"memory"`` yields an in-process cache, while
            ``"directory"`` persists JSON-serialisable values on disk.
        directory: Filesystem directory used when ``kind`` is ``"directory"``.
        max_entries: Optional bound on the number of stored entries.
    """

    kind: ProviderKind = _MEMORY_KIND
    directory: Path | None = None
    max_entries: int | None = DEFAULT_MAX_ENTRIES


def _settings_from_environment(env: Mapping[str, str], max_entries: int | None) -> CacheSettings | None:
    """Parse cache settings from ``env`` when an override is configured.

    Raises:
        ConfigError: If an unsupported provider kind is requested or a
            directory-backed provider omits the directory path.
    """

    specification = env.get(_PROVIDER_ENV_VAR)
    if not specification:
        return None

    token, _, remainder = specification.partition(":")
    kind = token.strip().lower()
    if kind == _MEMORY_KIND:
        return CacheSettings(kind=_MEMORY_KIND, max_entries=max_entries)

    if kind == _DIRECTORY_KIND:
        path_token = remainder.strip()
        if not path_token:
            raise ConfigError(f"{_PROVIDER_ENV_VAR}=directory requires a directory path")
        return CacheSettings(kind=_DIRECTORY_KIND, directory=Path(path_token).expanduser(), max_entries=max_entries)

    raise ConfigError(f"Unsupported cache provider specified via {_PROVIDER_ENV_VAR}: {specification!r}")


def resolve_cache_settings(
    settings: CacheSettings | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> CacheSettings:
    """Return cache settings with the environment override applied.

    The ``DIVERSITY_CACHE_PROVIDER`` variable (``memory`` or
    ``directory:<path>``) takes precedence over ``settings``; the entry bound
    of ``settings`` is kept.
    """

    environment = os.environ if env is None else env
    max_entries = settings.max_entries if settings is not None else DEFAULT_MAX_ENTRIES
    env_settings = _settings_from_environment(environment, max_entries)
    if env_settings is not None:
        return env_settings
    return settings or CacheSettings()


def create_cache_provider(
    settings: CacheSettings | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> CacheProvider:
    """Build a cache provider configured according to ``settings``.

    Raises:
        ConfigError: If directory-backed caching is requested without a directory.
    """

    resolved = resolve_cache_settings(settings, env=env)
    if resolved.kind == _MEMORY_KIND:
        return InMemoryCacheProvider(max_entries=resolved.max_entries)

    if resolved.directory is None:
        raise ConfigError("CacheSettings.directory must be set for directory-backed providers")
    return DirectoryCacheProvider(resolved.directory, max_entries=resolved.max_entries)


__all__ = [
    "DEFAULT_MAX_ENTRIES",
    "Cache",
    "CacheProvider",
    "CacheSettings",
    "DirectoryCacheProvider",
    "InMemoryCacheProvider",
    "create_cache_provider",
    "resolve_cache_settings",
]
