# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for configuration loading and the factories built on it."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from diversity.cache import DirectoryCacheProvider, InMemoryCacheProvider
from diversity.config import (
    CompoundRegistryConfig,
    DiversityConfig,
    LocalRegistryConfig,
    load_config,
    local_config,
    parse_config,
)
from diversity.errors import ConfigError
from diversity.factory import build_cache_provider, build_engine, build_registry
from diversity.registry import CompoundRegistry, LocalRegistry, RegistryMode


def test_defaults() -> None:
    config = DiversityConfig()

    assert isinstance(config.registry, LocalRegistryConfig)
    assert config.cache.kind == "memory"
    assert config.engine.validate_settings is True
    assert config.logging.level == "WARNING"


def test_relative_paths_resolve_against_the_config_file(tmp_path: Path) -> None:
    path = tmp_path / "diversity.config.json"
    path.write_text(
        json.dumps(
            {
                "registry": {"type": "local", "options": {"base_path": "components", "mode": "dryrun"}},
                "cache": {"kind": "directory", "directory": ".cache"},
                "logging": {"level": "debug"},
            },
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.registry.options.base_path == tmp_path.resolve() / "components"
    assert config.registry.options.mode is RegistryMode.DRYRUN
    assert config.cache.directory == tmp_path.resolve() / ".cache"
    assert config.logging.level == "DEBUG"


def test_compound_registry_with_fallback(tmp_path: Path, components_root: Path) -> None:
    config = parse_config(
        {
            "registry": {
                "type": "compound",
                "registries": [
                    {
                        "name": "primary",
                        "registry": {
                            "type": "local",
                            "options": {
                                "base_path": "primary",
                                "fallback": {"type": "local", "options": {"base_path": str(components_root)}},
                            },
                        },
                    },
                ],
            },
        },
        base_dir=tmp_path,
    )

    assert isinstance(config.registry, CompoundRegistryConfig)
    registry = build_registry(config.registry, InMemoryCacheProvider())
    assert isinstance(registry, CompoundRegistry)
    assert [entry.name for entry in registry.entries] == ["primary"]
    local = registry.entries[0].registry
    assert isinstance(local, LocalRegistry)
    assert local.base_path == (tmp_path / "primary").resolve()
    assert registry.get_component("dummy") is not None


@pytest.mark.parametrize(
    "data",
    [
        {"registry": {"type": "ftp", "options": {}}},
        {"cache": {"kind": "memory", "max_entries": 0}},
        {"logging": {"level": "chatty"}},
        {"unknown": True},
    ],
)
def test_invalid_configuration(data: dict[str, object]) -> None:
    with pytest.raises(ConfigError):
        parse_config(data)


def test_load_config_reports_bad_files(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")

    with pytest.raises(ConfigError, match="not valid JSON"):
        load_config(broken)
    with pytest.raises(ConfigError, match="Cannot read"):
        load_config(tmp_path / "missing.json")


def test_build_cache_provider(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DIVERSITY_CACHE_PROVIDER", raising=False)
    config = parse_config({"cache": {"kind": "directory", "directory": str(tmp_path / "cache")}})

    assert isinstance(build_cache_provider(config.cache), DirectoryCacheProvider)
    assert isinstance(build_cache_provider(DiversityConfig().cache), InMemoryCacheProvider)


def test_build_engine_renders_from_configuration(components_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DIVERSITY_CACHE_PROVIDER", raising=False)
    config = local_config(components_root)
    engine = build_engine(config)

    component = engine.registry.get_component("sub_one")

    assert engine.render(component, settings={"text": "configured"}) == "<p>configured</p>"
