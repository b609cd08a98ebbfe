# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest
from packaging.version import Version

from diversity.component import Component
from diversity.registry import LocalRegistry, Registry
from diversity.versioning import RequirementLike

CDN_URL = "http://cdn.test/components"

TOPONENT_SETTINGS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "sub": {"type": "object", "format": "diversity"},
        "items": {"type": "array", "items": {"type": "object", "format": "diversity"}},
    },
}


class StaticRegistry(Registry):
    """Registry double serving a fixed set of components."""

    def __init__(self, *components: Component) -> None:
        super().__init__()
        self._components = {component.identity: component for component in components}
        self.lookups: list[tuple[str, str]] = []

    def get_component(self, name: str, requirement: RequirementLike = None) -> Component | None:
        self.lookups.append((name, str(requirement)))
        versions = self.matching_versions(name, requirement)
        if not versions:
            return None
        return self._components[(name, versions[0])]

    def installed_components(self) -> dict[str, list[Version]]:
        listing: dict[str, list[Version]] = {}
        for name, version in self._components:
            listing.setdefault(name, []).append(version)
        return {name: sorted(versions, reverse=True) for name, versions in listing.items()}


def write_component(
    root: Path,
    spec: Mapping[str, Any],
    files: Mapping[str, str] | None = None,
    *,
    dev: bool = False,
) -> Path:
    """Write ``spec`` and ``files`` under ``root/<name>/<version>`` (or ``root/<name>`` for dev packages)."""

    directory = root / str(spec["name"])
    if not dev:
        directory = directory / str(spec["version"])
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "diversity.json").write_text(json.dumps(spec), encoding="utf-8")
    for relative, content in (files or {}).items():
        target = directory / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def component_writer() -> Callable[..., Path]:
    return write_component


@pytest.fixture
def static_registry() -> type[StaticRegistry]:
    return StaticRegistry


@pytest.fixture
def components_root(tmp_path: Path) -> Path:
    """Build a small installed component tree used across registry and engine tests."""

    root = tmp_path / "components"
    write_component(
        root,
        {"name": "dummy", "version": "0.0.1", "script": ["js/a.js", "js/b.js"]},
        {"js/a.js": "var a = 1;", "js/b.js": "var b = 2;"},
    )
    write_component(
        root,
        {"name": "weak-sauce", "version": "0.0.4", "dependencies": {"dummy": ">0.0.1"}},
    )
    write_component(
        root,
        {
            "name": "toponent",
            "version": "0.0.1",
            "template": "template.html",
            "script": ["js/top.js"],
            "style": ["css/top.css"],
            "angular": True,
            "dependencies": {"dummy": "0.0.1"},
            "settings": TOPONENT_SETTINGS_SCHEMA,
        },
        {
            "template.html": "<h1>{{ settings.title }}</h1>{{ settings.sub.componentHTML }}",
            "js/top.js": "var top = 1;",
            "css/top.css": "h1 { color: red; }",
        },
    )
    write_component(
        root,
        {
            "name": "sub_one",
            "version": "0.0.1",
            "template": "sub.html",
            "script": ["js/sub.js"],
            "settings": {"type": "object", "properties": {"text": {"type": "string"}}},
        },
        {"sub.html": "<p>{{ settings.text }}</p>", "js/sub.js": "var sub = 1;"},
    )
    return root


@pytest.fixture
def local_registry(components_root: Path) -> LocalRegistry:
    return LocalRegistry(components_root, base_url=CDN_URL)
