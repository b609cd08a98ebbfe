# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

from __future__ import annotations

import pytest
from packaging.version import Version

from diversity.component import Component
from diversity.registry import CompoundRegistry, RegistryEntry


def _component(name: str, version: str, **extra: object) -> Component:
    return Component.from_spec({"name": name, "version": version, **extra})


def test_first_registry_with_a_match_wins(static_registry) -> None:
    first = static_registry(_component("dummy", "1.0.0", title="first"))
    second = static_registry(_component("dummy", "2.0.0", title="second"), _component("extra", "0.1.0"))
    compound = CompoundRegistry([first, RegistryEntry(name="fallback", registry=second)])

    assert compound.get_component("dummy").title == "first"
    assert compound.get_component("dummy", ">=2").title == "second"
    assert compound.get_component("extra") is not None
    assert compound.get_component("missing") is None
    assert [entry.name for entry in compound.entries] == [None, "fallback"]


def test_listing_is_the_union(static_registry) -> None:
    compound = CompoundRegistry()
    compound.add_registry(static_registry(_component("dummy", "1.0.0")), "one")
    compound.add_registry(static_registry(_component("dummy", "2.0.0"), _component("dummy", "1.0.0")), "two")

    assert compound.installed_components() == {"dummy": [Version("2.0.0"), Version("1.0.0")]}
    assert compound.list_versions("dummy") == [Version("2.0.0"), Version("1.0.0")]


def test_add_registry_rejects_other_objects() -> None:
    with pytest.raises(TypeError):
        CompoundRegistry().add_registry(object())  # type: ignore[arg-type]


def test_expand_resolves_across_registries(static_registry) -> None:
    base = static_registry(_component("dummy", "1.0.0"))
    top = static_registry(_component("top", "1.0.0", dependencies={"dummy": "^1.0.0"}))
    compound = CompoundRegistry([top, base])

    resolved = compound.expand(compound.get_component("top"))

    assert resolved.names == ["dummy", "top"]
