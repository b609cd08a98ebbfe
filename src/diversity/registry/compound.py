# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Registry delegating to an ordered chain of other registries."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from packaging.version import Version

from ..component import Component
from ..versioning import RequirementLike
from .base import Registry


@dataclass(frozen=True, slots=True)
class RegistryEntry:
    """Registry consulted by a :class:`CompoundRegistry`, with an optional label."""

    name: str | None
    registry: Registry


class CompoundRegistry(Registry):
    """Ask each registry in turn; the first one returning a component wins."""

    def __init__(self, registries: Iterable[Registry | RegistryEntry] = (), *, validate: bool = False) -> None:
        super().__init__(validate=validate)
        self._entries: list[RegistryEntry] = []
        for registry in registries:
            if isinstance(registry, RegistryEntry):
                self.add_registry(registry.registry, registry.name)
            else:
                self.add_registry(registry)

    @property
    def entries(self) -> tuple[RegistryEntry, ...]:
        """Return the registries in lookup order."""

        return tuple(self._entries)

    def add_registry(self, registry: Registry, name: str | None = None) -> None:
        """Append ``registry`` to the lookup chain.

        Raises:
            TypeError: If ``registry`` is not a :class:`Registry`.
        """

        if not isinstance(registry, Registry):
            raise TypeError(f"Invalid registry {registry!r}")
        self._entries.append(RegistryEntry(name=name, registry=registry))

    def get_component(self, name: str, requirement: RequirementLike = None) -> Component | None:
        for entry in self._entries:
            found = entry.registry.get_component(name, requirement)
            if found is not None:
                return found
        return None

    def installed_components(self) -> dict[str, list[Version]]:
        """Return the union of every registry's listing, newest version first."""

        merged: dict[str, set[Version]] = {}
        for entry in self._entries:
            for name, versions in entry.registry.installed_components().items():
                merged.setdefault(name, set()).update(versions)
        return {name: sorted(versions, reverse=True) for name, versions in merged.items()}

    def load_component(self, url: str) -> Component | None:
        """Load a component from ``url`` with the first registry in the chain."""

        if self._entries:
            return self._entries[0].registry.load_component(url)
        return super().load_component(url)


__all__ = ["CompoundRegistry", "RegistryEntry"]
