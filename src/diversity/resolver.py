# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Dependency expansion and version-conflict resolution for component sets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from packaging.version import Version

from .component import Component, DirectRequirement, Requirement
from .errors import UnresolvedDependency

if TYPE_CHECKING:
    from .registry.base import Registry

LOGGER = logging.getLogger(__name__)

Identity = tuple[str, Version]


@dataclass(frozen=True, slots=True)
class ResolvedSet:
    """Conflict-free, dependency-ordered collection of components.

    Attributes:
        components: One component per name; every dependency precedes its dependents.
        discarded: Lower versions dropped while resolving conflicts.
    """

    components: tuple[Component, ...] = ()
    discarded: tuple[Component, ...] = ()

    def __iter__(self) -> Iterator[Component]:
        return iter(self.components)

    def __len__(self) -> int:
        return len(self.components)

    def __contains__(self, item: object) -> bool:
        return item in self.components

    @property
    def names(self) -> list[str]:
        """Return the component names in resolution order."""

        return [component.name for component in self.components]

    def get(self, name: str) -> Component | None:
        """Return the surviving component called ``name``, if any."""

        return next((component for component in self.components if component.name == name), None)


class ComponentSet:
    """Accumulate root components and resolve them against a registry.

    Roots are expanded depth first so each component's dependencies are
    listed before the component itself. When several versions of one name
    are collected, the highest version wins, including over a root
    component.
    """

    def __init__(self, registry: Registry) -> None:
        self._registry = registry
        self._roots: list[Component] = []

    @property
    def registry(self) -> Registry:
        """Return the registry dependencies are resolved from."""

        return self._registry

    def add(self, component: Component) -> ComponentSet:
        """Add ``component`` as a root; adding the same identity twice is a no-op."""

        if component not in self._roots:
            self._roots.append(component)
        return self

    def extend(self, components: Iterable[Component]) -> ComponentSet:
        """Add every component in ``components`` as a root."""

        for component in components:
            self.add(component)
        return self

    def __iter__(self) -> Iterator[Component]:
        return iter(self._roots)

    def __len__(self) -> int:
        return len(self._roots)

    def resolve(self) -> ResolvedSet:
        """Expand dependencies and return the conflict-free component list.

        Returns:
            ResolvedSet: Resolved components plus the versions that were discarded.

        Raises:
            UnresolvedDependency: If a dependency cannot be satisfied by the registry.
        """

        expanded: list[Component] = []
        edges: dict[Identity, list[str]] = {}
        seen: set[Identity] = set()
        for root in self._roots:
            self._expand(root, expanded, edges, seen, set())

        survivors: dict[str, Component] = {}
        groups: dict[str, list[Component]] = {}
        for component in expanded:
            groups.setdefault(component.name, []).append(component)
        discarded: list[Component] = []
        for name, candidates in groups.items():
            winner = max(candidates, key=lambda candidate: candidate.version)
            survivors[name] = winner
            losers = [candidate for candidate in candidates if candidate is not winner]
            if losers:
                LOGGER.info(
                    "More than one version of component %s requested [%s]; using %s",
                    name,
                    ", ".join(str(candidate.version) for candidate in candidates),
                    winner.version,
                )
                discarded.extend(losers)

        ordered = _dependency_order(survivors, edges)
        return ResolvedSet(components=tuple(ordered), discarded=tuple(discarded))

    def _expand(
        self,
        component: Component,
        expanded: list[Component],
        edges: dict[Identity, list[str]],
        seen: set[Identity],
        visiting: set[Identity],
    ) -> None:
        identity = component.identity
        if identity in seen or identity in visiting:
            return
        visiting.add(identity)
        names: list[str] = []
        for name, requirement in component.dependencies.items():
            dependency = self._fetch(component, name, requirement)
            names.append(dependency.name)
            self._expand(dependency, expanded, edges, seen, visiting)
        visiting.discard(identity)
        seen.add(identity)
        edges[identity] = names
        expanded.append(component)

    def _fetch(self, requester: Component, name: str, requirement: Requirement) -> Component:
        if isinstance(requirement, DirectRequirement):
            dependency = self._registry.load_component(requirement.url)
        else:
            dependency = self._registry.get_component(name, requirement.requirement)
        if dependency is None:
            raise UnresolvedDependency(str(requester), name, str(requirement))
        return dependency


def _dependency_order(survivors: dict[str, Component], edges: dict[Identity, list[str]]) -> list[Component]:
    """Return ``survivors`` in first-seen order, moving dependencies before dependents."""

    ordered: list[Component] = []
    placed: set[str] = set()
    for name in survivors:
        _place(name, survivors, edges, ordered, placed, set())
    return ordered


def _place(
    name: str,
    survivors: dict[str, Component],
    edges: dict[Identity, list[str]],
    ordered: list[Component],
    placed: set[str],
    visiting: set[str],
) -> None:
    if name in placed or name in visiting or name not in survivors:
        return
    visiting.add(name)
    component = survivors[name]
    for dependency in edges.get(component.identity, []):
        _place(dependency, survivors, edges, ordered, placed, visiting)
    visiting.discard(name)
    placed.add(name)
    ordered.append(component)


def resolve_components(components: Iterable[Component], registry: Registry) -> ResolvedSet:
    """Return the resolved, conflict-free expansion of ``components``.

    Raises:
        UnresolvedDependency: If a dependency cannot be satisfied by ``registry``.
    """

    return ComponentSet(registry).extend(components).resolve()


__all__ = ["ComponentSet", "ResolvedSet", "resolve_components"]
