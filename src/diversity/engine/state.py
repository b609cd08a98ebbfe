# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Per-render bookkeeping: lifecycle phases and the components each subtree touched."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from ..component import Component
from ..errors import format_path
from ..registry.base import Registry
from ..resolver import ResolvedSet
from ..types import SettingsPath


class RenderPhase(str, Enum):
    """Lifecycle of rendering one component."""

    VALIDATING = "validating"
    EXPANDING_DEPENDENCIES = "expanding-dependencies"
    WALKING_SETTINGS = "walking-settings"
    RENDERING_TEMPLATE = "rendering-template"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PhaseTransition:
    """Phase entered by the component rendered at ``path``."""

    path: SettingsPath
    component: str
    phase: RenderPhase

    def __str__(self) -> str:
        return f"{format_path(self.path)} {self.component}: {self.phase.value}"


@dataclass(slots=True)
class RenderState:
    """Aggregation owned by a single ``render`` call.

    ``touch`` records a component in every open scope. The engine opens a
    scope per rendered component so a cached fragment can remember exactly
    which components its subtree needed.
    """

    registry: Registry
    transitions: list[PhaseTransition] = field(default_factory=list)
    _touched: dict[tuple[object, ...], Component] = field(default_factory=dict)
    _scopes: list[dict[tuple[object, ...], Component]] = field(default_factory=list)

    def enter(self, path: SettingsPath, component: Component, phase: RenderPhase) -> None:
        """Record that the component at ``path`` entered ``phase``."""

        self.transitions.append(PhaseTransition(path=path, component=str(component), phase=phase))

    def phase_of(self, path: SettingsPath) -> RenderPhase | None:
        """Return the latest phase recorded for ``path``."""

        for transition in reversed(self.transitions):
            if transition.path == path:
                return transition.phase
        return None

    def touch(self, component: Component) -> None:
        """Record ``component`` as needed by the render."""

        self._touched.setdefault(component.identity, component)
        for scope in self._scopes:
            scope.setdefault(component.identity, component)

    def touch_all(self, components: Iterable[Component]) -> None:
        for component in components:
            self.touch(component)

    def open_scope(self) -> None:
        """Start collecting the components touched by a subtree."""

        self._scopes.append({})

    def close_scope(self) -> list[Component]:
        """Stop collecting and return the components touched since the matching ``open_scope``."""

        return list(self._scopes.pop().values())

    @property
    def touched(self) -> list[Component]:
        """Return every touched component in first-touch order."""

        return list(self._touched.values())

    def resolved(self) -> ResolvedSet:
        """Return the conflict-resolved union of every touched component.

        Raises:
            UnresolvedDependency: If a dependency cannot be satisfied.
        """

        return self.registry.expand(*self._touched.values())


@dataclass(frozen=True, slots=True)
class RenderResult:
    """Output of a render together with its manifest and phase history.

    Attributes:
        html: Rendered output, ``None`` when the root component has no template.
        components: Conflict-resolved components the output depends on.
        transitions: Phases entered while rendering, in order.
    """

    html: str | None
    components: ResolvedSet
    transitions: tuple[PhaseTransition, ...] = ()


__all__ = ["PhaseTransition", "RenderPhase", "RenderResult", "RenderState"]
