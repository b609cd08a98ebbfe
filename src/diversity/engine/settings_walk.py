# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Walk settings alongside their schema, rendering nested component slots."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Final

from ..errors import format_path
from ..schema import is_component_node
from ..types import COMPONENT_HTML_KEY, JSONValue, SettingsPath

LOGGER = logging.getLogger(__name__)

_MISSING: Final[object] = object()

RenderNode = Callable[[Mapping[str, JSONValue], SettingsPath], "str | None"]


def property_schema(schema: JSONValue, key: str) -> JSONValue | object:
    """Return the sub-schema governing ``key``, or a sentinel when none applies.

    ``properties`` wins over ``additionalProperties``; ``true`` in either
    place means an unconstrained sub-schema.
    """

    if not isinstance(schema, Mapping):
        return _MISSING
    properties = schema.get("properties")
    if isinstance(properties, Mapping) and key in properties:
        return _normalise(properties[key])
    return _normalise(schema.get("additionalProperties", _MISSING))


def _normalise(schema: JSONValue | object) -> JSONValue | object:
    if schema is True:
        return {}
    if isinstance(schema, Mapping):
        return schema
    return _MISSING


class SettingsWalker:
    """Expand a settings tree, replacing component references with rendered HTML.

    Each node tagged ``"format": "diversity"`` in the schema holds a
    ``{component, version, settings}`` reference; it is rendered through
    ``render_node`` and replaced with ``{"componentHTML": html}``. Slots are
    rendered longest settings path first, then in key order, so deeper slots
    are done before shallower ones. Settings that do not fit the schema are
    kept as they are and logged.
    """

    def __init__(self, render_node: RenderNode, *, owner: str) -> None:
        self._render_node = render_node
        self._owner = owner

    def expand(self, schema: JSONValue, settings: JSONValue, path: SettingsPath = ()) -> JSONValue:
        """Return ``settings`` with every component slot rendered.

        Raises:
            ComponentNotFound: If a referenced component is unavailable.
        """

        slots: list[_Slot] = []
        expanded = self._collect(schema, settings, path, slots)
        for slot in sorted(slots, key=_slot_order):
            html = self._render_node(slot.reference, slot.path)
            slot.container[slot.key] = {COMPONENT_HTML_KEY: html}  # type: ignore[index]
        return expanded

    def _collect(self, schema: JSONValue, settings: JSONValue, path: SettingsPath, slots: list[_Slot]) -> JSONValue:
        if isinstance(settings, Mapping):
            return self._collect_object(schema, settings, path, slots)
        if isinstance(settings, list):
            return self._collect_array(schema, settings, path, slots)
        return settings

    def _collect_object(
        self,
        schema: JSONValue,
        settings: Mapping[str, JSONValue],
        path: SettingsPath,
        slots: list[_Slot],
    ) -> JSONValue:
        expanded: dict[str, JSONValue] = {}
        for key, value in settings.items():
            sub_path = (*path, key)
            sub_schema = property_schema(schema, key)
            if sub_schema is _MISSING:
                LOGGER.warning(
                    "Could not add setting %s to %s at %s: no matching schema",
                    key,
                    self._owner,
                    format_path(sub_path),
                )
                expanded[key] = value
            elif is_component_node(sub_schema):
                self._slot(expanded, key, value, sub_path, slots)
            else:
                expanded[key] = self._collect(sub_schema, value, sub_path, slots)
        return expanded

    def _collect_array(
        self,
        schema: JSONValue,
        settings: list[JSONValue],
        path: SettingsPath,
        slots: list[_Slot],
    ) -> JSONValue:
        items = schema.get("items") if isinstance(schema, Mapping) else None
        if not isinstance(items, Mapping):
            LOGGER.warning(
                "Array settings of %s at %s have no item schema; kept unexpanded",
                self._owner,
                format_path(path),
            )
            return list(settings)
        node = is_component_node(items)
        expanded: list[JSONValue] = []
        for index, value in enumerate(settings):
            sub_path = (*path, index)
            expanded.append(None)
            if node:
                self._slot(expanded, index, value, sub_path, slots)
            else:
                expanded[index] = self._collect(items, value, sub_path, slots)
        return expanded

    def _slot(
        self,
        container: dict[str, JSONValue] | list[JSONValue],
        key: str | int,
        reference: JSONValue,
        path: SettingsPath,
        slots: list[_Slot],
    ) -> None:
        if not isinstance(reference, Mapping):
            LOGGER.warning(
                "Component slot of %s at %s does not hold a component reference; kept unexpanded",
                self._owner,
                format_path(path),
            )
            container[key] = reference  # type: ignore[index]
            return
        container[key] = None  # type: ignore[index]
        slots.append(_Slot(path=path, reference=reference, container=container, key=key, order=len(slots)))


@dataclass(slots=True)
class _Slot:
    path: SettingsPath
    reference: Mapping[str, JSONValue]
    container: dict[str, JSONValue] | list[JSONValue]
    key: str | int
    order: int


def _slot_order(slot: _Slot) -> tuple[int, int]:
    return (-len(slot.path), slot.order)


__all__ = ["RenderNode", "SettingsWalker", "property_schema"]
