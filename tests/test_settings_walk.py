# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

from __future__ import annotations

from collections.abc import Mapping

from diversity.engine.settings_walk import SettingsWalker, property_schema
from diversity.types import JSONValue, SettingsPath


class RecordingRenderer:
    def __init__(self) -> None:
        self.calls: list[tuple[str, SettingsPath]] = []

    def __call__(self, reference: Mapping[str, JSONValue], path: SettingsPath) -> str:
        self.calls.append((str(reference["component"]), path))
        return f"<{reference['component']}>"


def test_property_schema_prefers_properties() -> None:
    schema = {"properties": {"a": {"type": "string"}}, "additionalProperties": {"type": "number"}}

    assert property_schema(schema, "a") == {"type": "string"}
    assert property_schema(schema, "b") == {"type": "number"}
    assert property_schema({"additionalProperties": True}, "b") == {}


def test_component_slots_are_rendered_deepest_first() -> None:
    renderer = RecordingRenderer()
    walker = SettingsWalker(renderer, owner="page:1.0.0")
    schema = {
        "type": "object",
        "properties": {
            "header": {"format": "diversity"},
            "rows": {"type": "array", "items": {"format": "diversity"}},
            "named": {"type": "object", "additionalProperties": {"format": "diversity"}},
        },
    }
    settings = {
        "header": {"component": "menu"},
        "rows": [{"component": "row"}, {"component": "row"}],
        "named": {"left": {"component": "ad"}},
    }

    expanded = walker.expand(schema, settings)

    assert expanded == {
        "header": {"componentHTML": "<menu>"},
        "rows": [{"componentHTML": "<row>"}, {"componentHTML": "<row>"}],
        "named": {"left": {"componentHTML": "<ad>"}},
    }
    assert list(expanded) == ["header", "rows", "named"]
    assert renderer.calls == [
        ("row", ("rows", 0)),
        ("row", ("rows", 1)),
        ("ad", ("named", "left")),
        ("menu", ("header",)),
    ]


def test_mismatched_settings_are_kept() -> None:
    renderer = RecordingRenderer()
    walker = SettingsWalker(renderer, owner="page:1.0.0")
    schema = {
        "type": "object",
        "properties": {
            "header": {"format": "diversity"},
            "list": {"type": "array"},
        },
    }
    settings = {"header": "not a reference", "list": [1, 2], "stray": {"component": "menu"}, "after": 1}

    assert walker.expand(schema, settings) == settings
    assert renderer.calls == []


def test_equal_depth_slots_keep_key_order() -> None:
    renderer = RecordingRenderer()
    walker = SettingsWalker(renderer, owner="page:1.0.0")
    schema = {
        "type": "object",
        "properties": {
            "second": {"format": "diversity"},
            "box": {"type": "object", "properties": {"inner": {"format": "diversity"}}},
            "first": {"format": "diversity"},
        },
    }
    settings = {"second": {"component": "b"}, "box": {"inner": {"component": "deep"}}, "first": {"component": "a"}}

    expanded = walker.expand(schema, settings, ("root",))

    assert expanded["box"] == {"inner": {"componentHTML": "<deep>"}}
    assert [call[0] for call in renderer.calls] == ["deep", "b", "a"]
    assert renderer.calls[0][1] == ("root", "box", "inner")
