# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared type aliases and constants."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Final, TypeAlias

JSONPrimitive: TypeAlias = str | int | float | bool | None
JSONValue: TypeAlias = JSONPrimitive | Sequence["JSONValue"] | Mapping[str, "JSONValue"]
JSONObject: TypeAlias = Mapping[str, JSONValue]
SettingsPath: TypeAlias = tuple[str | int, ...]

SPEC_FILENAME: Final[str] = "diversity.json"
DIVERSITY_FORMAT: Final[str] = "diversity"
COMPONENT_HTML_KEY: Final[str] = "componentHTML"

BACKEND_URL_KEY: Final[str] = "backendURL"
LANGUAGE_KEY: Final[str] = "language"

__all__ = [
    "BACKEND_URL_KEY",
    "COMPONENT_HTML_KEY",
    "DIVERSITY_FORMAT",
    "JSONObject",
    "JSONPrimitive",
    "JSONValue",
    "LANGUAGE_KEY",
    "SPEC_FILENAME",
    "SettingsPath",
]
