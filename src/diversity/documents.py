# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Helpers for parsing, canonicalising and checksumming JSON documents."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import cast

from .errors import InvalidComponentSpec
from .types import JSONValue


def parse_document(data: str | bytes, *, context: str) -> JSONValue:
    """Parse ``data`` as JSON and validate the payload structure.

    Args:
        data: Raw JSON text or UTF-8 encoded bytes.
        context: Human-readable origin used in error messages.

    Returns:
        JSONValue: Parsed JSON value.

    Raises:
        InvalidComponentSpec: If the payload is not valid JSON.
    """

    try:
        payload = cast(JSONValue, json.loads(data))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidComponentSpec(f"Failed to parse configuration from {context}: {exc}") from exc
    return _ensure_json_value(payload, context=context)


def parse_object(data: str | bytes, *, context: str) -> Mapping[str, JSONValue]:
    """Parse ``data`` and ensure the document is a JSON object.

    Raises:
        InvalidComponentSpec: If the payload is not valid JSON or not an object.
    """

    payload = parse_document(data, context=context)
    if not isinstance(payload, Mapping):
        raise InvalidComponentSpec(f"Failed to parse configuration from {context}: expected a JSON object")
    return payload


def load_object(path: Path) -> Mapping[str, JSONValue]:
    """Load a JSON object from ``path``.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        InvalidComponentSpec: If the file does not hold a JSON object.
    """

    if not path.exists():
        raise FileNotFoundError(path)
    return parse_object(path.read_bytes(), context=str(path))


def canonical_json(value: JSONValue) -> str:
    """Return the canonical (sorted, compact) JSON encoding of ``value``."""

    return json.dumps(thaw(value), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_checksum(value: JSONValue) -> str:
    """Return the hex-encoded SHA-1 digest of the canonical form of ``value``."""

    return hashlib.sha1(canonical_json(value).encode("utf-8"), usedforsecurity=False).hexdigest()


def thaw(value: JSONValue) -> JSONValue:
    """Return a deep, mutable copy of ``value`` built from dicts and lists."""

    if isinstance(value, Mapping):
        return {str(key): thaw(item) for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [thaw(item) for item in value]
    return value


def _ensure_json_value(value: JSONValue, *, context: str) -> JSONValue:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _ensure_json_value(item, context=f"{context}.{key}") for key, item in value.items()}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return [_ensure_json_value(item, context=f"{context}[]") for item in value]
    raise InvalidComponentSpec(f"{context}: value is not valid JSON")


__all__ = [
    "canonical_json",
    "compute_checksum",
    "load_object",
    "parse_document",
    "parse_object",
    "thaw",
]
