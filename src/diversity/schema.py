# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Schema loading, settings-schema values and JSON-Schema validation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Final, Protocol, runtime_checkable

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from jsonschema.protocols import Validator
from jsonschema.validators import validator_for

from .assets import AssetLoader
from .documents import compute_checksum, load_object, parse_object
from .errors import InvalidComponentSpec
from .types import DIVERSITY_FORMAT, JSONValue

if TYPE_CHECKING:
    from .cache import Cache

LOGGER = logging.getLogger(__name__)

MASTER_SCHEMA_PATH: Final[Path] = Path(__file__).resolve().parent / "data" / "diversity.schema.json"

@runtime_checkable
class SchemaValidator(Protocol):
    """Validate a JSON instance against a JSON schema."""

    def validate(self, schema: Mapping[str, JSONValue], instance: JSONValue) -> list[str]:
        """Return human-readable validation errors; an empty list means valid.

        Args:
            schema: JSON schema document.
            instance: JSON value to validate.

        Returns:
            list[str]: Validation errors in a stable order.
        """


class JsonSchemaValidator:
    """SchemaValidator backed by :mod:`jsonschema` with per-schema validator reuse."""

    def __init__(self) -> None:
        self._validators: dict[str, Validator] = {}
        self._lock = Lock()

    def validate(self, schema: Mapping[str, JSONValue], instance: JSONValue) -> list[str]:
        """Return the validation errors reported for ``instance`` against ``schema``."""

        try:
            validator = self._validator_for(schema)
        except SchemaError as exc:
            return [f"invalid schema: {exc.message}"]
        errors = sorted(validator.iter_errors(instance), key=lambda error: [str(part) for part in error.path])
        return [_describe_error(error.path, error.message) for error in errors]

    def _validator_for(self, schema: Mapping[str, JSONValue]) -> Validator:
        key = compute_checksum(schema)
        with self._lock:
            cached = self._validators.get(key)
        if cached is not None:
            return cached
        validator_cls = validator_for(schema, default=Draft202012Validator)
        validator_cls.check_schema(schema)
        validator = validator_cls(schema)
        with self._lock:
            self._validators[key] = validator
        return validator


def _describe_error(path: Iterable[str | int], message: str) -> str:
    pointer = "/".join(str(part) for part in path)
    return f"#/{pointer}: {message}"


@lru_cache(maxsize=1)
def master_component_schema() -> Mapping[str, JSONValue]:
    """Return the bundled master schema every component spec must satisfy.

    Returns:
        Mapping[str, JSONValue]: Parsed master schema.
    """

    return load_object(MASTER_SCHEMA_PATH)


def validate_component_spec(
    spec: Mapping[str, JSONValue],
    validator: SchemaValidator | None = None,
) -> list[str]:
    """Return validation errors for ``spec`` against the master component schema."""

    active = validator or _default_validator()
    return active.validate(master_component_schema(), spec)


@lru_cache(maxsize=1)
def _default_validator() -> JsonSchemaValidator:
    return JsonSchemaValidator()


def default_validator() -> SchemaValidator:
    """Return the shared :class:`JsonSchemaValidator` instance."""

    return _default_validator()


def is_component_node(schema: JSONValue) -> bool:
    """Return ``True`` when ``schema`` is tagged with the diversity format marker."""

    return isinstance(schema, Mapping) and schema.get("format") == DIVERSITY_FORMAT


@dataclass(frozen=True, slots=True)
class SettingsSchema:
    """Settings contract declared by a component.

    Attributes:
        data: Inline schema document; empty when the schema lives in ``source``.
        source: Relative or absolute location of a side-loaded schema document.
    """

    data: Mapping[str, JSONValue] = field(default_factory=dict)
    source: str | None = None

    @property
    def is_external(self) -> bool:
        """Return ``True`` when the schema must be loaded from ``source``."""

        return self.source is not None


class SchemaStore:
    """Load side-resource settings schemas through the schema cache."""

    def __init__(self, loader: AssetLoader, cache: Cache) -> None:
        self._loader = loader
        self._cache = cache

    def load(self, location: str) -> Mapping[str, JSONValue]:
        """Return the schema stored at ``location``.

        Missing or malformed schemas are logged and treated as an empty schema
        so rendering can continue with unexpanded settings.

        Args:
            location: Absolute path or URL of the schema document.

        Returns:
            Mapping[str, JSONValue]: Parsed schema document.
        """

        cached = self._cache.get_or_compute(location, lambda: self._fetch(location))
        return cached if isinstance(cached, Mapping) else {}

    def purge(self, location: str | None = None) -> None:
        """Drop one cached schema, or every cached schema when ``location`` is ``None``."""

        self._cache.invalidate(location)

    def _fetch(self, location: str) -> JSONValue:
        data = self._loader.load(location)
        if data is None:
            LOGGER.warning("Settings schema %s could not be loaded", location)
            return {}
        try:
            return dict(parse_object(data, context=location))
        except InvalidComponentSpec as exc:
            LOGGER.warning("Settings schema %s is not a JSON object: %s", location, exc)
            return {}


__all__ = [
    "JsonSchemaValidator",
    "MASTER_SCHEMA_PATH",
    "SchemaStore",
    "SchemaValidator",
    "SettingsSchema",
    "default_validator",
    "is_component_node",
    "master_component_schema",
    "validate_component_spec",
]
