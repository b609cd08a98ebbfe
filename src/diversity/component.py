# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Immutable component values built from ``diversity.json`` specs."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import total_ordering
from types import MappingProxyType
from typing import TypeAlias

from packaging.version import InvalidVersion, Version

from .assets import AssetLoader, expand_relative_paths, is_remote, join_location, load_text
from .documents import compute_checksum, parse_object, thaw
from .errors import ComponentLoadError, InvalidComponentSpec
from .schema import SchemaValidator, SettingsSchema, validate_component_spec
from .types import JSONValue
from .versioning import VersionRequirement, parse_version


@dataclass(frozen=True, slots=True)
class RangeRequirement:
    """Dependency resolved through a registry by version range."""

    requirement: VersionRequirement

    def __str__(self) -> str:
        return str(self.requirement)


@dataclass(frozen=True, slots=True)
class DirectRequirement:
    """Dependency loaded directly from the URL of another component's spec."""

    url: str

    def __str__(self) -> str:
        return self.url


Requirement: TypeAlias = RangeRequirement | DirectRequirement


def parse_dependency(value: JSONValue) -> Requirement:
    """Return the tagged requirement for a raw dependency value.

    Args:
        value: Requirement string from the ``dependencies`` mapping.

    Returns:
        Requirement: ``DirectRequirement`` for URLs, ``RangeRequirement`` otherwise.

    Raises:
        InvalidRequirement: If the version range cannot be parsed.
    """

    text = "" if value is None else str(value)
    if is_remote(text):
        return DirectRequirement(url=text)
    return RangeRequirement(requirement=VersionRequirement.parse(text))


@dataclass(frozen=True, slots=True)
class ComponentOptions:
    """Load-time options applied while constructing a component.

    Attributes:
        base_url: Public URL the component's relative assets are served from.
        base_path: Local directory holding the component's files.
        validate: Validate the spec against the master component schema.
        source: Location the spec was loaded from, used in messages.
        spec_url: Spec location of a component loaded directly rather than
            through a registry listing.
    """

    base_url: str | None = None
    base_path: str | None = None
    validate: bool = False
    source: str | None = None
    spec_url: str | None = None


def _path_list(value: JSONValue) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    if isinstance(value, Sequence):
        return tuple(str(item) for item in value)
    return ()


def _mapping(value: JSONValue) -> Mapping[str, JSONValue]:
    if isinstance(value, Mapping):
        return MappingProxyType(dict(value))
    return MappingProxyType({})


def _settings_schema(value: JSONValue) -> SettingsSchema:
    if isinstance(value, Mapping):
        return SettingsSchema(data=MappingProxyType(dict(value)))
    if isinstance(value, str) and value:
        return SettingsSchema(data=MappingProxyType({}), source=value)
    return SettingsSchema(data=MappingProxyType({}))


def _optional_str(value: JSONValue) -> str | None:
    return None if value is None else str(value)


@total_ordering
@dataclass(frozen=True, slots=True, eq=False)
class Component:
    """Versioned, named unit with a settings schema, dependencies and assets.

    Two components are the same entity when their name and version are equal.
    Sorting orders by name, then newest version first.
    """

    name: str
    version: Version
    checksum: str
    dependencies: Mapping[str, Requirement]
    settings_schema: SettingsSchema
    templates: tuple[str, ...] = ()
    styles: tuple[str, ...] = ()
    scripts: tuple[str, ...] = ()
    themes: tuple[str, ...] = ()
    assets: tuple[str, ...] = ()
    angular_module: str | None = None
    locales: Mapping[str, JSONValue] = field(default_factory=dict)
    context: Mapping[str, JSONValue] = field(default_factory=dict)
    fields: Mapping[str, JSONValue] = field(default_factory=dict)
    partials: Mapping[str, JSONValue] = field(default_factory=dict)
    type: str | None = None
    pagetype: str | None = None
    title: str | None = None
    description: str | None = None
    thumbnail: str | None = None
    price: JSONValue = None
    base_url: str | None = None
    base_path: str | None = None
    source: str | None = None
    spec_url: str | None = None
    _raw: Mapping[str, JSONValue] = field(default_factory=dict, repr=False)

    @classmethod
    def from_spec(
        cls,
        spec: Mapping[str, JSONValue],
        options: ComponentOptions | None = None,
        *,
        validator: SchemaValidator | None = None,
    ) -> Component:
        """Build a component from a parsed ``diversity.json`` document.

        Args:
            spec: Parsed spec document.
            options: Load-time options (base locations, validation switch).
            validator: Optional validator used instead of the default jsonschema one.

        Returns:
            Component: Immutable component value.

        Raises:
            InvalidComponentSpec: If validation is requested and fails, or the
                version cannot be parsed.
            InvalidRequirement: If a dependency range cannot be parsed.
        """

        opts = options or ComponentOptions()
        raw = thaw(spec)
        if not isinstance(raw, dict):
            raise InvalidComponentSpec("Component spec must be a JSON object")
        name = str(raw.get("name", ""))
        if opts.validate:
            errors = validate_component_spec(raw, validator)
            if errors:
                origin = opts.source or name or "<unnamed>"
                raise InvalidComponentSpec(f"Bad diversity.json in {origin}", errors=errors)
        try:
            version = parse_version(str(raw.get("version", "0")))
        except InvalidVersion as exc:
            raise InvalidComponentSpec(f"Invalid version {raw.get('version')!r} in {name or '<unnamed>'}") from exc

        dependencies_raw = raw.get("dependencies")
        dependencies = {}
        if isinstance(dependencies_raw, Mapping):
            dependencies = {str(key): parse_dependency(value) for key, value in dependencies_raw.items()}

        angular = raw.get("angular")
        angular_module = name if angular is True else (angular if isinstance(angular, str) else None)

        return cls(
            name=name,
            version=version,
            checksum=compute_checksum(raw),
            dependencies=MappingProxyType(dependencies),
            settings_schema=_settings_schema(raw.get("settings")),
            templates=_path_list(raw.get("template")),
            styles=_path_list(raw.get("style")),
            scripts=_path_list(raw.get("script")),
            themes=_path_list(raw.get("themes")),
            assets=_path_list(raw.get("assets")),
            angular_module=angular_module,
            locales=_mapping(raw.get("i18n")),
            context=_mapping(raw.get("context")),
            fields=_mapping(raw.get("fields")),
            partials=_mapping(raw.get("partials")),
            type=_optional_str(raw.get("type")),
            pagetype=_optional_str(raw.get("pagetype")),
            title=_optional_str(raw.get("title")),
            description=_optional_str(raw.get("description")),
            thumbnail=_optional_str(raw.get("thumbnail")),
            price=raw.get("price"),
            base_url=opts.base_url.rstrip("/") if opts.base_url else None,
            base_path=opts.base_path,
            source=opts.source,
            spec_url=opts.spec_url,
            _raw=MappingProxyType(raw),
        )

    @classmethod
    def from_json(
        cls,
        text: str | bytes,
        options: ComponentOptions | None = None,
        *,
        validator: SchemaValidator | None = None,
    ) -> Component:
        """Parse ``text`` as a spec document and build a component from it.

        Raises:
            InvalidComponentSpec: If ``text`` is not a JSON object or fails validation.
        """

        opts = options or ComponentOptions()
        spec = parse_object(text, context=opts.source or "component spec")
        return cls.from_spec(spec, opts, validator=validator)

    @property
    def identity(self) -> tuple[str, Version]:
        """Return the ``(name, version)`` pair identifying the component."""

        return (self.name, self.version)

    @property
    def raw(self) -> dict[str, JSONValue]:
        """Return a mutable copy of the spec the component was built from."""

        copied = thaw(self._raw)
        return copied if isinstance(copied, dict) else {}

    def dump(self, *, pretty: bool = True) -> str:
        """Return the component spec encoded as JSON."""

        if pretty:
            return json.dumps(self.raw, indent=2, ensure_ascii=False)
        return json.dumps(self.raw, ensure_ascii=False)

    @property
    def base_location(self) -> str | None:
        """Return the public base location (URL first, then local path)."""

        return self.base_url or self.base_path

    def asset_location(self, path: str) -> str:
        """Return the loadable location of ``path`` (local files preferred).

        Raises:
            ComponentLoadError: If the component has no base location and ``path`` is relative.
        """

        if is_remote(path):
            return path
        base = self.base_path or self.base_url
        if base is None:
            raise ComponentLoadError(f"{self} has no base location for asset {path}")
        return join_location(base, path)

    def expand(self, paths: Sequence[str]) -> list[str]:
        """Return ``paths`` expanded against the public base location."""

        return expand_relative_paths(self.base_location, paths)

    def script_urls(self) -> list[str]:
        """Return the component's scripts with relative paths expanded."""

        return self.expand(self.scripts)

    def style_urls(self) -> list[str]:
        """Return the component's styles with relative paths expanded."""

        return self.expand(self.styles)

    def settings_location(self) -> str | None:
        """Return the location of a side-loaded settings schema, if declared."""

        source = self.settings_schema.source
        return None if source is None else self.asset_location(source)

    def load_asset(self, path: str, loader: AssetLoader) -> str | None:
        """Return the text of the asset at ``path`` or ``None`` when unavailable."""

        return load_text(loader, self.asset_location(path))

    def template_source(self, loader: AssetLoader) -> str | None:
        """Return the concatenated template sources, or ``None`` without templates.

        Raises:
            ComponentLoadError: If a declared template cannot be loaded.
        """

        if not self.templates:
            return None
        parts: list[str] = []
        for template in self.templates:
            text = self.load_asset(template, loader)
            if text is None:
                raise ComponentLoadError(f"Template {template} of {self} could not be loaded")
            parts.append(text)
        return "".join(parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Component):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Component):
            return NotImplemented
        if self.name != other.name:
            return self.name < other.name
        return self.version > other.version

    def __str__(self) -> str:
        return f"{self.name}:{self.version}"


__all__ = [
    "Component",
    "ComponentOptions",
    "DirectRequirement",
    "RangeRequirement",
    "Requirement",
    "parse_dependency",
]
