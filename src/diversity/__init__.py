# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Versioned component registry, dependency resolver and rendering engine."""

from __future__ import annotations

from importlib import metadata

from .component import Component, ComponentOptions, DirectRequirement, RangeRequirement
from .engine import EngineOptions, RenderEngine
from .errors import (
    CacheBackendFailure,
    ComponentLoadError,
    ComponentNotFound,
    ConfigError,
    ContextResolutionError,
    DiversityError,
    InvalidComponentSpec,
    InvalidRequirement,
    MissingPrerequisite,
    RegistryUnavailable,
    UnknownContextVariable,
    UnresolvedDependency,
)
from .registry import CompoundRegistry, LocalRegistry, Registry, RegistryMode, RemoteApiRegistry
from .resolver import ComponentSet, ResolvedSet, resolve_components
from .versioning import VersionRequirement, parse_version

__all__ = [
    "CacheBackendFailure",
    "Component",
    "ComponentLoadError",
    "ComponentNotFound",
    "ComponentOptions",
    "ComponentSet",
    "CompoundRegistry",
    "ConfigError",
    "ContextResolutionError",
    "DirectRequirement",
    "DiversityError",
    "EngineOptions",
    "InvalidComponentSpec",
    "InvalidRequirement",
    "LocalRegistry",
    "MissingPrerequisite",
    "RangeRequirement",
    "Registry",
    "RegistryMode",
    "RegistryUnavailable",
    "RemoteApiRegistry",
    "RenderEngine",
    "ResolvedSet",
    "UnknownContextVariable",
    "UnresolvedDependency",
    "VersionRequirement",
    "__version__",
    "parse_version",
    "resolve_components",
]

try:
    __version__ = metadata.version("diversity-engine")
except metadata.PackageNotFoundError:  # pragma: no cover - local development fallback
    __version__ = "0.0.0"
