# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Custom exceptions raised while resolving and rendering components."""

from __future__ import annotations

from collections.abc import Iterable, Sequence


def format_path(path: Sequence[str | int]) -> str:
    """Return ``path`` rendered as a slash separated settings pointer.

    Args:
        path: Ordered settings path segments.

    Returns:
        str: Pointer such as ``/sub_object/items/0``.
    """

    return "/" + "/".join(str(segment) for segment in path)


class DiversityError(Exception):
    """Base class for every error raised by the diversity package."""


class InvalidRequirement(DiversityError, ValueError):
    """Raised when a version requirement string cannot be parsed."""

    def __init__(self, requirement: str) -> None:
        super().__init__(f"Invalid requirement {requirement!r}")
        self.requirement = requirement


class InvalidComponentSpec(DiversityError):
    """Raised when a component spec cannot be parsed or fails validation."""

    def __init__(self, message: str, *, errors: Iterable[str] = ()) -> None:
        """Create the error with a summary ``message`` and validation ``errors``.

        Args:
            message: Summary of the failure.
            errors: Human-readable validation errors collected from the schema.
        """

        self.errors: tuple[str, ...] = tuple(errors)
        detail = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(f"{message}\n{detail}" if detail else message)


class ComponentLoadError(DiversityError):
    """Raised when a resource that must exist (spec, declared template) cannot be loaded."""


class UnresolvedDependency(DiversityError):
    """Raised when a declared dependency cannot be satisfied by the registry."""

    def __init__(self, requester: str, dependency: str, requirement: str) -> None:
        """Create the error naming the requesting component and missing dependency.

        Args:
            requester: Display identity (``name:version``) of the requesting component.
            dependency: Name of the dependency that could not be resolved.
            requirement: Display form of the requirement that was not satisfied.
        """

        super().__init__(f"Failed to load dependency {dependency} [{requirement}] requested by {requester}.")
        self.requester = requester
        self.dependency = dependency
        self.requirement = requirement


class ComponentNotFound(DiversityError):
    """Raised when a settings-referenced sub-component is missing from the registry."""

    def __init__(self, name: str, requirement: str | None, path: Sequence[str | int] = ()) -> None:
        """Create the error for the component reference found at ``path``.

        Args:
            name: Referenced component name.
            requirement: Requested version requirement, ``None`` for any version.
            path: Settings path holding the reference.
        """

        self.name = name
        self.requirement = requirement
        self.path = tuple(path)
        super().__init__(f"No component {name} [{requirement or '*'}] available for settings at {format_path(path)}")


class ContextResolutionError(DiversityError):
    """Raised when a component's declared context cannot be resolved."""


class MissingPrerequisite(ContextResolutionError):
    """Raised when a prerequisite context key is absent from the caller context."""

    def __init__(self, component: str, key: str) -> None:
        super().__init__(f"{component} needs {key} in context as prerequisite.")
        self.component = component
        self.key = key


class UnknownContextVariable(ContextResolutionError):
    """Raised when a ``{{var}}`` placeholder refers to an unknown context variable."""

    def __init__(self, component: str, variable: str) -> None:
        super().__init__(f"{component}: no such context variable {variable}")
        self.component = component
        self.variable = variable


class CacheBackendFailure(DiversityError):
    """Raised when a cache provider fails to persist an entry."""


class RegistryUnavailable(DiversityError):
    """Raised when a remote registry fails its liveness check or API calls."""


class ConfigError(DiversityError):
    """Raised when configuration input is invalid."""


__all__ = [
    "CacheBackendFailure",
    "ComponentLoadError",
    "ComponentNotFound",
    "ConfigError",
    "ContextResolutionError",
    "DiversityError",
    "InvalidComponentSpec",
    "InvalidRequirement",
    "MissingPrerequisite",
    "RegistryUnavailable",
    "UnknownContextVariable",
    "UnresolvedDependency",
    "format_path",
]
