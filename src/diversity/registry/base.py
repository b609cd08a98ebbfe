# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Common registry contract and shared version-matching logic."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from packaging.version import Version

from ..assets import AssetLoader, DefaultAssetLoader, is_remote, url_dirname
from ..component import Component, ComponentOptions
from ..resolver import ResolvedSet, resolve_components
from ..versioning import RequirementLike, as_requirement

LOGGER = logging.getLogger(__name__)


class Registry(ABC):
    """Locate components by name and version requirement.

    Subclasses supply the listing (``installed_components``) and component
    lookup; matching, availability checks and dependency expansion are shared.
    """

    def __init__(self, *, validate: bool = False, asset_loader: AssetLoader | None = None) -> None:
        self._validate = validate
        self._asset_loader = asset_loader or DefaultAssetLoader()

    @property
    def validate(self) -> bool:
        """Return ``True`` when loaded specs are validated against the master schema."""

        return self._validate

    @property
    def asset_loader(self) -> AssetLoader:
        """Return the loader used for specs and assets."""

        return self._asset_loader

    @abstractmethod
    def get_component(self, name: str, requirement: RequirementLike = None) -> Component | None:
        """Return the highest version of ``name`` satisfying ``requirement``.

        Args:
            name: Component name.
            requirement: Version requirement; a :class:`Version` matches exactly,
                ``None`` matches every version.

        Returns:
            Component | None: Matching component, or ``None`` when unavailable.

        Raises:
            InvalidRequirement: If ``requirement`` is a malformed string.
        """

    @abstractmethod
    def installed_components(self) -> dict[str, list[Version]]:
        """Return a mapping of component names to their versions, newest first."""

    def list_versions(self, name: str) -> list[Version]:
        """Return the known versions of ``name``, newest first."""

        return sorted(self.installed_components().get(name, []), reverse=True)

    def matching_versions(self, name: str, requirement: RequirementLike = None) -> list[Version]:
        """Return the versions of ``name`` satisfying ``requirement``, newest first.

        Raises:
            InvalidRequirement: If ``requirement`` is a malformed string.
        """

        return as_requirement(requirement).filter(self.list_versions(name))

    def is_available(self, name: str, requirement: RequirementLike = None) -> bool:
        """Return ``True`` when a version of ``name`` satisfies ``requirement``."""

        return bool(self.matching_versions(name, requirement))

    def load_component(self, url: str) -> Component | None:
        """Load a component directly from the URL (or path) of its spec.

        The directory holding the spec becomes the component's base location.

        Args:
            url: Location of a ``diversity.json`` document.

        Returns:
            Component | None: Loaded component, or ``None`` when the spec cannot be fetched.

        Raises:
            InvalidComponentSpec: If the fetched document is not a valid spec.
        """

        data = self._asset_loader.load(url)
        if data is None:
            LOGGER.warning("Component spec %s could not be loaded", url)
            return None
        if is_remote(url):
            options = ComponentOptions(base_url=url_dirname(url), validate=self._validate, source=url, spec_url=url)
        else:
            options = ComponentOptions(
                base_path=str(Path(url).parent),
                validate=self._validate,
                source=url,
                spec_url=url,
            )
        return Component.from_json(data, options)

    def expand(self, *components: Component) -> ResolvedSet:
        """Return ``components`` expanded with their dependencies, conflicts resolved.

        Raises:
            UnresolvedDependency: If a dependency cannot be satisfied.
        """

        return resolve_components(components, self)


__all__ = ["Registry"]
