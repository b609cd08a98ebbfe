# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Registry backed by a diversity-api HTTP service."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Final

from packaging.version import Version

from ..assets import AssetLoader
from ..cache import DEFAULT_MAX_ENTRIES, Cache, InMemoryCacheProvider
from ..component import Component, ComponentOptions
from ..documents import parse_document
from ..errors import InvalidComponentSpec, RegistryUnavailable
from ..types import SPEC_FILENAME, JSONValue
from ..versioning import RequirementLike, as_requirement, coerce_version
from .base import Registry
from .http import HttpClient, UrllibHttpClient

LOGGER = logging.getLogger(__name__)

WELCOME_MESSAGE: Final[str] = "Welcome to Diversity Api"
DEFAULT_API_TTL: Final[float] = 3600.0


class RemoteApiRegistry(Registry):
    """Serve components published through the diversity-api REST service.

    The service is checked on construction. Every API URL is fetched at most
    once per cache TTL; use :meth:`cache_purge` to force a refetch.
    """

    def __init__(
        self,
        api_url: str,
        *,
        cache: Cache | None = None,
        validate: bool = False,
        http: HttpClient | None = None,
        asset_loader: AssetLoader | None = None,
        ttl: float = DEFAULT_API_TTL,
    ) -> None:
        """Initialise the registry and check the service is alive.

        Raises:
            RegistryUnavailable: If the service does not answer the liveness check.
        """

        super().__init__(validate=validate, asset_loader=asset_loader)
        self._api_url = api_url if api_url.endswith("/") else f"{api_url}/"
        self._http = http or UrllibHttpClient()
        self._cache = cache or Cache(
            InMemoryCacheProvider(max_entries=DEFAULT_MAX_ENTRIES),
            namespace="api",
            default_ttl=ttl,
        )
        self._check_alive()

    @property
    def api_url(self) -> str:
        """Return the service root, always ending with a slash."""

        return self._api_url

    def installed_components(self) -> dict[str, list[Version]]:
        """Return every published component with its versions, newest first."""

        installed: dict[str, list[Version]] = {}
        for name in self._component_names():
            installed[name] = sorted(self._versions(name), reverse=True)
        return installed

    def list_versions(self, name: str) -> list[Version]:
        """Return the published versions of ``name``, newest first."""

        try:
            return sorted(self._versions(name), reverse=True)
        except RegistryUnavailable as exc:
            LOGGER.warning("Could not list versions of %s: %s", name, exc)
            return []

    def get_component(self, name: str, requirement: RequirementLike = None) -> Component | None:
        """Return the highest published version of ``name`` satisfying ``requirement``."""

        wanted = as_requirement(requirement)
        try:
            versions = self._versions(name)
        except RegistryUnavailable as exc:
            LOGGER.debug("No component %s on %s: %s", name, self._api_url, exc)
            return None
        best = wanted.best_match(versions)
        if best is None:
            LOGGER.info(
                "No match for version %s of %s; available: %s",
                wanted,
                name,
                ", ".join(str(version) for version in sorted(versions)),
            )
            return None
        base_url = self.url_for("components", name, versions[best], "files")
        spec_url = f"{base_url}/{SPEC_FILENAME}"
        spec = self._call(spec_url)
        if not isinstance(spec, Mapping):
            raise InvalidComponentSpec(f"Failed to parse configuration from {spec_url}: expected a JSON object")
        options = ComponentOptions(base_url=base_url, validate=self._validate, source=spec_url)
        return Component.from_spec(spec, options)

    def url_for(self, *parts: str) -> str:
        """Return the API URL built from ``parts``."""

        return self._api_url + "/".join(part.strip("/") for part in parts)

    def cache_contains(self, url: str) -> bool:
        """Return ``True`` when the response for ``url`` is cached."""

        return self._cache.contains(url)

    def cache_purge(self, url: str | None = None) -> None:
        """Drop the cached response for ``url``, or every cached response."""

        self._cache.invalidate(url)

    def _check_alive(self) -> None:
        response = self._http.get(self._api_url)
        if response.status != 200 or response.text.strip() != WELCOME_MESSAGE:
            raise RegistryUnavailable(f"Invalid backend URL: {self._api_url}")

    def _component_names(self) -> list[str]:
        payload = self._call(self.url_for("components") + "/")
        names: list[str] = []
        if not isinstance(payload, list):
            return names
        for entry in payload:
            if isinstance(entry, Mapping) and entry.get("name") is not None:
                names.append(str(entry["name"]))
            elif isinstance(entry, str):
                names.append(entry)
        return names

    def _versions(self, name: str) -> dict[Version, str]:
        """Return the versions of ``name`` mapped to their path segment in the API."""

        payload = self._call(self.url_for("components", name) + "/")
        versions: dict[Version, str] = {}
        if not isinstance(payload, list):
            return versions
        for entry in payload:
            text = str(entry)
            version = coerce_version(text)
            if version is None:
                LOGGER.debug("Ignoring malformed version %r of %s", text, name)
                continue
            versions[version] = text
        return versions

    def _call(self, url: str) -> JSONValue:
        return self._cache.get_or_compute(url, lambda: self._fetch(url))

    def _fetch(self, url: str) -> JSONValue:
        response = self._http.get(url)
        if response.status != 200:
            raise RegistryUnavailable(f"Error when calling API on {url}: HTTP {response.status}")
        try:
            return parse_document(response.body, context=url)
        except InvalidComponentSpec as exc:
            raise RegistryUnavailable(f"Invalid JSON from {url}") from exc


__all__ = ["DEFAULT_API_TTL", "RemoteApiRegistry", "WELCOME_MESSAGE"]
