# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Registry backed by a directory tree of installed components."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path, PurePosixPath
from typing import Final

from packaging.version import Version

from ..assets import AssetLoader, is_remote
from ..cache import DEFAULT_MAX_ENTRIES, Cache, InMemoryCacheProvider
from ..component import Component, ComponentOptions
from ..documents import parse_object
from ..errors import ComponentLoadError, InvalidComponentSpec
from ..types import SPEC_FILENAME, JSONValue
from ..versioning import RequirementLike, coerce_version
from .base import Registry
from .fileops import FileOperations, RegistryMode, file_operations_for

LOGGER = logging.getLogger(__name__)

DEFAULT_LISTING_TTL: Final[float] = 600.0
_INDEX_KEY: Final[str] = "index"


class LocalRegistry(Registry):
    """Serve components installed under ``<base>/<name>/<version>/diversity.json``.

    A spec placed directly at ``<base>/<name>/diversity.json`` is a development
    package: it is returned for every requirement. Names or versions missing
    locally are looked up in the optional fallback registry. The name to
    versions index is cached for ``listing_ttl`` seconds, so changes made
    outside the registry show up once the entry expires.
    """

    def __init__(
        self,
        base_path: str | Path,
        *,
        base_url: str | None = None,
        mode: RegistryMode | str = RegistryMode.DEFAULT,
        validate: bool = False,
        fallback: Registry | None = None,
        cache: Cache | None = None,
        listing_ttl: float = DEFAULT_LISTING_TTL,
        asset_loader: AssetLoader | None = None,
    ) -> None:
        """Initialise the registry.

        Args:
            base_path: Root directory of the installed components.
            base_url: Public URL the root directory is served from.
            mode: File-operation mode applied to installs and uninstalls.
            validate: Validate specs against the master schema when loading.
            fallback: Registry consulted for components missing locally.
            cache: Listing cache; an in-memory cache is created when omitted.
            listing_ttl: Expiry of the cached listing index in seconds.
            asset_loader: Loader used to fetch assets of remote install sources.
        """

        super().__init__(validate=validate, asset_loader=asset_loader)
        self._base_path = Path(base_path).expanduser().resolve()
        self._base_url = base_url.rstrip("/") if base_url else None
        self._mode = RegistryMode(mode)
        self._ops: FileOperations = file_operations_for(self._mode)
        self._fallback = fallback
        self._listing_ttl = listing_ttl
        self._cache = cache or Cache(
            InMemoryCacheProvider(max_entries=DEFAULT_MAX_ENTRIES),
            namespace="listing",
            default_ttl=listing_ttl,
            options=(str(self._base_path),),
        )
        if not self._base_path.exists():
            self._ops.mkdir_all(self._base_path)

    @property
    def base_path(self) -> Path:
        """Return the root directory of the registry."""

        return self._base_path

    @property
    def base_url(self) -> str | None:
        """Return the public URL of the root directory, if configured."""

        return self._base_url

    @property
    def mode(self) -> RegistryMode:
        """Return the file-operation mode."""

        return self._mode

    @property
    def fallback(self) -> Registry | None:
        """Return the registry consulted for components missing locally."""

        return self._fallback

    def get_component(self, name: str, requirement: RequirementLike = None) -> Component | None:
        """Return the highest installed version of ``name`` satisfying ``requirement``."""

        name_dir = self._name_dir(name)
        if name_dir is None:
            LOGGER.warning("Rejected component name %r outside the registry root", name)
            return None
        if not name_dir.is_dir():
            return self._from_fallback(name, requirement)
        if (name_dir / SPEC_FILENAME).is_file():
            return self._load_dir(name_dir, self._url_for(name))

        versions = self.matching_versions(name, requirement)
        if versions:
            directory = self._version_dir(name, versions[0])
            if directory is not None and (directory / SPEC_FILENAME).is_file():
                return self._load_dir(directory, self._url_for(name, directory.name))
            LOGGER.debug("Listed version %s of %s has no spec on disk", versions[0], name)
        return self._from_fallback(name, requirement)

    def installed_components(self) -> dict[str, list[Version]]:
        """Return the installed names and versions, newest first."""

        index = self._cache.get_or_compute(_INDEX_KEY, self._scan, ttl=self._listing_ttl)
        installed: dict[str, list[Version]] = {}
        if not isinstance(index, dict):
            return installed
        for name, entries in index.items():
            versions = [version for version in map(coerce_version, _strings(entries)) if version is not None]
            installed[name] = sorted(set(versions), reverse=True)
        return installed

    def invalidate(self) -> None:
        """Drop the cached listing index."""

        self._cache.invalidate(_INDEX_KEY)

    def install_component(self, source: Component | str | Path, *, force: bool = False) -> Component:
        """Install ``source`` into the registry tree.

        The spec and every relative asset it declares are copied into
        ``<base>/<name>/<version>``. An already installed version is returned
        as is unless ``force`` is set.

        Args:
            source: Component, spec location (file, directory or URL).
            force: Reinstall even when the version already exists.

        Returns:
            Component: The component as served from the registry tree.

        Raises:
            ComponentLoadError: If ``source`` names a spec that cannot be loaded.
            InvalidComponentSpec: If the spec is malformed.
        """

        component = source if isinstance(source, Component) else self._load_source(source)
        name_dir = self._name_dir(component.name)
        if name_dir is None:
            raise InvalidComponentSpec(f"Component name {component.name!r} cannot be installed")
        target = name_dir / str(component.version)
        if (target / SPEC_FILENAME).is_file() and not force:
            LOGGER.info("%s is already installed in %s", component, self._base_path)
            return self._load_dir(target, self._url_for(component.name, target.name))

        self._ops.mkdir_all(target)
        self._ops.write(target / SPEC_FILENAME, component.dump().encode("utf-8"))
        for path in _relative_assets(component):
            self._install_asset(component, path, target)
        if self._ops.performs_io:
            self.invalidate()
            return self._load_dir(target, self._url_for(component.name, target.name))
        options = ComponentOptions(
            base_url=self._url_for(component.name, target.name),
            base_path=str(target),
            source=f"{component.name}/{target.name}",
        )
        return Component.from_spec(component.raw, options)

    def uninstall_component(self, name: str, requirement: RequirementLike = None) -> list[Version]:
        """Remove the versions of ``name`` matching ``requirement``.

        Without a requirement the whole component directory is removed,
        development package included. A development package matching
        ``requirement`` is removed with its directory as well.

        Returns:
            list[Version]: Versions that were (or, in no-I/O modes, would be) removed.
        """

        name_dir = self._name_dir(name)
        if name_dir is None or not name_dir.is_dir():
            return []
        versions = self.matching_versions(name, requirement)
        removed: list[Version] = []
        if requirement is None or (versions and (name_dir / SPEC_FILENAME).is_file()):
            self._ops.remove(name_dir)
            removed = versions
        else:
            for version in versions:
                directory = self._version_dir(name, version)
                if directory is not None:
                    self._ops.remove(directory)
                    removed.append(version)
        if self._ops.performs_io:
            self.invalidate()
        return removed

    def _from_fallback(self, name: str, requirement: RequirementLike) -> Component | None:
        if self._fallback is None:
            return None
        return self._fallback.get_component(name, requirement)

    def _url_for(self, name: str, version_dir: str | None = None) -> str | None:
        if self._base_url is None:
            return None
        if version_dir is None:
            return f"{self._base_url}/{name}"
        return f"{self._base_url}/{name}/{version_dir}"

    def _name_dir(self, name: str) -> Path | None:
        """Return the directory of ``name``, or ``None`` when it would leave the registry root."""

        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            return None
        name_dir = self._base_path / name
        if name_dir.resolve().parent != self._base_path:
            return None
        return name_dir

    def _version_dir(self, name: str, version: Version) -> Path | None:
        name_dir = self._base_path / name
        for directory in _subdirectories(name_dir):
            if coerce_version(directory.name) == version:
                return directory
        return None

    def _load_dir(self, directory: Path, base_url: str | None) -> Component:
        spec_path = directory / SPEC_FILENAME
        label = directory.relative_to(self._base_path).as_posix()
        LOGGER.debug("Loading %s from %s", label, spec_path)
        try:
            data = spec_path.read_bytes()
        except OSError as exc:
            raise ComponentLoadError(f"No component in {label}: {exc.strerror}") from exc
        options = ComponentOptions(
            base_url=base_url,
            base_path=str(directory),
            validate=self._validate,
            source=label,
        )
        return Component.from_json(data, options)

    def _load_source(self, source: str | Path) -> Component:
        text = str(source)
        if is_remote(text):
            component = self.load_component(text)
            if component is None:
                raise ComponentLoadError(f"Component spec {text} could not be loaded")
            return component
        path = Path(text).expanduser()
        if path.is_dir():
            path = path / SPEC_FILENAME
        if not path.is_file():
            raise ComponentLoadError(f"No component spec at {path}")
        options = ComponentOptions(base_path=str(path.parent), validate=self._validate, source=str(path))
        return Component.from_json(path.read_bytes(), options)

    def _install_asset(self, component: Component, path: str, target: Path) -> None:
        destination = target / path
        if component.base_path is not None:
            origin = Path(component.base_path) / path
            if not origin.is_file():
                LOGGER.warning("Asset %s of %s is missing; skipped", path, component)
                return
            self._ops.copy(origin, destination)
            return
        data = self._asset_loader.load(component.asset_location(path))
        if data is None:
            LOGGER.warning("Asset %s of %s could not be fetched; skipped", path, component)
            return
        self._ops.write(destination, data)

    def _scan(self) -> JSONValue:
        index: dict[str, JSONValue] = {}
        for name_dir in _subdirectories(self._base_path):
            dev_spec = name_dir / SPEC_FILENAME
            if dev_spec.is_file():
                version = _spec_version(dev_spec)
                if version is not None:
                    index[name_dir.name] = [version]
                continue
            versions = [
                directory.name for directory in _subdirectories(name_dir) if (directory / SPEC_FILENAME).is_file()
            ]
            if versions:
                index[name_dir.name] = versions
        LOGGER.debug("Scanned %d components under %s", len(index), self._base_path)
        return index


def _subdirectories(path: Path) -> Iterator[Path]:
    if not path.is_dir():
        return
    yield from sorted(child for child in path.iterdir() if child.is_dir())


def _strings(value: JSONValue) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    return []


def _spec_version(path: Path) -> str | None:
    try:
        spec = parse_object(path.read_bytes(), context=str(path))
    except (OSError, InvalidComponentSpec) as exc:
        LOGGER.warning("Skipping unreadable development package %s: %s", path.parent.name, exc)
        return None
    version = spec.get("version")
    return None if version is None else str(version)


def _is_installable(path: str) -> bool:
    if not path or is_remote(path):
        return False
    pure = PurePosixPath(path)
    return not pure.is_absolute() and ".." not in pure.parts


def _relative_assets(component: Component) -> list[str]:
    """Return the relative files declared by ``component`` in declaration order."""

    candidates: list[str] = [
        *component.templates,
        *component.styles,
        *component.scripts,
        *component.themes,
        *component.assets,
    ]
    if component.thumbnail:
        candidates.append(component.thumbnail)
    if component.settings_schema.source:
        candidates.append(component.settings_schema.source)
    for locale in component.locales.values():
        if isinstance(locale, dict) and isinstance(locale.get("view"), str):
            candidates.append(str(locale["view"]))
    assets: list[str] = []
    for path in candidates:
        if _is_installable(path) and path not in assets:
            assets.append(path)
        elif path and not is_remote(path) and not _is_installable(path):
            LOGGER.warning("Not installing asset %s of %s: path outside the component", path, component)
    return assets


__all__ = ["DEFAULT_LISTING_TTL", "LocalRegistry"]
