# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Recursive rendering of a component and the components its settings reference."""

from __future__ import annotations

import json
import logging
import re
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Final

from ..assets import AssetLoader, DefaultAssetLoader
from ..cache import DEFAULT_MAX_ENTRIES, Cache, InMemoryCacheProvider
from ..component import Component
from ..documents import compute_checksum, thaw
from ..errors import ComponentNotFound, format_path
from ..registry.base import Registry
from ..resolver import ResolvedSet
from ..schema import SchemaStore, SchemaValidator, default_validator
from ..types import BACKEND_URL_KEY, LANGUAGE_KEY, JSONValue, SettingsPath
from ..versioning import parse_version
from .bundles import AssetBundler, AssetRef, Compressor, collect_assets, identity_compressor
from .context import ContextResolver, JsonRpcContextResolver
from .settings_walk import SettingsWalker
from .state import RenderPhase, RenderResult, RenderState
from .templates import JinjaTemplateRenderer, TemplateRenderer, template_helpers

LOGGER = logging.getLogger(__name__)

DEFAULT_FRAGMENT_TTL: Final[float] = 60.0
DEFAULT_SCHEMA_TTL: Final[float] = 3600.0
_SCRIPT_CLOSE: Final[re.Pattern[str]] = re.compile(r"</script>", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class MinificationOptions:
    """Control how scripts and styles are exposed to the root template.

    Attributes:
        base_dir: Directory bundle files are written to.
        base_url: Public URL of ``base_dir``.
        minify_js: Replace local scripts with one bundle file.
        minify_css: Replace local styles with one bundle file.
        minify_remotes: Fold remote assets into the bundles as well.
        inline_js: Expose the concatenated scripts as ``minifiedJs`` instead of URLs.
    """

    base_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()) / "diversity" / "minified")
    base_url: str = "/minified"
    minify_js: bool = False
    minify_css: bool = False
    minify_remotes: bool = False
    inline_js: bool = False


@dataclass(frozen=True, slots=True)
class EngineOptions:
    """Engine-wide rendering options.

    Attributes:
        backend_url: JSON-RPC backend used when the render context names none.
        validate_settings: Validate settings against component schemas (warnings only).
        fragment_ttl: Lifetime of cached fragments in seconds.
        minification: Bundle and inline options for root renders.
    """

    backend_url: str | None = None
    validate_settings: bool = True
    fragment_ttl: float = DEFAULT_FRAGMENT_TTL
    minification: MinificationOptions = field(default_factory=MinificationOptions)


class RenderEngine:
    """Render components into HTML, recursing into component slots of their settings.

    All per-call data lives in a :class:`RenderState`, so one engine can serve
    concurrent renders. Rendered fragments are cached under the component
    checksum, settings, context and settings path together with the
    components they needed, so root manifests stay complete on cache hits.
    """

    def __init__(
        self,
        registry: Registry,
        *,
        validator: SchemaValidator | None = None,
        template_renderer: TemplateRenderer | None = None,
        context_resolver: ContextResolver | None = None,
        asset_loader: AssetLoader | None = None,
        fragment_cache: Cache | None = None,
        schema_cache: Cache | None = None,
        bundler: AssetBundler | None = None,
        compressor: Compressor = identity_compressor,
        options: EngineOptions | None = None,
    ) -> None:
        """Initialise the engine; omitted collaborators get their default implementation."""

        if not isinstance(registry, Registry):
            raise TypeError("Cannot run engine without a valid registry")
        self._registry = registry
        self._options = options or EngineOptions()
        self._validator = validator or default_validator()
        self._renderer = template_renderer or JinjaTemplateRenderer()
        self._context_resolver = context_resolver or JsonRpcContextResolver()
        self._loader = asset_loader or DefaultAssetLoader()
        self._fragments = fragment_cache or Cache(
            InMemoryCacheProvider(max_entries=DEFAULT_MAX_ENTRIES),
            namespace="fragment",
            default_ttl=self._options.fragment_ttl,
            options=(self._options.validate_settings,),
        )
        self._schemas = SchemaStore(
            self._loader,
            schema_cache
            or Cache(
                InMemoryCacheProvider(max_entries=DEFAULT_MAX_ENTRIES),
                namespace="schema",
                default_ttl=DEFAULT_SCHEMA_TTL,
            ),
        )
        minification = self._options.minification
        self._bundler = bundler or AssetBundler(
            minification.base_dir,
            base_url=minification.base_url,
            compressor=compressor,
            loader=self._loader,
            minify_remotes=minification.minify_remotes,
        )

    @property
    def registry(self) -> Registry:
        """Return the registry components are resolved from."""

        return self._registry

    @property
    def options(self) -> EngineOptions:
        """Return the engine options."""

        return self._options

    @property
    def fragment_cache(self) -> Cache:
        """Return the cache holding rendered fragments."""

        return self._fragments

    def render(
        self,
        component: Component,
        context: Mapping[str, JSONValue] | None = None,
        settings: JSONValue = None,
    ) -> str | None:
        """Render ``component`` with ``settings`` in ``context``.

        Args:
            component: Root component.
            context: Render context; ``backendURL`` and ``language`` are reserved keys.
            settings: Settings for the root component.

        Returns:
            str | None: Rendered HTML, ``None`` when the component has no template.

        Raises:
            ComponentNotFound: If a referenced sub-component is unavailable.
            UnresolvedDependency: If a dependency cannot be satisfied.
            ContextResolutionError: If a declared context entry cannot be resolved.
            ComponentLoadError: If a declared template cannot be loaded or rendered.
        """

        return self.render_with_manifest(component, context, settings).html

    def render_with_manifest(
        self,
        component: Component,
        context: Mapping[str, JSONValue] | None = None,
        settings: JSONValue = None,
    ) -> RenderResult:
        """Render ``component`` and return the output with its component manifest."""

        state = RenderState(registry=self._registry)
        html = self._render(component, settings, dict(context or {}), (), state)
        return RenderResult(html=html, components=state.resolved(), transitions=tuple(state.transitions))

    def render_reference(
        self,
        reference: Mapping[str, JSONValue],
        context: Mapping[str, JSONValue] | None = None,
    ) -> str | None:
        """Render a ``{component, version, settings}`` reference.

        Raises:
            ComponentNotFound: If the referenced component is unavailable.
        """

        component = self._lookup(reference, ())
        return self.render(component, context, reference.get("settings"))

    def purge(self) -> None:
        """Drop every cached fragment and settings schema."""

        self._fragments.invalidate()
        self._schemas.purge()

    def _lookup(self, reference: Mapping[str, JSONValue], path: SettingsPath) -> Component:
        name = str(reference.get("component", ""))
        version = reference.get("version")
        requirement = None if version is None else str(version)
        component = self._registry.get_component(name, requirement) if name else None
        if component is None:
            raise ComponentNotFound(name, requirement, path)
        return component

    def _render(
        self,
        component: Component,
        settings: JSONValue,
        context: dict[str, JSONValue],
        path: SettingsPath,
        state: RenderState,
    ) -> str | None:
        key = compute_checksum([component.checksum, component.base_location, settings, context, list(path)])
        cached = self._fragments.get(key)
        if isinstance(cached, Mapping) and self._replay(cached, path, component, state):
            html = cached.get("html")
            return html if isinstance(html, str) else None

        state.open_scope()
        try:
            html = self._render_fresh(component, settings, context, path, state)
        except Exception:
            state.close_scope()
            state.enter(path, component, RenderPhase.FAILED)
            raise
        touched = state.close_scope()
        fragment = {"html": html, "components": [_fragment_entry(item) for item in touched]}
        self._fragments.set(key, fragment)
        return html

    def _replay(
        self,
        cached: Mapping[str, JSONValue],
        path: SettingsPath,
        component: Component,
        state: RenderState,
    ) -> bool:
        """Fold the components recorded with a cached fragment into ``state``."""

        recorded = cached.get("components")
        if not isinstance(recorded, list):
            return False
        components: list[Component] = []
        for entry in recorded:
            found = self._recorded_component(entry) if isinstance(entry, list) else None
            if found is None:
                LOGGER.debug("Cached fragment of %s references unavailable %s; rendering again", component, entry)
                return False
            components.append(found)
        state.touch_all(components)
        state.enter(path, component, RenderPhase.DONE)
        LOGGER.debug("Reusing cached fragment of %s at %s", component, format_path(path))
        return True

    def _recorded_component(self, entry: list[JSONValue]) -> Component | None:
        if len(entry) == 3 and isinstance(entry[2], str):
            found = self._registry.load_component(entry[2])
            if found is not None and found.identity != (str(entry[0]), parse_version(str(entry[1]))):
                return None
            return found
        if len(entry) == 2:
            return self._registry.get_component(str(entry[0]), parse_version(str(entry[1])))
        return None

    def _render_fresh(
        self,
        component: Component,
        settings: JSONValue,
        context: dict[str, JSONValue],
        path: SettingsPath,
        state: RenderState,
    ) -> str | None:
        state.enter(path, component, RenderPhase.VALIDATING)
        schema = self._schema_for(component)
        if self._options.validate_settings and settings is not None:
            errors = self._validator.validate(schema, settings)
            if errors:
                LOGGER.warning(
                    "Settings of %s at %s failed validation:\n%s",
                    component,
                    format_path(path),
                    "\n".join(errors),
                )

        state.enter(path, component, RenderPhase.EXPANDING_DEPENDENCIES)
        state.touch(component)
        state.touch_all(self._registry.expand(component))

        state.enter(path, component, RenderPhase.WALKING_SETTINGS)
        walker = SettingsWalker(partial(self._render_node, context=context, state=state), owner=str(component))
        expanded = walker.expand(schema, thaw(settings) if settings is not None else {}, path)

        state.enter(path, component, RenderPhase.RENDERING_TEMPLATE)
        source = component.template_source(self._loader)
        if source is None:
            state.enter(path, component, RenderPhase.DONE)
            return None
        namespace = self._namespace(component, expanded, context, path, state)
        LOGGER.info("Rendering %s at %s", component, format_path(path))
        html = self._renderer.render(source, namespace)
        state.enter(path, component, RenderPhase.DONE)
        return html

    def _render_node(
        self,
        reference: Mapping[str, JSONValue],
        path: SettingsPath,
        *,
        context: dict[str, JSONValue],
        state: RenderState,
    ) -> str | None:
        component = self._lookup(reference, path)
        return self._render(component, reference.get("settings"), context, path, state)

    def _schema_for(self, component: Component) -> Mapping[str, JSONValue]:
        location = component.settings_location()
        if location is None:
            return dict(component.settings_schema.data)
        return self._schemas.load(location)

    def _namespace(
        self,
        component: Component,
        settings: JSONValue,
        context: dict[str, JSONValue],
        path: SettingsPath,
        state: RenderState,
    ) -> dict[str, Any]:
        backend_url = context.get(BACKEND_URL_KEY) or self._options.backend_url
        language = context.get(LANGUAGE_KEY)
        namespace: dict[str, Any] = {
            "settings": settings,
            "settingsJSON": escape_script(json.dumps(settings)),
            "context": self._context_resolver.resolve(
                None if backend_url is None else str(backend_url),
                component.context,
                context,
                owner=str(component),
            ),
            "baseUrl": component.base_url,
            **template_helpers(None if language is None else str(language)),
        }
        if not path:
            namespace.update(self._manifest(state.resolved(), None if language is None else str(language)))
        return namespace

    def _manifest(self, resolved: ResolvedSet, language: str | None) -> dict[str, Any]:
        minification = self._options.minification
        angular = [component.angular_module for component in resolved if component.angular_module]
        manifest: dict[str, Any] = {
            "angular": angular,
            "angularBootstrap": f"angular.bootstrap(document,{json.dumps(angular)});",
            "l10n": self._l10n(resolved, language),
        }
        scripts = collect_assets(resolved, "scripts")
        styles = collect_assets(resolved, "styles")
        if minification.inline_js:
            manifest["minifiedJs"] = escape_script(self._bundler.concatenate(scripts, "scripts"))
            manifest["scripts"] = [ref.url for ref in scripts if ref.is_remote and not minification.minify_remotes]
        elif minification.minify_js:
            manifest["scripts"] = self._bundler.bundle(scripts, "scripts")
        else:
            manifest["scripts"] = _urls(scripts)
        if minification.minify_css:
            manifest["styles"] = self._bundler.bundle(styles, "styles")
        else:
            manifest["styles"] = _urls(styles)
        return manifest

    def _l10n(self, resolved: ResolvedSet, language: str | None) -> list[dict[str, str]]:
        if language is None:
            return []
        messages: list[dict[str, str]] = []
        for component in resolved:
            locale = component.locales.get(language)
            view = locale.get("view") if isinstance(locale, Mapping) else None
            if not isinstance(view, str):
                continue
            data = component.load_asset(view, self._loader)
            if data is None:
                LOGGER.warning("Locale %s of %s could not be loaded", language, component)
                continue
            messages.append({"component": component.name, "messages": data})
        return messages


def escape_script(text: str) -> str:
    """Return ``text`` safe to embed inside an HTML ``<script>`` element."""

    return _SCRIPT_CLOSE.sub(r"<\\/script>", text)


def _urls(refs: list[AssetRef]) -> list[str]:
    return [ref.url for ref in refs]


def _fragment_entry(component: Component) -> list[JSONValue]:
    """Return how a cached fragment remembers ``component``; direct loads keep their spec URL."""

    entry: list[JSONValue] = [component.name, str(component.version)]
    if component.spec_url is not None:
        entry.append(component.spec_url)
    return entry


__all__ = ["EngineOptions", "MinificationOptions", "RenderEngine", "escape_script"]
