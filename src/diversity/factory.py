# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Build registries, caches and the render engine from configuration."""

from __future__ import annotations

from .assets import AssetLoader, DefaultAssetLoader
from .cache import Cache, CacheProvider, CacheSettings, create_cache_provider
from .config import (
    ApiRegistryConfig,
    CacheConfig,
    CompoundRegistryConfig,
    DiversityConfig,
    EngineConfig,
    LocalRegistryConfig,
    RegistryConfig,
)
from .engine import EngineOptions, MinificationOptions, RenderEngine
from .engine.bundles import Compressor, identity_compressor
from .registry import CompoundRegistry, LocalRegistry, Registry, RemoteApiRegistry
from .registry.http import HttpClient


def build_cache_provider(config: CacheConfig) -> CacheProvider:
    """Return the cache provider described by ``config`` (environment overrides apply).

    Raises:
        ConfigError: If a directory provider is requested without a directory.
    """

    settings = CacheSettings(kind=config.kind, directory=config.directory, max_entries=config.max_entries)
    return create_cache_provider(settings)


def build_registry(
    config: RegistryConfig,
    provider: CacheProvider,
    *,
    asset_loader: AssetLoader | None = None,
    http: HttpClient | None = None,
) -> Registry:
    """Return the registry described by ``config``.

    Every registry caches through ``provider`` under its own namespace.

    Raises:
        RegistryUnavailable: If a remote registry fails its liveness check.
    """

    loader = asset_loader or DefaultAssetLoader()
    if isinstance(config, LocalRegistryConfig):
        options = config.options
        fallback = None
        if options.fallback is not None:
            fallback = build_registry(options.fallback, provider, asset_loader=loader, http=http)
        base_path = options.base_path.expanduser().resolve()
        return LocalRegistry(
            base_path,
            base_url=options.base_url,
            mode=options.mode,
            validate=options.validate_spec,
            fallback=fallback,
            cache=Cache(provider, namespace="listing", default_ttl=options.listing_ttl, options=(str(base_path),)),
            listing_ttl=options.listing_ttl,
            asset_loader=loader,
        )
    if isinstance(config, ApiRegistryConfig):
        options = config.options
        return RemoteApiRegistry(
            options.api_url,
            cache=Cache(provider, namespace="api", default_ttl=options.ttl, options=(options.api_url,)),
            validate=options.validate_spec,
            http=http,
            asset_loader=loader,
            ttl=options.ttl,
        )
    if isinstance(config, CompoundRegistryConfig):
        compound = CompoundRegistry()
        for entry in config.registries:
            compound.add_registry(build_registry(entry.registry, provider, asset_loader=loader, http=http), entry.name)
        return compound
    raise TypeError(f"Unsupported registry configuration {config!r}")


def engine_options(config: EngineConfig) -> EngineOptions:
    """Return the engine options described by ``config``."""

    minification = config.minification
    return EngineOptions(
        backend_url=config.backend_url,
        validate_settings=config.validate_settings,
        fragment_ttl=config.fragment_ttl,
        minification=MinificationOptions(
            base_dir=minification.base_dir,
            base_url=minification.base_url,
            minify_js=minification.minify_js,
            minify_css=minification.minify_css,
            minify_remotes=minification.minify_remotes,
            inline_js=minification.inline_js,
        ),
    )


def build_engine(
    config: DiversityConfig,
    *,
    registry: Registry | None = None,
    provider: CacheProvider | None = None,
    asset_loader: AssetLoader | None = None,
    compressor: Compressor = identity_compressor,
) -> RenderEngine:
    """Return a render engine wired from ``config``.

    Args:
        config: Full configuration.
        registry: Registry to use instead of building one from ``config.registry``.
        provider: Cache provider to use instead of building one from ``config.cache``.
        asset_loader: Loader shared by the registry and the engine.
        compressor: Script/style compressor used for bundles.

    Returns:
        RenderEngine: Engine ready to render.
    """

    store = provider or build_cache_provider(config.cache)
    loader = asset_loader or DefaultAssetLoader()
    active_registry = registry or build_registry(config.registry, store, asset_loader=loader)
    options = engine_options(config.engine)
    return RenderEngine(
        active_registry,
        asset_loader=loader,
        fragment_cache=Cache(
            store,
            namespace="fragment",
            default_ttl=options.fragment_ttl,
            options=(options.validate_settings,),
        ),
        schema_cache=Cache(store, namespace="schema", default_ttl=config.cache.ttl),
        compressor=compressor,
        options=options,
    )


__all__ = ["build_cache_provider", "build_engine", "build_registry", "engine_options"]
