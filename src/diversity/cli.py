# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command line interface for inspecting, installing and rendering components."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import typer

from .config import DiversityConfig, LocalRegistryConfig, load_config, local_config
from .documents import parse_document
from .errors import ComponentNotFound, ConfigError, DiversityError
from .factory import build_cache_provider, build_engine, build_registry
from .logging import configure_logging, detect_tty, fail, info, ok, section, warn
from .registry import LocalRegistry, Registry, RegistryMode
from .types import JSONValue

app = typer.Typer(name="diversity", help="Resolve, install and render diversity components.", no_args_is_help=True)


@dataclass(slots=True)
class CLIState:
    """Configuration selected by the global options."""

    config: DiversityConfig

    def registry(self) -> Registry:
        return build_registry(self.config.registry, build_cache_provider(self.config.cache))

    def local_registry(self, mode: RegistryMode | None) -> LocalRegistry:
        """Return the configured local registry, with ``mode`` applied when given.

        Raises:
            ConfigError: If the configured registry is not a local one.
        """

        registry_config = self.config.registry
        if not isinstance(registry_config, LocalRegistryConfig):
            raise ConfigError("install and uninstall need a local registry")
        if mode is not None:
            registry_config = registry_config.model_copy(deep=True)
            registry_config.options.mode = mode
        registry = build_registry(registry_config, build_cache_provider(self.config.cache))
        if not isinstance(registry, LocalRegistry):  # pragma: no cover - guarded by the config type
            raise ConfigError("install and uninstall need a local registry")
        return registry


@contextmanager
def _reported_errors() -> Iterator[None]:
    """Turn package errors into a failure line and exit status 1."""

    try:
        yield
    except DiversityError as exc:
        fail(str(exc))
        raise typer.Exit(code=1) from exc


def _state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.BadParameter("CLI state was not initialised")
    return state


def _read_json(path: Path | None, label: str) -> JSONValue:
    if path is None:
        return None
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {label} file {path}: {exc.strerror}") from exc
    return parse_document(data, context=str(path))


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", help="JSON configuration file."),
    registry: Path | None = typer.Option(None, "--registry", "-r", help="Local component directory."),
    log_level: str | None = typer.Option(None, "--log-level", help="Override the configured log level."),
) -> None:
    """Select the registry the commands operate on."""

    if config is not None and registry is not None:
        raise typer.BadParameter("Use either --config or --registry, not both.")
    with _reported_errors():
        if config is not None:
            loaded = load_config(config)
        elif registry is not None:
            loaded = local_config(registry.expanduser().resolve())
        else:
            loaded = DiversityConfig()
    configure_logging(log_level or loaded.logging.level)
    ctx.obj = CLIState(config=loaded)


@app.command()
def versions(ctx: typer.Context, name: str = typer.Argument(..., help="Component name.")) -> None:
    """List the available versions of a component, newest first."""

    with _reported_errors():
        found = _state(ctx).registry().list_versions(name)
    if not found:
        warn(f"No versions of {name} available")
        raise typer.Exit(code=1)
    for version in found:
        typer.echo(str(version))


@app.command()
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Component name."),
    version: str | None = typer.Option(None, "--version", "-v", help="Version requirement."),
) -> None:
    """Print the spec of the best matching component version."""

    with _reported_errors():
        component = _state(ctx).registry().get_component(name, version)
        if component is None:
            raise ComponentNotFound(name, version)
        typer.echo(component.dump())


@app.command()
def resolve(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Component name."),
    version: str | None = typer.Option(None, "--version", "-v", help="Version requirement."),
) -> None:
    """Print the dependency-ordered components needed by a component."""

    with _reported_errors():
        registry = _state(ctx).registry()
        component = registry.get_component(name, version)
        if component is None:
            raise ComponentNotFound(name, version)
        resolved = registry.expand(component)
    for item in resolved:
        typer.echo(f"{item.name} {item.version}")
    if resolved.discarded:
        section("Discarded versions", use_color=detect_tty())
        for item in resolved.discarded:
            info(f"{item.name} {item.version}")


@app.command()
def render(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Component name."),
    version: str | None = typer.Option(None, "--version", "-v", help="Version requirement."),
    settings: Path | None = typer.Option(None, "--settings", "-s", help="JSON file with the component settings."),
    context: Path | None = typer.Option(None, "--context", help="JSON file with the render context."),
) -> None:
    """Render a component and print the resulting HTML."""

    state = _state(ctx)
    with _reported_errors():
        render_context = _read_json(context, "context")
        if render_context is not None and not isinstance(render_context, dict):
            raise ConfigError("The render context must be a JSON object")
        engine = build_engine(state.config)
        component = engine.registry.get_component(name, version)
        if component is None:
            raise ComponentNotFound(name, version)
        html = engine.render(component, render_context, _read_json(settings, "settings"))
    if html is None:
        warn(f"{component} has no template")
        return
    typer.echo(html)


@app.command()
def install(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Spec file, component directory or spec URL."),
    force: bool = typer.Option(False, "--force", "-f", help="Reinstall an existing version."),
    mode: RegistryMode | None = typer.Option(None, "--mode", "-m", help="File operation mode."),
) -> None:
    """Install a component into the local registry."""

    with _reported_errors():
        registry = _state(ctx).local_registry(mode)
        component = registry.install_component(source, force=force)
    ok(f"Installed {component.name} {component.version}")


@app.command()
def uninstall(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Component name."),
    version: str | None = typer.Option(None, "--version", "-v", help="Version requirement."),
    mode: RegistryMode | None = typer.Option(None, "--mode", "-m", help="File operation mode."),
) -> None:
    """Remove installed versions of a component."""

    with _reported_errors():
        registry = _state(ctx).local_registry(mode)
        removed = registry.uninstall_component(name, version)
    if not removed:
        warn(f"No installed version of {name} matched")
        raise typer.Exit(code=1)
    ok(f"Removed {name} " + ", ".join(str(item) for item in removed))


def run() -> None:
    """Console script entry point."""

    app()


__all__ = ["CLIState", "app", "run"]
