# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and the JSON configuration loader."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from .cache import DEFAULT_MAX_ENTRIES
from .errors import ConfigError
from .registry.fileops import RegistryMode


def _resolve_relative(value: Path | None, info: ValidationInfo) -> Path | None:
    """Resolve ``value`` against the directory of the configuration file."""

    if value is None:
        return None
    value = value.expanduser()
    base_dir = info.context.get("base_dir") if isinstance(info.context, dict) else None
    if base_dir is not None and not value.is_absolute():
        return Path(base_dir) / value
    return value


class LocalRegistryOptions(BaseModel):
    """Options of a registry backed by a local component tree."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    base_path: Path
    base_url: str | None = None
    mode: RegistryMode = RegistryMode.DEFAULT
    validate_spec: bool = False
    listing_ttl: float = Field(default=600.0, gt=0)
    fallback: RegistryConfig | None = None

    @field_validator("base_path", mode="after")
    @classmethod
    def resolve_base_path(cls, value: Path, info: ValidationInfo) -> Path | None:
        return _resolve_relative(value, info)


class ApiRegistryOptions(BaseModel):
    """Options of a registry backed by the diversity-api service."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    api_url: str
    validate_spec: bool = False
    ttl: float = Field(default=3600.0, gt=0)


class LocalRegistryConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    type: Literal["local"] = "local"
    options: LocalRegistryOptions


class ApiRegistryConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    type: Literal["api"] = "api"
    options: ApiRegistryOptions


class NamedRegistryConfig(BaseModel):
    """Entry of a compound registry chain."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    name: str | None = None
    registry: RegistryConfig


class CompoundRegistryConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    type: Literal["compound"] = "compound"
    registries: list[NamedRegistryConfig] = Field(default_factory=list)


RegistryConfig = Annotated[
    LocalRegistryConfig | ApiRegistryConfig | CompoundRegistryConfig,
    Field(discriminator="type"),
]


class CacheConfig(BaseModel):
    """Backend shared by the listing, schema and fragment caches."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    kind: Literal["memory", "directory"] = "memory"
    directory: Path | None = None
    max_entries: int | None = Field(default=DEFAULT_MAX_ENTRIES, gt=0)
    ttl: float = Field(default=3600.0, gt=0)

    @field_validator("directory", mode="after")
    @classmethod
    def resolve_directory(cls, value: Path | None, info: ValidationInfo) -> Path | None:
        return _resolve_relative(value, info)


class MinificationConfig(BaseModel):
    """Bundling options applied to root renders."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    base_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()) / "diversity" / "minified")
    base_url: str = "/minified"
    minify_js: bool = False
    minify_css: bool = False
    minify_remotes: bool = False
    inline_js: bool = False

    @field_validator("base_dir", mode="after")
    @classmethod
    def resolve_base_dir(cls, value: Path, info: ValidationInfo) -> Path | None:
        return _resolve_relative(value, info)


class EngineConfig(BaseModel):
    """Rendering engine options."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    backend_url: str | None = None
    validate_settings: bool = True
    fragment_ttl: float = Field(default=60.0, gt=0)
    minification: MinificationConfig = Field(default_factory=MinificationConfig)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def normalise_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class DiversityConfig(BaseModel):
    """Top-level configuration of registries, caches, engine and logging."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    registry: RegistryConfig = Field(
        default_factory=lambda: LocalRegistryConfig(options=LocalRegistryOptions(base_path=Path("components"))),
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


LocalRegistryOptions.model_rebuild()
NamedRegistryConfig.model_rebuild()
CompoundRegistryConfig.model_rebuild()
DiversityConfig.model_rebuild()


def parse_config(data: object, *, base_dir: Path | None = None) -> DiversityConfig:
    """Validate ``data`` as a :class:`DiversityConfig`.

    Relative paths are resolved against ``base_dir`` when given.

    Raises:
        ConfigError: If ``data`` does not describe a valid configuration.
    """

    try:
        return DiversityConfig.model_validate(data, context={"base_dir": base_dir})
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: Path) -> DiversityConfig:
    """Load the JSON configuration stored at ``path``.

    Raises:
        ConfigError: If the file cannot be read or holds an invalid configuration.
    """

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration {path}: {exc.strerror}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Configuration {path} is not valid JSON: {exc}") from exc
    return parse_config(data, base_dir=path.resolve().parent)


def local_config(base_path: Path, *, mode: RegistryMode = RegistryMode.DEFAULT) -> DiversityConfig:
    """Return a configuration serving the component tree at ``base_path``."""

    return DiversityConfig(registry=LocalRegistryConfig(options=LocalRegistryOptions(base_path=base_path, mode=mode)))


__all__ = [
    "ApiRegistryConfig",
    "ApiRegistryOptions",
    "CacheConfig",
    "CompoundRegistryConfig",
    "DiversityConfig",
    "EngineConfig",
    "LocalRegistryConfig",
    "LocalRegistryOptions",
    "LoggingConfig",
    "MinificationConfig",
    "NamedRegistryConfig",
    "RegistryConfig",
    "load_config",
    "local_config",
    "parse_config",
]
