# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Rendering engine and its collaborators."""

from __future__ import annotations

from .bundles import AssetBundler, Compressor, identity_compressor
from .context import ContextResolver, JsonRpcContextResolver
from .engine import EngineOptions, MinificationOptions, RenderEngine
from .state import RenderPhase, RenderResult, RenderState
from .templates import JinjaTemplateRenderer, TemplateRenderer

__all__ = [
    "AssetBundler",
    "Compressor",
    "ContextResolver",
    "EngineOptions",
    "JinjaTemplateRenderer",
    "JsonRpcContextResolver",
    "MinificationOptions",
    "RenderEngine",
    "RenderPhase",
    "RenderResult",
    "RenderState",
    "TemplateRenderer",
    "identity_compressor",
]
