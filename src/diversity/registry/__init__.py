# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Component registries: local tree, remote API and compound chains."""

from __future__ import annotations

from .base import Registry
from .compound import CompoundRegistry, RegistryEntry
from .fileops import FileOperations, RegistryMode, file_operations_for
from .http import HttpClient, HttpResponse, UrllibHttpClient
from .local import LocalRegistry
from .remote import RemoteApiRegistry

__all__ = [
    "CompoundRegistry",
    "FileOperations",
    "HttpClient",
    "HttpResponse",
    "LocalRegistry",
    "Registry",
    "RegistryEntry",
    "RegistryMode",
    "RemoteApiRegistry",
    "UrllibHttpClient",
    "file_operations_for",
]
