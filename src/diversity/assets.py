# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Asset location helpers and the default local/remote asset loader."""

from __future__ import annotations

import logging
import posixpath
import ssl
import urllib.error
import urllib.request
from collections.abc import Iterable
from pathlib import Path
from typing import Final, Protocol, runtime_checkable
from urllib.parse import urlparse

LOGGER = logging.getLogger(__name__)

_SUPPORTED_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https", "file"})
_USER_AGENT: Final[str] = "diversity-engine/1.0"


def is_remote(resource: str | Path) -> bool:
    """Return ``True`` when ``resource`` looks like a URL (``scheme://`` or ``//host``)."""

    return "//" in str(resource)


def join_location(base: str, path: str) -> str:
    """Return ``path`` expanded against ``base`` unless it is already remote.

    Args:
        base: Base URL or directory of the owning component.
        path: Asset path as declared in the component spec.

    Returns:
        str: Absolute location of the asset.
    """

    if is_remote(path):
        return path
    if is_remote(base):
        return f"{base.rstrip('/')}/{path.lstrip('/')}"
    return str(Path(base) / path)


def expand_relative_paths(base: str | None, paths: Iterable[str]) -> list[str]:
    """Return ``paths`` with relative entries expanded against ``base``.

    Remote entries are never rewritten. When ``base`` is ``None`` the paths are
    returned unchanged.
    """

    if base is None:
        return [str(path) for path in paths]
    return [join_location(base, str(path)) for path in paths]


def url_dirname(url: str) -> str:
    """Return the parent location of ``url`` without a trailing slash."""

    parsed = urlparse(url)
    parent = posixpath.dirname(parsed.path)
    return parsed._replace(path=parent, query="", fragment="").geturl()


@runtime_checkable
class AssetLoader(Protocol):
    """Load an asset by local path or URL, returning ``None`` when unavailable."""

    def load(self, path: str) -> bytes | None:
        """Return the raw bytes stored at ``path``.

        Args:
            path: Local filesystem path or remote URL.

        Returns:
            bytes | None: Asset contents, or ``None`` when it cannot be loaded.
        """


class DefaultAssetLoader:
    """Load assets from the local filesystem or over HTTP(S).

    Semi-absolute URLs (``//cdn.example/app.js``) are fetched over HTTPS.
    Failures are logged and reported as ``None``; callers decide whether a
    missing asset is fatal.
    """

    def __init__(self, *, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._opener = urllib.request.build_opener(
            urllib.request.HTTPSHandler(context=ssl.create_default_context()),
        )

    def load(self, path: str) -> bytes | None:
        """Return the contents of ``path`` or ``None`` when it cannot be read."""

        if not is_remote(path):
            return self._load_file(Path(path))
        url = f"https:{path}" if path.startswith("//") else path
        scheme = urlparse(url).scheme.lower()
        if scheme not in _SUPPORTED_SCHEMES:
            LOGGER.warning("Unsupported asset scheme %r for %s", scheme, url)
            return None
        request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        try:
            with self._opener.open(request, timeout=self._timeout) as response:
                return response.read()
        except (urllib.error.URLError, OSError, ValueError) as exc:
            LOGGER.warning("Failed to load %s: %s", url, exc)
            return None

    @staticmethod
    def _load_file(path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except OSError as exc:
            LOGGER.warning("Failed to load %s: %s", path, exc)
            return None


def load_text(loader: AssetLoader, path: str) -> str | None:
    """Return the asset at ``path`` decoded as UTF-8, or ``None`` when missing."""

    data = loader.load(path)
    if data is None:
        return None
    return data.decode("utf-8", errors="replace")


__all__ = [
    "AssetLoader",
    "DefaultAssetLoader",
    "expand_relative_paths",
    "is_remote",
    "join_location",
    "load_text",
    "url_dirname",
]
