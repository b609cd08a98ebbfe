# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Concatenate and compress component scripts and styles into bundle files."""

from __future__ import annotations

import hashlib
import logging
import os
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal

from ..assets import AssetLoader, DefaultAssetLoader, is_remote
from ..component import Component
from ..errors import CacheBackendFailure

LOGGER = logging.getLogger(__name__)

AssetKind = Literal["scripts", "styles"]
Compressor = Callable[[str, str], str]

_EXTENSIONS: Final[dict[str, str]] = {"scripts": "js", "styles": "css"}


def identity_compressor(text: str, kind: str) -> str:
    """Return ``text`` unchanged."""

    _ = kind
    return text


@dataclass(frozen=True, slots=True)
class AssetRef:
    """Script or style declared by a component.

    Attributes:
        component: Declaring component.
        path: Path as written in the spec.
        url: Path expanded against the component's public base location.
    """

    component: Component
    path: str
    url: str

    @property
    def is_remote(self) -> bool:
        return is_remote(self.path)


def collect_assets(components: Iterable[Component], kind: AssetKind) -> list[AssetRef]:
    """Return the scripts or styles of ``components``; the first occurrence of a URL wins."""

    refs: list[AssetRef] = []
    seen: set[str] = set()
    for component in components:
        paths = component.scripts if kind == "scripts" else component.styles
        for path, url in zip(paths, component.expand(paths), strict=True):
            if url in seen:
                continue
            seen.add(url)
            refs.append(AssetRef(component=component, path=path, url=url))
    return refs


class AssetBundler:
    """Write concatenated assets under ``base_dir`` and return their public URLs.

    Bundle files are named after the SHA-256 digest of their content, so an
    unchanged set of assets always maps to the same file, which is reused
    when it already exists. Remote assets stay separate entries unless
    ``minify_remotes`` is set.
    """

    def __init__(
        self,
        base_dir: str | Path,
        *,
        base_url: str = "/minified",
        compressor: Compressor = identity_compressor,
        loader: AssetLoader | None = None,
        minify_remotes: bool = False,
    ) -> None:
        self._base_dir = Path(base_dir)
        self._base_url = base_url.rstrip("/")
        self._compressor = compressor
        self._loader = loader or DefaultAssetLoader()
        self._minify_remotes = minify_remotes

    @property
    def base_dir(self) -> Path:
        """Return the directory bundle files are written to."""

        return self._base_dir

    def bundle(self, refs: Sequence[AssetRef], kind: AssetKind) -> list[str]:
        """Return the URLs to include: kept remote assets, then the bundle file.

        Raises:
            CacheBackendFailure: If the bundle file cannot be written.
        """

        kept = [ref.url for ref in refs if ref.is_remote and not self._minify_remotes]
        content = self.concatenate(refs, kind)
        if not content:
            return kept
        name = self._write(content, kind)
        return [*kept, f"{self._base_url}/{kind}/{name}"]

    def concatenate(self, refs: Sequence[AssetRef], kind: AssetKind) -> str:
        """Return the compressed concatenation of the loadable ``refs``."""

        parts: list[str] = []
        for ref in refs:
            if ref.is_remote and not self._minify_remotes:
                continue
            text = ref.component.load_asset(ref.path, self._loader)
            if text is None:
                LOGGER.warning("Skipping %s of %s: could not be loaded", ref.path, ref.component)
                continue
            parts.append(self._compressor(text, _EXTENSIONS[kind]))
        return "\n".join(parts)

    def _write(self, content: str, kind: AssetKind) -> str:
        data = content.encode("utf-8")
        name = f"{hashlib.sha256(data).hexdigest()}.{_EXTENSIONS[kind]}"
        path = self._base_dir / kind / name
        if path.is_file():
            return name
        temp_path = path.with_suffix(".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(data)
            os.replace(temp_path, path)
        except OSError as exc:
            temp_path.unlink(missing_ok=True)
            raise CacheBackendFailure(f"Failed to write bundle {name}: {exc}") from exc
        LOGGER.debug("Wrote bundle %s", path)
        return name


__all__ = [
    "AssetBundler",
    "AssetKind",
    "AssetRef",
    "Compressor",
    "collect_assets",
    "identity_compressor",
]
