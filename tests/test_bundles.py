# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for script and style bundling."""

from __future__ import annotations

from pathlib import Path

from diversity.component import Component, ComponentOptions
from diversity.engine.bundles import AssetBundler, collect_assets


def _component(tmp_path: Path, name: str, scripts: list[str], files: dict[str, str]) -> Component:
    base = tmp_path / name
    for relative, content in files.items():
        target = base / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    return Component.from_spec(
        {"name": name, "version": "1.0.0", "script": scripts},
        ComponentOptions(base_url=f"/components/{name}", base_path=str(base)),
    )


def test_collect_assets_drops_repeated_urls(tmp_path: Path) -> None:
    first = _component(tmp_path, "first", ["a.js", "//cdn.test/jquery.js"], {"a.js": "a"})
    second = _component(tmp_path, "second", ["//cdn.test/jquery.js", "b.js"], {"b.js": "b"})

    refs = collect_assets([first, second], "scripts")

    assert [ref.url for ref in refs] == ["/components/first/a.js", "//cdn.test/jquery.js", "/components/second/b.js"]
    assert [ref.component.name for ref in refs] == ["first", "first", "second"]


def test_bundle_keeps_remote_assets_first(tmp_path: Path) -> None:
    component = _component(tmp_path, "app", ["a.js", "//cdn.test/lib.js", "b.js"], {"a.js": "A", "b.js": "B"})
    bundler = AssetBundler(tmp_path / "out", base_url="/static/")

    urls = bundler.bundle(collect_assets([component], "scripts"), "scripts")

    assert urls[0] == "//cdn.test/lib.js"
    assert urls[1].startswith("/static/scripts/")
    assert urls[1].endswith(".js")
    written = tmp_path / "out" / "scripts" / urls[1].rsplit("/", 1)[1]
    assert written.read_text(encoding="utf-8") == "A\nB"


def test_bundle_names_are_content_addressed(tmp_path: Path) -> None:
    component = _component(tmp_path, "app", ["a.js"], {"a.js": "A"})
    bundler = AssetBundler(tmp_path / "out")
    refs = collect_assets([component], "scripts")

    assert bundler.bundle(refs, "scripts") == bundler.bundle(refs, "scripts")
    assert len(list((tmp_path / "out" / "scripts").iterdir())) == 1


def test_compressor_is_applied_per_asset(tmp_path: Path) -> None:
    component = _component(tmp_path, "app", ["a.js", "b.js"], {"a.js": "  a  ", "b.js": " b "})
    seen: list[str] = []

    def compressor(text: str, kind: str) -> str:
        seen.append(kind)
        return text.strip()

    bundler = AssetBundler(tmp_path / "out", compressor=compressor)

    assert bundler.concatenate(collect_assets([component], "scripts"), "scripts") == "a\nb"
    assert seen == ["js", "js"]


def test_missing_assets_are_skipped(tmp_path: Path) -> None:
    component = _component(tmp_path, "app", ["a.js", "missing.js"], {"a.js": "A"})
    bundler = AssetBundler(tmp_path / "out")

    assert bundler.concatenate(collect_assets([component], "scripts"), "scripts") == "A"


def test_nothing_to_bundle_returns_only_remotes(tmp_path: Path) -> None:
    component = _component(tmp_path, "app", ["//cdn.test/lib.js"], {})
    bundler = AssetBundler(tmp_path / "out")

    assert bundler.bundle(collect_assets([component], "scripts"), "scripts") == ["//cdn.test/lib.js"]
    assert not (tmp_path / "out").exists()
