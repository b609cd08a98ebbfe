# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for the directory-backed component registry."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from packaging.version import Version

from diversity.component import Component, ComponentOptions
from diversity.errors import ComponentLoadError, InvalidComponentSpec
from diversity.registry import LocalRegistry, RegistryMode


def test_listing_and_versions(local_registry: LocalRegistry) -> None:
    installed = local_registry.installed_components()

    assert set(installed) == {"dummy", "weak-sauce", "toponent", "sub_one"}
    assert installed["dummy"] == [Version("0.0.1")]
    assert local_registry.list_versions("unknown") == []
    assert local_registry.is_available("dummy", "0.0.1")
    assert not local_registry.is_available("dummy", ">0.0.1")


def test_get_component_sets_base_locations(local_registry: LocalRegistry, components_root: Path) -> None:
    component = local_registry.get_component("dummy")

    assert component is not None
    assert component.version == Version("0.0.1")
    assert component.base_url == "http://cdn.test/components/dummy/0.0.1"
    assert component.base_path == str(components_root.resolve() / "dummy" / "0.0.1")
    assert component.script_urls() == [
        "http://cdn.test/components/dummy/0.0.1/js/a.js",
        "http://cdn.test/components/dummy/0.0.1/js/b.js",
    ]


def test_get_component_picks_highest_match(
    local_registry: LocalRegistry,
    components_root: Path,
    component_writer: Callable[..., Path],
) -> None:
    component_writer(components_root, {"name": "dummy", "version": "0.0.3"})
    component_writer(components_root, {"name": "dummy", "version": "0.1.0"})
    local_registry.invalidate()

    assert local_registry.get_component("dummy").version == Version("0.1.0")
    assert local_registry.get_component("dummy", "<0.1.0").version == Version("0.0.3")
    assert local_registry.get_component("dummy", Version("0.0.1")).version == Version("0.0.1")
    assert local_registry.get_component("dummy", ">1") is None


def test_listing_is_cached_until_invalidated(
    local_registry: LocalRegistry,
    components_root: Path,
    component_writer: Callable[..., Path],
) -> None:
    assert local_registry.list_versions("dummy") == [Version("0.0.1")]
    component_writer(components_root, {"name": "dummy", "version": "0.0.2"})

    assert local_registry.list_versions("dummy") == [Version("0.0.1")]
    local_registry.invalidate()
    assert local_registry.list_versions("dummy") == [Version("0.0.2"), Version("0.0.1")]


def test_development_package_wins_for_every_requirement(
    tmp_path: Path,
    component_writer: Callable[..., Path],
) -> None:
    root = tmp_path / "components"
    component_writer(root, {"name": "dev", "version": "0.5.0"}, dev=True)
    registry = LocalRegistry(root)

    assert registry.list_versions("dev") == [Version("0.5.0")]
    component = registry.get_component("dev", ">9")
    assert component is not None
    assert component.base_path == str((root / "dev").resolve())


def test_fallback_registry(
    tmp_path: Path,
    local_registry: LocalRegistry,
    component_writer: Callable[..., Path],
) -> None:
    root = tmp_path / "primary"
    component_writer(root, {"name": "dummy", "version": "0.0.9"})
    registry = LocalRegistry(root, fallback=local_registry)

    assert registry.get_component("dummy").version == Version("0.0.9")
    assert registry.get_component("dummy", "0.0.1").version == Version("0.0.1")
    assert registry.get_component("toponent") is not None
    assert registry.get_component("missing") is None


def test_install_copies_spec_and_assets(tmp_path: Path, components_root: Path) -> None:
    registry = LocalRegistry(tmp_path / "installed", base_url="/components")

    installed = registry.install_component(components_root / "toponent" / "0.0.1")

    target = tmp_path / "installed" / "toponent" / "0.0.1"
    assert (target / "diversity.json").is_file()
    assert (target / "template.html").read_text(encoding="utf-8").startswith("<h1>")
    assert (target / "js" / "top.js").is_file()
    assert (target / "css" / "top.css").is_file()
    assert installed.base_url == "/components/toponent/0.0.1"
    assert registry.list_versions("toponent") == [Version("0.0.1")]


def test_install_existing_version_is_a_no_op_without_force(tmp_path: Path, components_root: Path) -> None:
    registry = LocalRegistry(tmp_path / "installed")
    source = components_root / "dummy" / "0.0.1"
    registry.install_component(source)
    asset = tmp_path / "installed" / "dummy" / "0.0.1" / "js" / "a.js"
    asset.write_text("changed", encoding="utf-8")

    registry.install_component(source)
    assert asset.read_text(encoding="utf-8") == "changed"

    registry.install_component(source, force=True)
    assert asset.read_text(encoding="utf-8") == "var a = 1;"


def test_install_skips_paths_outside_the_component(tmp_path: Path) -> None:
    source = tmp_path / "source"
    source.mkdir()
    (tmp_path / "secret.txt").write_text("secret", encoding="utf-8")
    spec = {"name": "escape", "version": "1.0.0", "assets": ["../secret.txt", "/etc/hostname"]}
    component = Component.from_spec(spec, ComponentOptions(base_path=str(source)))
    registry = LocalRegistry(tmp_path / "installed")

    registry.install_component(component)

    target = tmp_path / "installed" / "escape" / "1.0.0"
    assert sorted(path.name for path in target.iterdir()) == ["diversity.json"]
    assert not (tmp_path / "installed" / "escape" / "secret.txt").exists()


def test_install_missing_source_raises(tmp_path: Path) -> None:
    registry = LocalRegistry(tmp_path / "installed")

    with pytest.raises(ComponentLoadError):
        registry.install_component(tmp_path / "nowhere")


@pytest.mark.parametrize("mode", [RegistryMode.DRYRUN, RegistryMode.NOWRITE])
def test_no_io_modes_leave_the_tree_untouched(tmp_path: Path, components_root: Path, mode: RegistryMode) -> None:
    root = tmp_path / "installed"
    registry = LocalRegistry(root, mode=mode)

    component = registry.install_component(components_root / "dummy" / "0.0.1")

    assert component.identity == ("dummy", Version("0.0.1"))
    assert component.base_path == str(root.resolve() / "dummy" / "0.0.1")
    assert not root.exists()


def test_dryrun_describes_operations(
    tmp_path: Path,
    components_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    registry = LocalRegistry(tmp_path / "installed", mode="dryrun")

    registry.install_component(components_root / "dummy" / "0.0.1")

    output = capsys.readouterr().out
    assert "mkdir -p" in output
    assert "diversity.json" in output
    assert "a.js" in output


def test_nowrite_is_silent(tmp_path: Path, components_root: Path, capsys: pytest.CaptureFixture[str]) -> None:
    registry = LocalRegistry(tmp_path / "installed", mode=RegistryMode.NOWRITE)

    registry.install_component(components_root / "dummy" / "0.0.1")

    assert capsys.readouterr().out == ""


def test_verbose_describes_and_writes(
    tmp_path: Path,
    components_root: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    registry = LocalRegistry(tmp_path / "installed", mode=RegistryMode.VERBOSE)

    registry.install_component(components_root / "dummy" / "0.0.1")

    assert "cp " in capsys.readouterr().out
    assert (tmp_path / "installed" / "dummy" / "0.0.1" / "js" / "b.js").is_file()


def test_uninstall_matching_versions(
    local_registry: LocalRegistry,
    components_root: Path,
    component_writer: Callable[..., Path],
) -> None:
    component_writer(components_root, {"name": "dummy", "version": "0.0.2"})
    local_registry.invalidate()

    removed = local_registry.uninstall_component("dummy", "0.0.1")

    assert removed == [Version("0.0.1")]
    assert not (components_root / "dummy" / "0.0.1").exists()
    assert local_registry.list_versions("dummy") == [Version("0.0.2")]


def test_uninstall_without_requirement_removes_every_version(
    local_registry: LocalRegistry,
    components_root: Path,
) -> None:
    removed = local_registry.uninstall_component("dummy")

    assert removed == [Version("0.0.1")]
    assert not (components_root / "dummy").exists()
    assert local_registry.get_component("dummy") is None


def test_uninstall_unknown_component(local_registry: LocalRegistry) -> None:
    assert local_registry.uninstall_component("missing") == []


def test_dryrun_uninstall_keeps_files(components_root: Path) -> None:
    registry = LocalRegistry(components_root, mode=RegistryMode.DRYRUN)

    assert registry.uninstall_component("dummy") == [Version("0.0.1")]
    assert (components_root / "dummy" / "0.0.1" / "diversity.json").is_file()


def test_load_component_from_spec_path(local_registry: LocalRegistry, components_root: Path) -> None:
    spec_path = components_root / "dummy" / "0.0.1" / "diversity.json"

    component = local_registry.load_component(str(spec_path))

    assert component is not None
    assert component.base_path == str(spec_path.parent)
    assert local_registry.load_component(str(components_root / "nope.json")) is None


@pytest.mark.parametrize("name", ["../outside", "nested/name", "..", "."])
def test_names_cannot_leave_the_registry_root(
    tmp_path: Path,
    local_registry: LocalRegistry,
    component_writer: Callable[..., Path],
    name: str,
) -> None:
    component_writer(tmp_path, {"name": "outside", "version": "1.0.0"}, dev=True)
    component_writer(local_registry.base_path / "nested", {"name": "name", "version": "1.0.0"}, dev=True)

    assert local_registry.get_component(name) is None
    assert local_registry.uninstall_component(name) == []
    assert (tmp_path / "outside" / "diversity.json").is_file()


def test_absolute_names_are_rejected(
    tmp_path: Path,
    local_registry: LocalRegistry,
    component_writer: Callable[..., Path],
) -> None:
    outside = component_writer(tmp_path / "elsewhere", {"name": "evil", "version": "1.0.0"}, dev=True)

    assert local_registry.get_component(str(outside)) is None


def test_install_rejects_names_with_separators(tmp_path: Path) -> None:
    registry = LocalRegistry(tmp_path / "installed")
    component = Component.from_spec({"name": "../escape", "version": "1.0.0"})

    with pytest.raises(InvalidComponentSpec):
        registry.install_component(component)
    assert not (tmp_path / "escape").exists()


def test_broken_spec_errors_name_the_registry_location(local_registry: LocalRegistry, components_root: Path) -> None:
    broken = components_root / "broken" / "1.0.0"
    broken.mkdir(parents=True)
    (broken / "diversity.json").write_text("{not json", encoding="utf-8")
    local_registry.invalidate()

    with pytest.raises(InvalidComponentSpec) as excinfo:
        local_registry.get_component("broken")

    assert "broken/1.0.0" in str(excinfo.value)
    assert str(components_root) not in str(excinfo.value)
    assert str(components_root.resolve()) not in str(excinfo.value)


def test_uninstall_development_package_by_requirement(
    tmp_path: Path,
    component_writer: Callable[..., Path],
) -> None:
    root = tmp_path / "components"
    component_writer(root, {"name": "devpkg", "version": "1.0.0"}, dev=True)
    registry = LocalRegistry(root)

    assert registry.uninstall_component("devpkg", "2.0.0") == []
    assert (root / "devpkg").is_dir()

    assert registry.uninstall_component("devpkg", "1.0.0") == [Version("1.0.0")]
    assert not (root / "devpkg").exists()


def test_uninstall_reports_only_removed_versions(
    local_registry: LocalRegistry,
    components_root: Path,
    component_writer: Callable[..., Path],
) -> None:
    component_writer(components_root, {"name": "dummy", "version": "0.0.2"})
    local_registry.invalidate()
    assert local_registry.list_versions("dummy") == [Version("0.0.2"), Version("0.0.1")]
    (components_root / "dummy" / "0.0.2" / "diversity.json").unlink()
    (components_root / "dummy" / "0.0.2").rmdir()

    assert local_registry.uninstall_component("dummy", ">0.0.0") == [Version("0.0.1")]
