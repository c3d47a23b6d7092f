from __future__ import annotations

import json
import logging
import os
from pathlib import Path

import pytest

from mplens.analyzer import (
    analyze_project,
    collect_files,
    find_app_json,
    resolve_app_json,
    resolve_essential_files,
)
from mplens.errors import EntryManifestError, MplensError


def _w(p: Path, rel: str, content: str = "") -> Path:
    f = p / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


def test_end_to_end_reports_orphan(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "app.json", json.dumps({"pages": ["pages/index/index"]}))
    _w(root, "pages/index/index.js", "Page({})")
    _w(root, "utils/orphan.js", "module.exports = 1")

    result = analyze_project(root)

    assert result.unused_files == [str(root / "utils" / "orphan.js")]


def test_sample_app_partition(sample_app: Path) -> None:
    root = sample_app.resolve()
    result = analyze_project(root)

    assert result.unused_files == [str(root / "utils" / "orphan.js")]
    part = result.partition
    assert part is not None
    assert str(root / "components" / "card" / "card.wxml") in part.reachable
    assert str(root / "styles" / "base.wxss") in part.reachable
    assert str(root / "app.json") in part.reachable
    # every inventory file lands in exactly one bucket
    buckets = part.reachable + part.essential + part.excluded_asset + part.kept + part.unused
    assert sorted(buckets) == sorted(result.inventory)
    assert result.summary()["unused"] == 1


def test_miniapp_root_and_essential_files(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "miniprogram/app.json", json.dumps({"pages": []}))
    _w(root, "miniprogram/keep.js", "")
    _w(root, "miniprogram/drop.js", "")
    _w(root, "miniprogram/ext.json", "{}")

    result = analyze_project(root, miniapp_root="miniprogram", essential_files=["keep.js"])

    assert result.unused_files == [str(root / "miniprogram" / "drop.js")]
    assert str(root / "miniprogram" / "ext.json") in result.partition.essential


def test_assets_excluded_unless_requested(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "app.json", json.dumps({"pages": []}))
    _w(root, "images/unused.png", "png")
    _w(root, "images/keep/logo.png", "png")

    default = analyze_project(root)
    with_assets = analyze_project(root, include_assets=True, keep_assets=["images/keep/*"])

    assert default.unused_files == []
    assert with_assets.unused_files == [str(root / "images" / "unused.png")]
    assert with_assets.partition.kept == [str(root / "images" / "keep" / "logo.png")]


def test_aliases_reach_files(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "app.json", json.dumps({"pages": ["pages/a/a"]}))
    _w(root, "pages/a/a.js", "import x from '@lib/x'")
    _w(root, "src/lib/x.js", "")

    without = analyze_project(root)
    with_alias = analyze_project(root, aliases={"@lib": "src/lib"})

    assert str(root / "src" / "lib" / "x.js") in without.unused_files
    assert with_alias.unused_files == []


def test_explicit_inventory(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "app.json", json.dumps({"pages": []}))

    result = analyze_project(root, inventory=[str(root / "ghost.js"), str(root / "app.json")])

    assert result.unused_files == [str(root / "ghost.js")]


def test_missing_manifest_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(EntryManifestError):
        analyze_project(tmp_path)


def test_missing_miniapp_root_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(MplensError):
        analyze_project(tmp_path, miniapp_root="nope")


def test_entry_content_without_file(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "pages/a/a.js", "")

    result = analyze_project(root, entry_content={"pages": ["pages/a/a"]})

    assert result.structure.graph.has_node("page:pages/a/a")
    assert result.structure.app_json_path is None


def test_resolve_app_json_order(tmp_path: Path, caplog) -> None:
    root = tmp_path.resolve()
    _w(root, "app.json", json.dumps({"pages": ["default"]}))
    _w(root, "custom/app.json", json.dumps({"pages": ["custom"]}))

    path, content = resolve_app_json(str(root), "custom/app.json")
    assert path == str(root / "custom" / "app.json")
    assert content == {"pages": ["custom"]}

    path, content = resolve_app_json(str(root), entry_content={"pages": ["inline"]})
    assert path == str(root / "app.json")
    assert content == {"pages": ["inline"]}

    with caplog.at_level(logging.WARNING, logger="mplens"):
        path, content = resolve_app_json(str(root), "missing.json")
    assert path == str(root / "app.json")
    assert content == {"pages": ["default"]}
    assert "does not exist" in caplog.text


def test_malformed_manifest_yields_empty_content(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "app.json", "{ not json")

    path, content = resolve_app_json(str(root))

    assert path == str(root / "app.json")
    assert content == {}


def test_collect_files_types_and_excludes(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "a.js")
    _w(root, "b.wxml")
    _w(root, "c.png")
    _w(root, "README.md")
    _w(root, "node_modules/pkg/index.js")
    _w(root, "sub/miniprogram_npm/x/index.js")
    _w(root, "dist/out.js")

    files = collect_files(str(root))
    assert files == [str(root / "a.js"), str(root / "b.wxml")]

    assert collect_files(str(root), ["js"], exclude=[]) == [
        str(root / "a.js"),
        str(root / "dist" / "out.js"),
        str(root / "node_modules" / "pkg" / "index.js"),
        str(root / "sub" / "miniprogram_npm" / "x" / "index.js"),
    ]
    assert str(root / "c.png") in collect_files(str(root), include_assets=True)


def test_resolve_essential_files(tmp_path: Path) -> None:
    project = tmp_path.resolve()
    app_root = project / "mp"
    _w(project, "scripts/build.js")
    _w(app_root, "keep.js")

    essential = resolve_essential_files(str(project), str(app_root), ["keep.js", "scripts/build.js", "nope.js"])

    assert str(project / "package.json") in essential
    assert str(app_root / "project.config.json") in essential
    assert str(app_root / "keep.js") in essential
    assert str(project / "scripts" / "build.js") in essential
    assert not any(p.endswith("nope.js") for p in essential)


def test_find_app_json_unique(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "miniprogram/app.json", json.dumps({"pages": ["pages/a/a"]}))
    # no pages list, excluded directory: neither counts
    _w(root, "config/app.json", json.dumps({"name": "x"}))
    _w(root, "node_modules/lib/app.json", json.dumps({"pages": []}))

    assert find_app_json(str(root)) == str(root / "miniprogram" / "app.json")


def test_find_app_json_ambiguous(tmp_path: Path, caplog) -> None:
    root = tmp_path.resolve()
    _w(root, "a/app.json", json.dumps({"pages": []}))
    _w(root, "b/app.json", json.dumps({"pages": []}))

    with caplog.at_level(logging.WARNING, logger="mplens"):
        assert find_app_json(str(root)) is None
    assert "Found 2 valid app.json files" in caplog.text


def test_find_app_json_none(tmp_path: Path) -> None:
    _w(tmp_path, "app.json", "{ broken")

    assert find_app_json(str(tmp_path)) is None


def test_miniapp_root_is_auto_detected(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "miniprogram/app.json", json.dumps({"pages": ["pages/a/a"]}))
    _w(root, "miniprogram/pages/a/a.js", "Page({})")
    _w(root, "miniprogram/utils/orphan.js", "")

    result = analyze_project(root)

    assert result.structure.miniapp_root == str(root / "miniprogram")
    assert result.unused_files == [str(root / "miniprogram" / "utils" / "orphan.js")]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinked_miniapp_root(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    _w(root, "real_mp/app.json", json.dumps({"pages": ["pages/a/a"]}))
    _w(root, "real_mp/pages/a/a.js", "Page({})")
    _w(root, "real_mp/orphan.js", "")
    os.symlink(root / "real_mp", root / "mp", target_is_directory=True)

    result = analyze_project(root, miniapp_root="mp")
    explicit = analyze_project(
        root,
        miniapp_root="mp",
        inventory=[str(root / "mp" / "pages" / "a" / "a.js"), str(root / "mp" / "orphan.js")],
    )

    assert result.unused_files == [str(root / "real_mp" / "orphan.js")]
    assert explicit.unused_files == [str(root / "real_mp" / "orphan.js")]
