from __future__ import annotations

from pathlib import Path

from mplens.aliases import AliasTable
from mplens.path_resolver import PathResolver, find_existing_path


def _w(p: Path, rel: str, content: str = "") -> Path:
    f = p / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


def test_extension_order_is_respected(tmp_path: Path) -> None:
    _w(tmp_path, "foo.ts")
    _w(tmp_path, "foo.wxml")

    found = find_existing_path(str(tmp_path / "foo"), [".js", ".ts", ".wxml"])

    assert found == str(tmp_path / "foo.ts")


def test_exact_file_and_index_fallback(tmp_path: Path) -> None:
    _w(tmp_path, "a.json")
    _w(tmp_path, "lib/index.js")

    assert find_existing_path(str(tmp_path / "a.json"), [".js"]) == str(tmp_path / "a.json")
    assert find_existing_path(str(tmp_path / "lib"), [".js", ".ts"]) == str(tmp_path / "lib" / "index.js")
    assert find_existing_path(str(tmp_path / "missing"), [".js"]) is None


def test_root_relative_reference_from_nested_template(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    header = _w(root, "shared/header.wxml")
    source = _w(root, "pages/deep/nested/page.wxml")

    resolver = PathResolver(root)

    assert resolver.resolve("/shared/header", str(source), [".wxml"]) == str(header)


def test_relative_and_bare_references(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    source = _w(root, "pages/index/index.js")
    sibling = _w(root, "pages/index/helper.js")
    rooted = _w(root, "utils/util.js")

    resolver = PathResolver(root)

    assert resolver.resolve("./helper", str(source), [".js"]) == str(sibling)
    assert resolver.resolve("../../utils/util", str(source), [".js"]) == str(rooted)
    # bare: source directory first, then the mini-program root
    assert resolver.resolve("helper", str(source), [".js"]) == str(sibling)
    assert resolver.resolve("utils/util", str(source), [".js"]) == str(rooted)


def test_alias_targets_tried_in_order(tmp_path: Path) -> None:
    root = tmp_path.resolve()
    second = _w(root, "shared/x.js")
    source = _w(root, "pages/a/a.js")
    table = AliasTable(root, aliases={"@": ["lib", "shared"]})

    resolver = PathResolver(root, table)

    assert resolver.resolve("@/x", str(source), [".js"]) == str(second)
    _w(root, "lib/x.js")
    assert resolver.resolve("@/x", str(source), [".js"]) == str(root / "lib" / "x.js")


def test_external_references_are_not_resolved(tmp_path: Path) -> None:
    source = _w(tmp_path, "a.wxml")
    resolver = PathResolver(tmp_path)

    assert resolver.resolve("https://cdn.example.com/a.png", str(source), [".png"]) is None
    assert resolver.resolve("{{img}}", str(source), [".png"]) is None
