from __future__ import annotations

from mplens.extractors import (
    RawReference,
    RefKind,
    allowed_extensions,
    extract_references,
    is_external_or_dynamic,
)


def _values(refs, kind=None):
    return [r.value for r in refs if kind is None or r.kind is kind]


def test_script_imports_and_requires() -> None:
    src = """
import a from './a'
import { b } from "../b"
import './side-effect'
export * from './reexport'
const c = require('./c')
const d = await import('./d')
require.async('./lazy')
import type { T } from './types'
foo.require('./not-a-require')
"""
    refs = extract_references(src, ".js")

    assert _values(refs, RefKind.IMPORT) == ["./a", "../b", "./side-effect", "./reexport", "./d"]
    assert _values(refs, RefKind.REQUIRE) == ["./c", "./lazy"]


def test_script_skips_external_and_dynamic_specifiers() -> None:
    src = "import x from 'https://cdn/x.js'\nconst y = require(`./${name}`)\n"
    assert extract_references(src, ".ts") == []


def test_navigation_literals_in_scripts() -> None:
    src = "wx.navigateTo({ url: '/pages/detail/detail?id=1' })\nconst p = 'components/box/box'\n"
    refs = extract_references(src, ".js")

    assert _values(refs, RefKind.IMPLICIT_NAVIGATION) == ["/pages/detail/detail", "components/box/box"]


def test_wxs_files_do_not_report_navigation() -> None:
    src = "var t = require('./tools.wxs')\nvar p = '/pages/a/a'\n"
    refs = extract_references(src, ".wxs")

    assert refs == [RawReference("./tools.wxs", RefKind.REQUIRE)]


def test_template_references() -> None:
    src = """
<!-- <import src="./commented.wxml" /> -->
<import src="./item.wxml" />
<include src="/shared/header" />
<wxs module="fmt" src="../../utils/fmt.wxs"></wxs>
<image src="/images/logo.png" />
<image src="{{avatar}}" />
<image data-src="/images/lazy.png" src="./local.png" />
"""
    refs = extract_references(src, ".wxml")

    assert _values(refs, RefKind.TEMPLATE_IMPORT) == ["./item.wxml", "/shared/header"]
    assert _values(refs, RefKind.WXS_MODULE) == ["../../utils/fmt.wxs"]
    assert _values(refs, RefKind.IMAGE_SOURCE) == ["/images/logo.png", "./local.png"]


def test_style_references() -> None:
    src = """
/* @import "./commented.wxss"; */
@import "./base.wxss";
@import url('./theme.less');
.icon { background: url(../img/icon.png?v=2); }
.font { src: url("data:font/woff;base64,AAAA"); }
"""
    refs = extract_references(src, ".less")

    assert _values(refs, RefKind.STYLE_IMPORT) == ["./base.wxss", "./theme.less"]
    assert _values(refs, RefKind.URL_RESOURCE) == ["../img/icon.png"]


def test_references_are_deduplicated() -> None:
    src = "require('./a')\nrequire('./a')\n"
    assert extract_references(src, ".js") == [RawReference("./a", RefKind.REQUIRE)]


def test_json_and_unknown_types_yield_nothing() -> None:
    assert extract_references('{"usingComponents": {}}', ".json") == []
    assert extract_references("binary", ".png") == []


def test_is_external_or_dynamic() -> None:
    assert is_external_or_dynamic("")
    assert is_external_or_dynamic("{{ src }}")
    assert is_external_or_dynamic("//cdn.example.com/a.png")
    assert is_external_or_dynamic("plugin://myPlugin/comp")
    assert not is_external_or_dynamic("./a")
    assert not is_external_or_dynamic("/images/a.png")


def test_allowed_extensions_by_kind() -> None:
    assert allowed_extensions(RawReference("./a", RefKind.IMPORT), ".ts") == [".js", ".ts", ".json"]
    assert allowed_extensions(RawReference("./a", RefKind.REQUIRE), ".wxs") == [".wxs"]
    assert allowed_extensions(RawReference("./a", RefKind.TEMPLATE_IMPORT), ".wxml") == [".wxml"]
    assert allowed_extensions(RawReference("./a", RefKind.STYLE_IMPORT), ".less") == [".less", ".wxss"]
    assert allowed_extensions(RawReference("./a", RefKind.STYLE_IMPORT), ".wxss") == [".wxss", ".less"]
    assert ".png" in allowed_extensions(RawReference("./a", RefKind.URL_RESOURCE), ".wxss")
