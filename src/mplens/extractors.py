"""
Textual reference extraction for mini-program source files.

Each scanner is a set of regular expressions over the raw file text. The
results are approximate by nature: references inside comments of script files
are reported, and paths built at runtime are not. A scanner never raises; on
failure it logs and returns an empty list.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .filetypes import (
    IMAGE_EXTENSIONS,
    SCRIPT_EXTENSIONS,
    STYLE_EXTENSIONS,
    TEMPLATE_EXTENSIONS,
    WXS_EXTENSIONS,
    normalize_ext,
)

logger = logging.getLogger(__name__)


class RefKind(str, Enum):
    IMPORT = "import"
    REQUIRE = "require"
    TEMPLATE_IMPORT = "template-import"
    WXS_MODULE = "wxs-module"
    STYLE_IMPORT = "style-import"
    URL_RESOURCE = "url-resource"
    IMAGE_SOURCE = "image-source"
    IMPLICIT_NAVIGATION = "implicit-navigation-path"


@dataclass(frozen=True)
class RawReference:
    value: str
    kind: RefKind


# --- script ---------------------------------------------------------------

# Leading guard keeps `foo.import(...)` / `myrequire(...)` out.
_G = r"(?:^|(?<=[^\w$.]))"

IMPORT_FROM_RE = re.compile(
    _G + r"import\s+(?P<clause>[^'\"`;()]*?)\s*\bfrom\s*(?P<q>['\"])(?P<spec>[^'\"\n]+)(?P=q)",
    re.MULTILINE,
)
SIDE_EFFECT_IMPORT_RE = re.compile(
    _G + r"import\s*(?P<q>['\"])(?P<spec>[^'\"\n]+)(?P=q)", re.MULTILINE
)
EXPORT_FROM_RE = re.compile(
    _G + r"export\s+(?P<clause>[^'\"`;()]*?)\s*\bfrom\s*(?P<q>['\"])(?P<spec>[^'\"\n]+)(?P=q)",
    re.MULTILINE,
)
DYNAMIC_IMPORT_RE = re.compile(
    _G + r"import\s*\(\s*(?P<q>['\"])(?P<spec>[^'\"\n]+)(?P=q)\s*\)", re.MULTILINE
)
# require('x') and the deferred form require.async('x')
REQUIRE_RE = re.compile(
    _G + r"require(?:\.async)?\s*\(\s*(?P<q>['\"])(?P<spec>[^'\"\n]+)(?P=q)\s*\)",
    re.MULTILINE,
)
NAVIGATION_LITERAL_RE = re.compile(
    r"(?P<q>['\"`])(?P<path>/?(?:pages|components)/[\w\-./@]+?)(?:\?[^'\"`\n]*)?(?P=q)"
)
BARE_SPECIFIER_RE = re.compile(r"^[@\w~$]")

# --- template -------------------------------------------------------------

WXML_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
IMPORT_INCLUDE_RE = re.compile(
    r"<(?:import|include)\b[^>]*?(?<![\w-])src\s*=\s*(?P<q>['\"])(?P<src>.*?)(?P=q)",
    re.DOTALL,
)
WXS_TAG_RE = re.compile(
    r"<wxs\b[^>]*?(?<![\w-])src\s*=\s*(?P<q>['\"])(?P<src>.*?)(?P=q)", re.DOTALL
)
IMAGE_TAG_RE = re.compile(
    r"<image\b[^>]*?(?<![\w-])src\s*=\s*(?P<q>['\"])(?P<src>.*?)(?P=q)", re.DOTALL
)

# --- style ----------------------------------------------------------------

CSS_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
STYLE_IMPORT_RE = re.compile(
    r"@import\s+(?:url\(\s*(?P<uq>['\"]?)(?P<url>[^'\")]+?)(?P=uq)\s*\)"
    r"|(?P<q>['\"])(?P<src>[^'\"\n]+)(?P=q))"
)
URL_RE = re.compile(r"url\(\s*(?P<q>['\"]?)(?P<src>[^'\")]+?)(?P=q)\s*\)")

INTERPOLATION_RE = re.compile(r"\{\{.*?\}\}")


def is_external_or_dynamic(value: str) -> bool:
    """True for references no file on disk can satisfy.

    Covers interpolated template expressions, data URIs, remote URLs
    (http, https and protocol-relative) and plugin components.
    """
    v = value.strip()
    if not v:
        return True
    if INTERPOLATION_RE.search(v) or "${" in v:
        return True
    lowered = v.lower()
    return lowered.startswith(("data:", "http:", "https:", "//", "plugin://", "plugin-private://"))


def _is_module_specifier(spec: str) -> bool:
    if is_external_or_dynamic(spec):
        return False
    if spec.startswith(("./", "../", "/")) or spec in (".", ".."):
        return True
    return bool(BARE_SPECIFIER_RE.match(spec)) and "://" not in spec


_Hit = Tuple[int, RawReference]


def _extract_script(content: str, ext: str) -> List[_Hit]:
    hits: List[_Hit] = []

    for rx, kind in (
        (IMPORT_FROM_RE, RefKind.IMPORT),
        (EXPORT_FROM_RE, RefKind.IMPORT),
    ):
        for m in rx.finditer(content):
            clause = m.group("clause").strip()
            if clause == "type" or clause.startswith("type ") or clause.startswith("type{"):
                logger.debug("skip type-only import %r", m.group("spec"))
                continue
            spec = m.group("spec").strip()
            if _is_module_specifier(spec):
                hits.append((m.start("spec"), RawReference(spec, kind)))

    for rx, kind in (
        (SIDE_EFFECT_IMPORT_RE, RefKind.IMPORT),
        (DYNAMIC_IMPORT_RE, RefKind.IMPORT),
        (REQUIRE_RE, RefKind.REQUIRE),
    ):
        for m in rx.finditer(content):
            spec = m.group("spec").strip()
            if _is_module_specifier(spec):
                hits.append((m.start("spec"), RawReference(spec, kind)))

    # wxs modules cannot navigate
    if ext in SCRIPT_EXTENSIONS:
        for m in NAVIGATION_LITERAL_RE.finditer(content):
            path = m.group("path").rstrip("/.")
            if path:
                hits.append((m.start("path"), RawReference(path, RefKind.IMPLICIT_NAVIGATION)))
    return hits


def _extract_template(content: str, ext: str) -> List[_Hit]:
    text = WXML_COMMENT_RE.sub(lambda m: " " * len(m.group(0)), content)
    hits: List[_Hit] = []
    for rx, kind in (
        (IMPORT_INCLUDE_RE, RefKind.TEMPLATE_IMPORT),
        (WXS_TAG_RE, RefKind.WXS_MODULE),
        (IMAGE_TAG_RE, RefKind.IMAGE_SOURCE),
    ):
        for m in rx.finditer(text):
            src = m.group("src").strip()
            if is_external_or_dynamic(src):
                continue
            hits.append((m.start("src"), RawReference(src, kind)))
    return hits


def _strip_url_suffix(value: str) -> str:
    # font.eot?#iefix, icons.svg#home
    return value.split("?", 1)[0].split("#", 1)[0]


def _extract_style(content: str, ext: str) -> List[_Hit]:
    text = CSS_COMMENT_RE.sub(lambda m: " " * len(m.group(0)), content)
    hits: List[_Hit] = []
    import_spans: List[Tuple[int, int]] = []

    for m in STYLE_IMPORT_RE.finditer(text):
        import_spans.append(m.span())
        group = "url" if m.group("url") is not None else "src"
        src = m.group(group).strip()
        if is_external_or_dynamic(src):
            continue
        hits.append((m.start(group), RawReference(src, RefKind.STYLE_IMPORT)))

    for m in URL_RE.finditer(text):
        if any(start <= m.start() < end for start, end in import_spans):
            continue
        src = m.group("src").strip()
        if is_external_or_dynamic(src):
            continue
        src = _strip_url_suffix(src)
        if src:
            hits.append((m.start("src"), RawReference(src, RefKind.URL_RESOURCE)))
    return hits


_SCANNERS: Dict[str, Callable[[str, str], List[_Hit]]] = {}
for _ext in SCRIPT_EXTENSIONS + WXS_EXTENSIONS:
    _SCANNERS[_ext] = _extract_script
for _ext in TEMPLATE_EXTENSIONS:
    _SCANNERS[_ext] = _extract_template
for _ext in STYLE_EXTENSIONS:
    _SCANNERS[_ext] = _extract_style


def extract_references(content: str, ext: str, file_path: Optional[str] = None) -> List[RawReference]:
    """Return the references found in ``content`` for a file of type ``ext``.

    References come back in source order, de-duplicated on (value, kind).
    JSON configuration, images and unknown types yield an empty list: JSON is
    walked structurally by the structure builder instead.
    """
    ext = normalize_ext(ext)
    scanner = _SCANNERS.get(ext)
    if scanner is None:
        return []
    try:
        hits = scanner(content, ext)
    except Exception as e:  # regex engine errors, bad input types
        logger.warning("Failed to extract references from %s: %s", file_path or f"<{ext}>", e)
        return []

    hits.sort(key=lambda h: h[0])
    seen = set()
    refs: List[RawReference] = []
    for _pos, ref in hits:
        key = (ref.value, ref.kind)
        if key in seen:
            continue
        seen.add(key)
        refs.append(ref)
    return refs


def _source_first(source_ext: str, candidates: Sequence[str]) -> List[str]:
    out = [source_ext] if source_ext in candidates else []
    out.extend(e for e in candidates if e not in out)
    return out


def allowed_extensions(ref: RawReference, source_ext: str) -> List[str]:
    """Ordered extensions a reference of this kind may resolve to."""
    source_ext = normalize_ext(source_ext)
    kind = ref.kind
    if kind in (RefKind.IMPORT, RefKind.REQUIRE):
        if source_ext in WXS_EXTENSIONS:
            return list(WXS_EXTENSIONS)
        return [".js", ".ts", ".json"]
    if kind is RefKind.TEMPLATE_IMPORT:
        return list(TEMPLATE_EXTENSIONS)
    if kind is RefKind.WXS_MODULE:
        return list(WXS_EXTENSIONS)
    if kind is RefKind.STYLE_IMPORT:
        return _source_first(source_ext, STYLE_EXTENSIONS)
    if kind in (RefKind.IMAGE_SOURCE, RefKind.URL_RESOURCE):
        return list(IMAGE_EXTENSIONS)
    if kind is RefKind.IMPLICIT_NAVIGATION:
        return [".js", ".ts", ".wxml", ".json"]
    return []

