"""
File type tables shared by the extractor, resolver and structure builder.

Extensions are stored with their leading dot so they can be compared directly
against ``os.path.splitext`` output.
"""
from __future__ import annotations

from typing import List, Tuple

SCRIPT_EXTENSIONS: Tuple[str, ...] = (".js", ".ts")
WXS_EXTENSIONS: Tuple[str, ...] = (".wxs",)
TEMPLATE_EXTENSIONS: Tuple[str, ...] = (".wxml",)
# less is treated as a wxss dialect
STYLE_EXTENSIONS: Tuple[str, ...] = (".wxss", ".less")
CONFIG_EXTENSIONS: Tuple[str, ...] = (".json",)
IMAGE_EXTENSIONS: Tuple[str, ...] = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

# Files that make up a page or component, config first.
COMPONENT_DEFINITION_EXTENSIONS: Tuple[str, ...] = (
    ".json",
    ".js",
    ".ts",
    ".wxml",
    ".wxss",
    ".less",
)

# Files whose text is scanned for references.
TEXT_EXTENSIONS: Tuple[str, ...] = (
    SCRIPT_EXTENSIONS + WXS_EXTENSIONS + TEMPLATE_EXTENSIONS + STYLE_EXTENSIONS
)

KNOWN_EXTENSIONS: Tuple[str, ...] = (
    SCRIPT_EXTENSIONS
    + WXS_EXTENSIONS
    + TEMPLATE_EXTENSIONS
    + STYLE_EXTENSIONS
    + CONFIG_EXTENSIONS
    + IMAGE_EXTENSIONS
)

DEFAULT_FILE_TYPES: List[str] = ["js", "ts", "wxml", "wxss", "less", "json", "wxs"]


def normalize_ext(ext: str) -> str:
    """Return ``ext`` lower-cased with exactly one leading dot ("png" -> ".png")."""
    ext = ext.strip().lower()
    if not ext:
        return ext
    return ext if ext.startswith(".") else f".{ext}"


def is_image(ext: str) -> bool:
    return normalize_ext(ext) in IMAGE_EXTENSIONS


def is_text_bearing(ext: str) -> bool:
    return normalize_ext(ext) in TEXT_EXTENSIONS
