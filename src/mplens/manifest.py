"""
Normalisation of ``app.json`` and page/component JSON.

Manifests are loosely typed: fields are optional, ``subpackages`` has two
spellings and ``workers`` may be a string or an object. They are normalised
here once, so the structure builder only ever sees the dataclasses below.
Malformed entries are dropped with a log message.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class SubPackage:
    root: str
    pages: List[str] = field(default_factory=list)
    name: Optional[str] = None
    independent: bool = False


@dataclass
class TabBarItem:
    page_path: Optional[str] = None
    icon_path: Optional[str] = None
    selected_icon_path: Optional[str] = None


@dataclass
class AppManifest:
    pages: List[str] = field(default_factory=list)
    subpackages: List[SubPackage] = field(default_factory=list)
    using_components: Dict[str, str] = field(default_factory=dict)
    tab_bar: List[TabBarItem] = field(default_factory=list)
    theme_location: Optional[str] = None
    workers: Optional[str] = None


@dataclass
class ComponentConfig:
    using_components: Dict[str, str] = field(default_factory=dict)
    # componentGenerics.<name>.default
    generic_defaults: Dict[str, str] = field(default_factory=dict)

    def component_paths(self) -> List[str]:
        paths = list(self.using_components.values())
        paths.extend(p for p in self.generic_defaults.values() if p not in paths)
        return paths


def _str_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        logger.warning("Ignoring %s: expected a list, got %s", where, type(value).__name__)
        return []
    out: List[str] = []
    for item in value:
        if isinstance(item, str) and item.strip():
            out.append(item.strip())
        else:
            logger.warning("Ignoring non-string entry in %s: %r", where, item)
    return out


def _opt_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _str_map(value: Any, where: str) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        logger.warning("Ignoring %s: expected an object, got %s", where, type(value).__name__)
        return {}
    out: Dict[str, str] = {}
    for k, v in value.items():
        if isinstance(v, str) and v.strip():
            out[str(k)] = v.strip()
        else:
            logger.warning("Ignoring %s entry %r: path must be a string", where, k)
    return out


def normalize_app_manifest(data: Any) -> AppManifest:
    """Build an :class:`AppManifest` from parsed ``app.json`` content."""
    if not isinstance(data, dict):
        if data is not None:
            logger.warning("Entry manifest is not an object (%s); treating it as empty", type(data).__name__)
        return AppManifest()

    manifest = AppManifest(
        pages=_str_list(data.get("pages"), "pages"),
        using_components=_str_map(data.get("usingComponents"), "usingComponents"),
        theme_location=_opt_str(data.get("themeLocation")),
    )

    raw_subs = data.get("subpackages")
    if raw_subs is None:
        raw_subs = data.get("subPackages")
    if raw_subs is not None and not isinstance(raw_subs, list):
        logger.warning("Ignoring subpackages: expected a list")
        raw_subs = None
    for item in raw_subs or []:
        root = _opt_str(item.get("root")) if isinstance(item, dict) else None
        if not root:
            logger.warning("Ignoring subpackage without a root: %r", item)
            continue
        manifest.subpackages.append(
            SubPackage(
                root=root.rstrip("/"),
                pages=_str_list(item.get("pages"), f"subpackage {root} pages"),
                name=_opt_str(item.get("name")),
                independent=bool(item.get("independent", False)),
            )
        )

    tab_bar = data.get("tabBar")
    tab_list = tab_bar.get("list") if isinstance(tab_bar, dict) else None
    if isinstance(tab_list, list):
        for item in tab_list:
            if not isinstance(item, dict):
                continue
            manifest.tab_bar.append(
                TabBarItem(
                    page_path=_opt_str(item.get("pagePath")),
                    icon_path=_opt_str(item.get("iconPath")),
                    selected_icon_path=_opt_str(item.get("selectedIconPath")),
                )
            )

    workers = data.get("workers")
    if isinstance(workers, dict):
        workers = workers.get("path")
    manifest.workers = _opt_str(workers)
    return manifest


def normalize_component_config(data: Any) -> ComponentConfig:
    if not isinstance(data, dict):
        return ComponentConfig()
    config = ComponentConfig(
        using_components=_str_map(data.get("usingComponents"), "usingComponents"),
    )
    generics = data.get("componentGenerics")
    if isinstance(generics, dict):
        for name, info in generics.items():
            default = info.get("default") if isinstance(info, dict) else None
            if isinstance(default, str) and default.strip():
                config.generic_defaults[str(name)] = default.strip()
    return config


def read_json(path: str | Path) -> Optional[Any]:
    """Read a JSON file, returning ``None`` (and logging) when unreadable."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)
        return None
    try:
        return json.loads(text)
    except ValueError as e:
        logger.warning("Failed to parse JSON %s: %s", path, e)
        return None
