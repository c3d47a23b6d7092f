"""
Project-level analysis: locate the entry manifest, build the structure graph,
assemble the file inventory and report unused files.
"""
from __future__ import annotations

import fnmatch
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .aliases import AliasSpec, AliasTable
from .config_loader import DEFAULT_EXCLUDE, AnalyzerConfig
from .errors import EntryManifestError
from .filetypes import DEFAULT_FILE_TYPES, IMAGE_EXTENSIONS, normalize_ext
from .log_setup import TRACE
from .manifest import normalize_app_manifest, read_json
from .path_resolver import PathResolver
from .reachability import InventoryPartition, classify_inventory
from .structure_builder import ProjectStructure, StructureBuilder

logger = logging.getLogger(__name__)

PROJECT_LEVEL_ESSENTIALS = (
    "tsconfig.json",
    "jsconfig.json",
    "package.json",
    "mplens.yaml",
    "mplens.yml",
    "mp-lens.config.json",
    ".eslintrc.js",
    ".eslintrc.json",
    ".prettierrc",
    ".prettierrc.js",
    ".babelrc",
    "babel.config.js",
)
MINIAPP_LEVEL_ESSENTIALS = (
    "app.json",
    "project.config.json",
    "project.private.config.json",
    "sitemap.json",
    "theme.json",
    "ext.json",
)


@dataclass
class AnalysisResult:
    structure: ProjectStructure
    unused_files: List[str]
    inventory: List[str] = field(default_factory=list)
    partition: Optional[InventoryPartition] = None

    def summary(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "nodes": self.structure.graph.node_count,
            "links": self.structure.graph.edge_count,
            "files": len(self.inventory),
            "unused": len(self.unused_files),
        }
        if self.partition is not None:
            data.update(self.partition.summary())
        return data


def resolve_app_json(
    miniapp_root: str,
    entry_file: Optional[str] = None,
    entry_content: Optional[Dict[str, Any]] = None,
) -> Tuple[Optional[str], Dict[str, Any]]:
    """Locate the entry manifest and its content.

    Order: an explicit entry file, inline content (associated with the default
    ``app.json`` when that exists), the default ``app.json``. A file that
    cannot be parsed yields empty content with a warning. Raises
    :class:`EntryManifestError` if neither a path nor content is found.
    """
    app_json_path: Optional[str] = None
    content: Optional[Dict[str, Any]] = entry_content
    default_path = os.path.join(miniapp_root, "app.json")

    if entry_file:
        custom = os.path.normpath(os.path.join(miniapp_root, entry_file))
        if os.path.isfile(custom):
            app_json_path = custom
            logger.info("Using entry file: %s", custom)
            if content is None:
                data = read_json(custom)
                if isinstance(data, dict):
                    content = data
        else:
            logger.warning("Entry file specified but does not exist: %s", custom)

    if content is not None and app_json_path is None and os.path.isfile(default_path):
        app_json_path = default_path
        logger.debug("Associated entry content with %s", default_path)

    if app_json_path is None and content is None and os.path.isfile(default_path):
        app_json_path = default_path
        data = read_json(default_path)
        if isinstance(data, dict):
            content = data

    if app_json_path is None and content is None:
        raise EntryManifestError(
            f"No entry manifest: app.json not found in {miniapp_root} and no entry content given"
        )
    if content is None:
        logger.warning("Entry manifest %s has no usable content; structure will be incomplete", app_json_path)
        content = {}
    return app_json_path, content


# Directory names skipped while searching for app.json.
APP_JSON_SEARCH_EXCLUDE_DIRS = (
    "node_modules",
    ".git",
    "dist",
    "build",
    "out",
    "coverage",
    ".vscode",
    ".idea",
    "miniprogram_npm",
)


def _is_valid_app_json(path: str) -> bool:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.log(TRACE, "Skipping unreadable app.json %s: %s", path, e)
        return False
    return isinstance(data, dict) and isinstance(data.get("pages"), list)


def find_app_json(project_root: str, exclude_dirs: Sequence[str] = APP_JSON_SEARCH_EXCLUDE_DIRS) -> Optional[str]:
    """Auto-detect the entry manifest below ``project_root``.

    Returns the path of the only ``app.json`` that has a ``pages`` list.
    Returns None when there is none, or when several are found (ambiguous).
    """
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(project_root):
        dirnames[:] = sorted(d for d in dirnames if d not in exclude_dirs)
        if "app.json" in filenames:
            candidate = os.path.join(dirpath, "app.json")
            if _is_valid_app_json(candidate):
                found.append(os.path.normpath(candidate))

    if len(found) == 1:
        logger.info("Auto-detected entry file: %s", os.path.relpath(found[0], project_root))
        return found[0]
    if len(found) > 1:
        logger.warning(
            "Found %d valid app.json files; specify --miniapp-root and --entry-file. Locations: %s",
            len(found),
            ", ".join(os.path.relpath(p, project_root) for p in found),
        )
        return None
    logger.debug("No valid app.json found for auto-detection")
    return None


def _is_excluded(rel: str, patterns: Sequence[str]) -> bool:
    return any(fnmatch.fnmatch(rel, pat) for pat in patterns)


def collect_files(
    root: str,
    file_types: Optional[Iterable[str]] = None,
    exclude: Optional[Sequence[str]] = None,
    include_assets: bool = False,
) -> List[str]:
    """Walk ``root`` and return absolute paths with an allowed extension.

    ``exclude`` globs are matched against root-relative POSIX paths; a
    directory is pruned when ``<dir>/`` matches.
    """
    exts: Set[str] = {normalize_ext(t) for t in (file_types or DEFAULT_FILE_TYPES)}
    if include_assets:
        exts.update(IMAGE_EXTENSIONS)
    patterns = list(DEFAULT_EXCLUDE if exclude is None else exclude)

    collected: List[str] = []
    base = Path(root)
    for dirpath, dirnames, filenames in os.walk(base):
        rel_dir = Path(dirpath).relative_to(base).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"
        for d in list(dirnames):
            if _is_excluded(rel_dir + d + "/", patterns):
                dirnames.remove(d)
        dirnames.sort()
        for fn in sorted(filenames):
            if os.path.splitext(fn)[1].lower() not in exts:
                continue
            if _is_excluded(rel_dir + fn, patterns):
                continue
            collected.append(os.path.normpath(os.path.join(dirpath, fn)))
    return collected


def resolve_essential_files(project_root: str, miniapp_root: str, user_files: Iterable[str] = ()) -> Set[str]:
    """Default essential files plus user entries (mini-program root first)."""
    essential: Set[str] = set()
    for name in PROJECT_LEVEL_ESSENTIALS:
        essential.add(os.path.normpath(os.path.join(project_root, name)))
    for name in MINIAPP_LEVEL_ESSENTIALS:
        essential.add(os.path.normpath(os.path.join(miniapp_root, name)))

    for entry in user_files:
        from_miniapp = os.path.normpath(os.path.join(miniapp_root, entry))
        from_project = os.path.normpath(os.path.join(project_root, entry))
        if os.path.exists(from_miniapp):
            essential.add(from_miniapp)
        elif os.path.exists(from_project):
            essential.add(from_project)
        else:
            logger.warning("Specified essential file not found: %s", entry)
    return essential


def analyze_project(
    project_root: Union[str, Path],
    miniapp_root: Optional[str] = None,
    entry_file: Optional[str] = None,
    entry_content: Optional[Dict[str, Any]] = None,
    file_types: Optional[Iterable[str]] = None,
    exclude: Optional[Sequence[str]] = None,
    essential_files: Optional[Iterable[str]] = None,
    include_assets: bool = False,
    keep_assets: Optional[Iterable[str]] = None,
    aliases: Optional[AliasSpec] = None,
    config_aliases: Optional[AliasSpec] = None,
    inventory: Optional[Iterable[str]] = None,
) -> AnalysisResult:
    """Analyze a mini-program project.

    Returns the structure graph and the unused files among ``inventory``
    (collected from the mini-program root when not given). Without a
    mini-program root, entry file or entry content, the root is the directory
    of the single valid ``app.json`` found by :func:`find_app_json`, falling
    back to ``project_root``.
    """
    root = os.path.normpath(str(Path(project_root).resolve()))
    if miniapp_root is None and entry_file is None and entry_content is None:
        detected = find_app_json(root)
        if detected is not None:
            miniapp_root = os.path.dirname(detected)
    # resolved like the builder's root so inventory and graph paths compare equal
    app_root = os.path.normpath(str(Path(root, miniapp_root).resolve())) if miniapp_root else root
    logger.debug("Project root: %s", root)
    logger.debug("MiniApp root: %s", app_root)

    if not os.path.isdir(app_root):
        raise EntryManifestError(f"Mini-program root does not exist: {app_root}")

    app_json_path, content = resolve_app_json(app_root, entry_file, entry_content)
    manifest = normalize_app_manifest(content)

    alias_table = AliasTable(root, config_aliases=config_aliases, aliases=aliases)
    resolver = PathResolver(app_root, alias_table)
    structure = StructureBuilder(
        app_root, manifest, app_json_path=app_json_path, resolver=resolver, project_root=root
    ).build()

    if inventory is None:
        files = collect_files(app_root, file_types, exclude, include_assets)
    else:
        files = [os.path.normpath(str(Path(p).resolve())) for p in inventory]
    logger.info("Inventory: %d files", len(files))

    essential = resolve_essential_files(root, app_root, essential_files or ())
    partition = classify_inventory(
        files,
        structure.graph,
        essential_files=essential,
        include_assets=include_assets,
        keep_assets=keep_assets or (),
        base_dir=root,
    )
    logger.info("Unused files found: %d", len(partition.unused))
    return AnalysisResult(
        structure=structure,
        unused_files=partition.unused,
        inventory=files,
        partition=partition,
    )


def analyze_with_config(project_root: Union[str, Path], config: AnalyzerConfig, **overrides: Any) -> AnalysisResult:
    """Run :func:`analyze_project` from an :class:`AnalyzerConfig`; ``overrides`` win."""
    kwargs: Dict[str, Any] = {
        "miniapp_root": config.miniapp_root,
        "entry_file": config.entry_file,
        "entry_content": config.entry_content,
        "file_types": config.types,
        "exclude": config.exclude,
        "essential_files": config.essential_files,
        "include_assets": config.include_assets,
        "keep_assets": config.keep_assets,
        "config_aliases": config.aliases,
    }
    kwargs.update({k: v for k, v in overrides.items() if v is not None})
    return analyze_project(project_root, **kwargs)
