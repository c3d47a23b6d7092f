"""
Unused file detection.

The structure builder only creates nodes while walking outward from the App
root, so every Module node in the graph is reachable by construction and no
separate graph search is needed:

    unused = inventory - module nodes - essential files
             - assets (unless assets are included) - keep-asset matches
"""
from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .filetypes import is_image
from .graph import DependencyGraph

logger = logging.getLogger(__name__)


@dataclass
class InventoryPartition:
    """Every inventory file lands in exactly one bucket (checked in this order)."""

    reachable: List[str] = field(default_factory=list)
    essential: List[str] = field(default_factory=list)
    excluded_asset: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    unused: List[str] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        return {
            "reachable": len(self.reachable),
            "essential": len(self.essential),
            "excluded_asset": len(self.excluded_asset),
            "kept": len(self.kept),
            "unused": len(self.unused),
        }


def _matches_any(abs_path: str, patterns: Iterable[str], base_dir: Optional[str]) -> Optional[str]:
    rel = abs_path
    if base_dir:
        rel = Path(os.path.relpath(abs_path, base_dir)).as_posix()
    for pat in patterns:
        if fnmatch.fnmatch(rel, pat):
            return pat
    return None


def classify_inventory(
    inventory: Iterable[str],
    graph: DependencyGraph,
    essential_files: Iterable[str] = (),
    include_assets: bool = False,
    keep_assets: Iterable[str] = (),
    base_dir: Optional[str] = None,
) -> InventoryPartition:
    discovered = graph.module_paths()
    essential = {os.path.normpath(p) for p in essential_files}
    keep_patterns = list(keep_assets)
    part = InventoryPartition()

    for raw in sorted({os.path.normpath(p) for p in inventory}):
        ext = os.path.splitext(raw)[1]
        if raw in discovered:
            part.reachable.append(raw)
        elif raw in essential:
            part.essential.append(raw)
        elif not include_assets and is_image(ext):
            part.excluded_asset.append(raw)
        elif keep_patterns and _matches_any(raw, keep_patterns, base_dir):
            logger.debug("Keeping %s (keep-assets match)", raw)
            part.kept.append(raw)
        else:
            part.unused.append(raw)
    return part


def find_unused_files(
    inventory: Iterable[str],
    graph: DependencyGraph,
    essential_files: Iterable[str] = (),
    include_assets: bool = False,
    keep_assets: Iterable[str] = (),
    base_dir: Optional[str] = None,
) -> List[str]:
    """Return the sorted absolute paths of inventory files nothing reaches.

    ``keep_assets`` are glob patterns matched against paths relative to
    ``base_dir`` (absolute paths when ``base_dir`` is None).
    """
    part = classify_inventory(
        inventory,
        graph,
        essential_files=essential_files,
        include_assets=include_assets,
        keep_assets=keep_assets,
        base_dir=base_dir,
    )
    logger.info("Unused files found: %d", len(part.unused))
    return part.unused
