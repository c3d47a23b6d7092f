"""
Builds the project structure graph by walking outward from the entry manifest.

The walk has two halves:

* a structural half driven by JSON: ``app.json`` pages, subpackages, global
  components, tab bar, theme and workers, then each page/component's sibling
  files and the components its own JSON registers;
* a textual half driven by file contents: every Module node is scanned once
  for import/require/template/style references, and newly found files are
  scanned in turn.

A builder instance is one analysis session. Its two visited-sets (structural
ids that have been expanded, file paths that have been scanned) are what make
the walk terminate on cyclic component declarations and import cycles: a node
may be the target of any number of edges but is expanded at most once.
"""
from __future__ import annotations

import logging
import os
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set

from .extractors import RefKind, allowed_extensions, extract_references, is_external_or_dynamic
from .filetypes import (
    COMPONENT_DEFINITION_EXTENSIONS,
    IMAGE_EXTENSIONS,
    SCRIPT_EXTENSIONS,
    STYLE_EXTENSIONS,
    TEMPLATE_EXTENSIONS,
    is_text_bearing,
)
from .graph import DependencyGraph
from .manifest import AppManifest, normalize_component_config, read_json
from .node_types import (
    APP_NODE_ID,
    GraphNode,
    LinkType,
    NodeType,
    component_node_id,
    package_node_id,
    page_node_id,
)
from .path_resolver import PathResolver, find_existing_path

logger = logging.getLogger(__name__)

# Attached to the App node whenever they exist.
GLOBAL_FILES = (
    "app.js",
    "app.ts",
    "app.wxss",
    "app.less",
    "project.config.json",
    "project.private.config.json",
    "sitemap.json",
)
DEFAULT_THEME_FILE = "theme.json"


def infer_link_type(source_ext: str, target_ext: str) -> LinkType:
    source_ext = source_ext.lower()
    target_ext = target_ext.lower()
    if target_ext in IMAGE_EXTENSIONS:
        return LinkType.RESOURCE
    if source_ext in TEMPLATE_EXTENSIONS and target_ext in TEMPLATE_EXTENSIONS:
        return LinkType.TEMPLATE
    if source_ext in STYLE_EXTENSIONS and target_ext in STYLE_EXTENSIONS:
        return LinkType.STYLE
    return LinkType.IMPORT


@dataclass
class ProjectStructure:
    graph: DependencyGraph
    root_node_id: str
    miniapp_root: str
    app_json_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.graph.to_dict()
        data["rootNodeId"] = self.root_node_id
        data["miniappRoot"] = self.miniapp_root
        return data


class StructureBuilder:
    def __init__(
        self,
        miniapp_root: str | Path,
        manifest: AppManifest,
        app_json_path: Optional[str] = None,
        resolver: Optional[PathResolver] = None,
        project_root: Optional[str | Path] = None,
    ) -> None:
        self.miniapp_root = os.path.normpath(str(Path(miniapp_root).resolve()))
        self.project_root = os.path.normpath(str(Path(project_root or miniapp_root).resolve()))
        self.manifest = manifest
        self.app_json_path = os.path.normpath(app_json_path) if app_json_path else None
        self.resolver = resolver or PathResolver(self.miniapp_root)
        self.graph = DependencyGraph()
        self.root_node_id = APP_NODE_ID
        # page/component ids whose files and JSON have been expanded
        self._expanded: Set[str] = set()
        # absolute paths whose text has been scanned
        self._parsed: Set[str] = set()

    # --- entry point ---
    def build(self) -> ProjectStructure:
        logger.info("Starting project structure analysis in %s", self.miniapp_root)

        self.graph.add_node(
            GraphNode(
                id=self.root_node_id,
                type=NodeType.APP,
                label="App",
                properties={"path": self.app_json_path} if self.app_json_path else {},
            )
        )
        if self.app_json_path:
            app_json = self._add_module(self.app_json_path)
            if app_json is not None:
                self.graph.add_edge(self.root_node_id, app_json.id, LinkType.CONFIG)

        self._process_manifest(self.manifest)
        self._process_global_files()
        self._sweep()

        logger.info(
            "Project structure analysis complete: %d nodes, %d links",
            self.graph.node_count,
            self.graph.edge_count,
        )
        return ProjectStructure(
            graph=self.graph,
            root_node_id=self.root_node_id,
            miniapp_root=self.miniapp_root,
            app_json_path=self.app_json_path,
        )

    # --- helpers ---
    def _rel(self, abs_path: str) -> str:
        return Path(os.path.relpath(abs_path, self.miniapp_root)).as_posix()

    def _abs(self, rel_path: str) -> str:
        return os.path.normpath(os.path.join(self.miniapp_root, rel_path.lstrip("/")))

    def _declaring_app_file(self) -> str:
        # Only the directory matters for resolution.
        return self.app_json_path or os.path.join(self.miniapp_root, "app.json")

    def _add_module(self, abs_path: str) -> Optional[GraphNode]:
        """Return the Module node for an existing file, creating it if needed."""
        abs_path = os.path.normpath(abs_path)
        existing = self.graph.get_node(abs_path)
        if existing is not None:
            return existing
        if not os.path.isfile(abs_path):
            return None
        try:
            size: Optional[int] = os.path.getsize(abs_path)
        except OSError:
            size = None
        return self.graph.add_node(
            GraphNode(
                id=abs_path,
                type=NodeType.MODULE,
                label=self._rel(abs_path),
                properties={
                    "absolute_path": abs_path,
                    "size": size,
                    "extension": os.path.splitext(abs_path)[1].lower(),
                },
            )
        )

    def _link_file(
        self,
        source_id: str,
        rel_path: str,
        link_type: LinkType,
        extensions: Sequence[str] = (),
        warn: bool = True,
    ) -> Optional[GraphNode]:
        """Attach a file named relative to the mini-program root to ``source_id``."""
        found = find_existing_path(self._abs(rel_path), extensions)
        if found is None:
            if warn:
                logger.warning("Referenced file in app.json not found: %s", rel_path)
            return None
        node = self._add_module(found)
        if node is not None:
            self.graph.add_edge(source_id, node.id, link_type)
        return node

    # --- structural walk ---
    def _process_manifest(self, manifest: AppManifest) -> None:
        for page in manifest.pages:
            self._process_page(self.root_node_id, page)

        for sub in manifest.subpackages:
            pkg_id = package_node_id(sub.root)
            self.graph.add_node(
                GraphNode(
                    id=pkg_id,
                    type=NodeType.PACKAGE,
                    label=sub.root,
                    properties={"root": self._abs(sub.root), "independent": sub.independent},
                )
            )
            self.graph.add_edge(self.root_node_id, pkg_id, LinkType.STRUCTURE)
            for page in sub.pages:
                self._process_page(pkg_id, posixpath.join(sub.root, page.lstrip("/")))

        declaring = self._declaring_app_file()
        for comp_path in manifest.using_components.values():
            self._process_component(self.root_node_id, comp_path, declaring)

        self._process_tab_bar(manifest)
        self._process_theme(manifest)
        self._process_workers(manifest)

    def _process_tab_bar(self, manifest: AppManifest) -> None:
        for item in manifest.tab_bar:
            if item.page_path:
                self._process_page(self.root_node_id, item.page_path)
            for icon in (item.icon_path, item.selected_icon_path):
                if icon and not is_external_or_dynamic(icon):
                    self._link_file(self.root_node_id, icon, LinkType.RESOURCE)

    def _process_theme(self, manifest: AppManifest) -> None:
        if manifest.theme_location:
            self._link_file(self.root_node_id, manifest.theme_location, LinkType.CONFIG, (".json",))
        self._link_file(self.root_node_id, DEFAULT_THEME_FILE, LinkType.CONFIG, warn=False)

    def _process_workers(self, manifest: AppManifest) -> None:
        if not manifest.workers:
            return
        worker_path = self._abs(manifest.workers)
        if os.path.isdir(worker_path):
            # A worker directory: every script beneath it is an entry.
            for dirpath, dirnames, filenames in os.walk(worker_path):
                dirnames.sort()
                for fn in sorted(filenames):
                    if os.path.splitext(fn)[1].lower() in SCRIPT_EXTENSIONS:
                        node = self._add_module(os.path.join(dirpath, fn))
                        if node is not None:
                            self.graph.add_edge(self.root_node_id, node.id, LinkType.WORKER_ENTRY)
            return
        self._link_file(self.root_node_id, manifest.workers, LinkType.WORKER_ENTRY, SCRIPT_EXTENSIONS)

    def _process_page(self, owner_id: str, page_path: str) -> None:
        rel = posixpath.normpath(page_path.strip().lstrip("/"))
        page_id = page_node_id(rel)
        base = self._abs(rel)
        self.graph.add_node(
            GraphNode(id=page_id, type=NodeType.PAGE, label=rel, properties={"base_path": base})
        )
        self.graph.add_edge(owner_id, page_id, LinkType.STRUCTURE)
        if page_id in self._expanded:
            return
        self._expanded.add(page_id)
        self._attach_definition_files(page_id, base)

    def _process_component(self, owner_id: str, comp_path: str, declaring_file: str) -> None:
        if is_external_or_dynamic(comp_path):
            logger.debug("Skipping component %r declared in %s", comp_path, declaring_file)
            return
        resolved = self.resolver.resolve(comp_path, declaring_file, COMPONENT_DEFINITION_EXTENSIONS)
        if resolved is None:
            logger.warning("Could not resolve component %r declared in %s", comp_path, declaring_file)
            return
        base = os.path.splitext(resolved)[0]
        rel = self._rel(base)
        comp_id = component_node_id(rel)
        self.graph.add_node(
            GraphNode(id=comp_id, type=NodeType.COMPONENT, label=rel, properties={"base_path": base})
        )
        self.graph.add_edge(owner_id, comp_id, LinkType.STRUCTURE)
        if comp_id in self._expanded:
            return
        self._expanded.add(comp_id)
        self._attach_definition_files(comp_id, base)

    def _attach_definition_files(self, owner_id: str, base: str) -> None:
        """Attach ``base.json/.js/.ts/.wxml/.wxss/.less`` to a page or component."""
        for ext in COMPONENT_DEFINITION_EXTENSIONS:
            node = self._add_module(base + ext)
            if node is None:
                continue
            if ext == ".json":
                self.graph.add_edge(owner_id, node.id, LinkType.CONFIG)
                self._expand_component_config(owner_id, node.id)
            else:
                self.graph.add_edge(owner_id, node.id, LinkType.STRUCTURE)

    def _expand_component_config(self, owner_id: str, json_path: str) -> None:
        data = read_json(json_path)
        if data is None:
            return
        config = normalize_component_config(data)
        for comp_path in config.component_paths():
            self._process_component(owner_id, comp_path, json_path)

    def _process_global_files(self) -> None:
        for name in GLOBAL_FILES:
            node = self._add_module(os.path.join(self.miniapp_root, name))
            if node is None:
                continue
            link = LinkType.CONFIG if name.endswith(".json") else LinkType.STRUCTURE
            self.graph.add_edge(self.root_node_id, node.id, link)

    # --- textual walk ---
    def _sweep(self) -> None:
        """Scan every Module node not yet scanned until none remain."""
        initial = len(self._parsed)
        while True:
            pending = [
                n
                for n in self.graph.nodes_of_type(NodeType.MODULE)
                if n.absolute_path and n.absolute_path not in self._parsed
            ]
            if not pending:
                break
            for node in pending:
                self._parse_from(node)
        logger.info("Final pass complete. Scanned %d modules.", len(self._parsed) - initial)

    def _parse_from(self, start: GraphNode) -> None:
        """Depth-first scan from ``start`` using an explicit stack."""
        stack: List[GraphNode] = [start]
        while stack:
            node = stack.pop()
            path = node.absolute_path
            if not path or path in self._parsed:
                continue
            self._parsed.add(path)
            discovered = self._parse_module(node)
            # reversed keeps source order on the stack
            stack.extend(reversed(discovered))

    def _parse_module(self, node: GraphNode) -> List[GraphNode]:
        path = node.absolute_path or node.id
        ext = os.path.splitext(path)[1].lower()
        if not is_text_bearing(ext):
            return []
        try:
            content = Path(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Failed to read %s: %s", path, e)
            return []

        discovered: List[GraphNode] = []
        for ref in extract_references(content, ext, path):
            target = self.resolver.resolve(ref.value, path, allowed_extensions(ref, ext))
            if target is None or target == path:
                continue

            if ref.kind is RefKind.IMPLICIT_NAVIGATION:
                page_rel = self._rel(os.path.splitext(target)[0])
                if page_rel.startswith(".."):
                    continue
                if page_rel.startswith("components/"):
                    self._process_component(node.id, "/" + page_rel, path)
                else:
                    self._process_page(node.id, page_rel)
                continue

            dep = self._add_module(target)
            if dep is None:
                continue
            target_ext = os.path.splitext(target)[1].lower()
            self.graph.add_edge(node.id, dep.id, infer_link_type(ext, target_ext))
            if is_text_bearing(target_ext) and target not in self._parsed:
                discovered.append(dep)
        return discovered
