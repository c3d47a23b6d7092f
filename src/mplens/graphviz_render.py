from __future__ import annotations

import json
import os
from typing import Dict, Tuple

from graphviz import Digraph
from graphviz.backend import ExecutableNotFound

from .node_types import LinkType, NodeType
from .structure_builder import ProjectStructure

_NODE_COLORS = {
    NodeType.APP: "#90CAF9",
    NodeType.PACKAGE: "#CE93D8",
    NodeType.PAGE: "#A5D6A7",
    NodeType.COMPONENT: "#FFE082",
    NodeType.MODULE: "#FFFFFF",
}

_EDGE_STYLES: Dict[LinkType, Dict[str, str]] = {
    LinkType.STRUCTURE: {"color": "black", "style": "solid"},
    LinkType.IMPORT: {"color": "black", "style": "dashed"},
    LinkType.TEMPLATE: {"color": "#1E88E5", "style": "dashed"},
    LinkType.STYLE: {"color": "#8E24AA", "style": "dashed"},
    LinkType.CONFIG: {"color": "#757575", "style": "dotted"},
    LinkType.RESOURCE: {"color": "#FB8C00", "style": "dotted"},
    LinkType.WORKER_ENTRY: {"color": "#E53935", "style": "solid"},
}

_ICONS = {
    NodeType.APP: "\U0001f4f1",  # 📱
    NodeType.PACKAGE: "\U0001f4e6",  # 📦
    NodeType.PAGE: "\U0001f4c3",  # 📃
    NodeType.COMPONENT: "\U0001f9e9",  # 🧩
    NodeType.MODULE: "\U0001f4c4",  # 📄
}


def _get_short_name(label: str) -> str:
    """Last path segment of a label; the App node keeps its label."""
    if not label:
        return "root"
    return label.rstrip("/").split("/")[-1]


def build_digraph(structure: ProjectStructure) -> Digraph:
    dot = Digraph(
        "mplens",
        graph_attr={"rankdir": "TB", "splines": "spline"},
        node_attr={"shape": "box", "style": "rounded,filled", "fontname": "Helvetica"},
        edge_attr={"arrowhead": "vee"},
    )

    # Node ids contain ':' and path separators, which DOT treats as ports.
    ids: Dict[str, str] = {}
    for i, node in enumerate(structure.graph.nodes()):
        ids[node.id] = f"n{i}"
        label = f"{_ICONS[node.type]} {_get_short_name(node.label)}\n{node.type.value}"
        dot.node(ids[node.id], label=label, fillcolor=_NODE_COLORS[node.type], tooltip=node.label)

    for edge in structure.graph.edges():
        dot.edge(ids[edge.source], ids[edge.target], **_EDGE_STYLES[edge.type])
    return dot


def render_structure_graph(structure: ProjectStructure, output_base: str, fmt: str = "svg") -> Tuple[str, str]:
    """Write ``<base>.dot`` and, when Graphviz is installed, ``<base>.<fmt>``.

    Returns ``(dot_path, rendered_path)``; ``rendered_path`` is empty when the
    ``dot`` executable is missing.
    """
    dot = build_digraph(structure)
    dot_path = f"{output_base}.dot"
    out_path = f"{output_base}.{fmt}"
    dot.save(dot_path)
    if fmt == "dot":
        return dot_path, dot_path

    try:
        dot.render(output_base, format=fmt, cleanup=True)
    except ExecutableNotFound:
        # Only DOT written; caller should inform user
        out_path = ""
    return dot_path, out_path


def write_json_graph(structure: ProjectStructure, output_path: str) -> str:
    parent = os.path.dirname(output_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(structure.to_dict(), f, indent=2, ensure_ascii=False)
    return output_path
