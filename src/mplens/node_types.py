"""
Node and edge types of the project structure graph.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class NodeType(str, Enum):
    APP = "App"
    PACKAGE = "Package"
    PAGE = "Page"
    COMPONENT = "Component"
    MODULE = "Module"


class LinkType(str, Enum):
    STRUCTURE = "Structure"
    IMPORT = "Import"
    TEMPLATE = "Template"
    STYLE = "Style"
    CONFIG = "Config"  # page/component -> json, App -> app.json
    RESOURCE = "Resource"  # images, tabBar icons
    WORKER_ENTRY = "WorkerEntry"


APP_NODE_ID = "app"


def package_node_id(root: str) -> str:
    return f"pkg:{root}"


def page_node_id(rel_path: str) -> str:
    return f"page:{rel_path}"


def component_node_id(rel_path: str) -> str:
    return f"comp:{rel_path}"


@dataclass
class GraphNode:
    """A vertex in the structure graph.

    Module nodes use the absolute file path as ``id``; structural entities use a
    synthetic key (``app``, ``pkg:<root>``, ``page:<path>``, ``comp:<path>``).
    """

    id: str
    type: NodeType
    label: str
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def absolute_path(self) -> Optional[str]:
        value = self.properties.get("absolute_path")
        return value if isinstance(value, str) else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "properties": dict(self.properties),
        }


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    type: LinkType

    def to_dict(self) -> Dict[str, str]:
        return {"source": self.source, "target": self.target, "type": self.type.value}
