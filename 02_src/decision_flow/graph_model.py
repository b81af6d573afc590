"""Decision tree data model primitives and their JSON form."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple


class NodeKind(str, Enum):
    ROOT = "root"
    BRANCH = "branch"
    LEAF = "leaf"


# Node "type" values written by the canvas front-end of earlier versions.
_LEGACY_KINDS = {
    "input": NodeKind.ROOT,
    "default": NodeKind.BRANCH,
    "output": NodeKind.LEAF,
}


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class NodeDraft:
    label: str


@dataclass(frozen=True)
class EdgeStyle:
    emphasized: bool = False


@dataclass(frozen=True)
class Node:
    id: str
    position: Position
    label: str
    kind: NodeKind = NodeKind.LEAF


@dataclass(frozen=True)
class Edge:
    id: str
    source: str
    target: str
    emphasized: bool = False

    @staticmethod
    def build_id(source: str, target: str) -> str:
        return f"e{source}-{target}"


@dataclass(frozen=True)
class GraphSnapshot:
    nodes: Tuple[Node, ...] = field(default_factory=tuple)
    edges: Tuple[Edge, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def children_of(self, node_id: str) -> List[Node]:
        """Direct children of ``node_id`` in the order their edges were created."""
        by_id = {node.id: node for node in self.nodes}
        return [by_id[edge.target] for edge in self.edges if edge.source == node_id and edge.target in by_id]

    def to_json(self) -> Dict[str, Any]:
        return {
            "nodes": [
                {
                    "id": node.id,
                    "position": {"x": node.position.x, "y": node.position.y},
                    "label": node.label,
                    "kind": node.kind.value,
                }
                for node in self.nodes
            ],
            "edges": [
                {
                    "id": edge.id,
                    "source": edge.source,
                    "target": edge.target,
                    "emphasized": edge.emphasized,
                }
                for edge in self.edges
            ],
        }

    @classmethod
    def from_json(cls, payload: Dict[str, Any]) -> "GraphSnapshot":
        if not isinstance(payload, dict):
            raise ValueError("Graph payload must be a JSON object.")
        raw_nodes = payload.get("nodes") or []
        raw_edges = payload.get("edges") or []
        if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
            raise ValueError("Graph 'nodes' and 'edges' must be JSON arrays.")
        snapshot = cls(
            nodes=tuple(_node_from_json(item) for item in raw_nodes),
            edges=tuple(_edge_from_json(item) for item in raw_edges),
        )
        check_tree(snapshot)
        return snapshot


def check_tree(snapshot: GraphSnapshot) -> None:
    """Raise ``ValueError`` unless the snapshot is a single tree rooted at one node."""
    node_ids = [node.id for node in snapshot.nodes]
    known = set(node_ids)
    if len(known) != len(node_ids):
        raise ValueError("Duplicate node ids in graph.")

    parents: Dict[str, str] = {}
    for edge in snapshot.edges:
        if edge.source not in known or edge.target not in known:
            raise ValueError(f"Edge {edge.id} points to a missing node.")
        if edge.target in parents:
            raise ValueError(f"Node {edge.target} has more than one parent.")
        parents[edge.target] = edge.source

    if not node_ids:
        return
    roots = [node_id for node_id in node_ids if node_id not in parents]
    if len(roots) != 1:
        raise ValueError(f"Graph must have exactly one root, found {len(roots)}.")

    children: Dict[str, List[str]] = {}
    for target, source in parents.items():
        children.setdefault(source, []).append(target)
    reached = set()
    pending = [roots[0]]
    while pending:
        node_id = pending.pop()
        if node_id in reached:
            continue
        reached.add(node_id)
        pending.extend(children.get(node_id, []))
    if reached != known:
        raise ValueError("Graph contains nodes that are not reachable from the root.")


def display_label(label: str, limit: int = 60) -> str:
    """Shorten a label for rendering; stored labels are never truncated."""
    text = " ".join(label.split())
    if len(text) <= limit:
        return text
    return text[: max(limit - 3, 0)].rstrip() + "..."


def _node_from_json(item: Dict[str, Any]) -> Node:
    if not isinstance(item, dict) or "id" not in item:
        raise ValueError(f"Invalid node entry: {item!r}")
    position = item.get("position") or {}
    data = item.get("data") or {}
    if not isinstance(position, dict) or not isinstance(data, dict):
        raise ValueError(f"Invalid node entry: {item!r}")
    label = item.get("label")
    if label is None:
        label = data.get("label", "")
    if "kind" in item:
        kind = NodeKind(item["kind"])
    else:
        kind = _LEGACY_KINDS.get(str(item.get("type", "output")), NodeKind.LEAF)
    return Node(
        id=str(item["id"]),
        position=Position(x=_coordinate(position, "x", item), y=_coordinate(position, "y", item)),
        label=str(label),
        kind=kind,
    )


def _coordinate(position: Dict[str, Any], axis: str, item: Dict[str, Any]) -> float:
    value = position.get(axis, 0.0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Invalid node entry: {item!r}")
    return float(value)


def _edge_from_json(item: Dict[str, Any]) -> Edge:
    if not isinstance(item, dict) or "source" not in item or "target" not in item:
        raise ValueError(f"Invalid edge entry: {item!r}")
    source = str(item["source"])
    target = str(item["target"])
    return Edge(
        id=str(item.get("id") or Edge.build_id(source, target)),
        source=source,
        target=target,
        emphasized=bool(item.get("emphasized", item.get("animated", False))),
    )
