"""Single owner of the live decision tree."""

import logging
import threading
from dataclasses import replace
from typing import Callable, Dict, List, Sequence

from .errors import (
    GraphNotEmpty,
    InvalidParent,
    PersistenceReadFailed,
    PersistenceWriteFailed,
    UnknownEdge,
    UnknownNode,
)
from .graph_model import Edge, EdgeStyle, GraphSnapshot, Node, NodeDraft, NodeKind, Position, check_tree
from .layout import DEFAULT_SPACING, ROOT_POSITION, layout_children
from .persistence import PersistenceGateway
from .scheduling import BackgroundSaveDispatcher, SaveDispatcher

logger = logging.getLogger(__name__)

ROOT_ID = "1"

SnapshotListener = Callable[[GraphSnapshot], None]


class GraphStore:
    """Owns node identifiers and applies tree mutations.

    Every committed mutation replaces the in-memory snapshot, hands the full
    snapshot to the persistence gateway through the save dispatcher, then
    notifies subscribers. Failed saves are logged and never roll back memory.
    """

    def __init__(
        self,
        persistence: PersistenceGateway,
        snapshot: GraphSnapshot | None = None,
        dispatcher: SaveDispatcher | None = None,
        spacing: float = DEFAULT_SPACING,
    ) -> None:
        self._persistence = persistence
        self._snapshot = snapshot or GraphSnapshot()
        self._dispatcher = dispatcher or BackgroundSaveDispatcher()
        self._spacing = spacing
        self._listeners: List[SnapshotListener] = []
        self._save_lock = threading.Lock()
        self._last_save_error: PersistenceWriteFailed | None = None
        self.selected_edge_id: str | None = None

    @classmethod
    def from_persistence(
        cls,
        persistence: PersistenceGateway,
        dispatcher: SaveDispatcher | None = None,
        spacing: float = DEFAULT_SPACING,
    ) -> "GraphStore":
        snapshot = persistence.load()
        try:
            check_tree(snapshot)
        except ValueError as error:
            raise PersistenceReadFailed(f"Stored graph is not a valid tree: {error}") from error
        logger.info("Hydrated graph with %d nodes and %d edges", len(snapshot.nodes), len(snapshot.edges))
        return cls(persistence, snapshot=snapshot, dispatcher=dispatcher, spacing=spacing)

    @property
    def last_save_error(self) -> PersistenceWriteFailed | None:
        with self._save_lock:
            return self._last_save_error

    def current_snapshot(self) -> GraphSnapshot:
        return self._snapshot

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def create_root(
        self,
        draft: NodeDraft,
        children: Sequence[NodeDraft] = (),
        edge_styles: Sequence[EdgeStyle] | None = None,
    ) -> GraphSnapshot:
        if not self._snapshot.is_empty:
            raise GraphNotEmpty(len(self._snapshot.nodes))

        root = Node(id=ROOT_ID, position=ROOT_POSITION, label=draft.label, kind=NodeKind.ROOT)
        snapshot = GraphSnapshot(nodes=(root,), edges=())
        if children:
            snapshot = self._attach(snapshot, ROOT_ID, children, self._resolve_styles(children, edge_styles))
        return self._commit(snapshot, f"create root '{draft.label}' with {len(children)} children")

    def insert_children(
        self,
        parent_id: str,
        drafts: Sequence[NodeDraft],
        edge_styles: Sequence[EdgeStyle] | None = None,
    ) -> GraphSnapshot:
        if self._snapshot.node(parent_id) is None:
            raise InvalidParent(parent_id)
        styles = self._resolve_styles(drafts, edge_styles)
        snapshot = self._attach(self._snapshot, parent_id, drafts, styles)
        return self._commit(snapshot, f"insert {len(drafts)} children under node {parent_id}")

    def reposition(self, node_id: str, position: Position) -> GraphSnapshot:
        if self._snapshot.node(node_id) is None:
            raise UnknownNode(node_id)
        nodes = tuple(
            replace(node, position=position) if node.id == node_id else node for node in self._snapshot.nodes
        )
        snapshot = GraphSnapshot(nodes=nodes, edges=self._snapshot.edges)
        return self._commit(snapshot, f"move node {node_id} to ({position.x}, {position.y})")

    def select_edge(self, edge_id: str) -> Edge:
        for edge in self._snapshot.edges:
            if edge.id == edge_id:
                self.selected_edge_id = edge_id
                return edge
        raise UnknownEdge(edge_id)

    def to_json(self) -> Dict[str, object]:
        return self._snapshot.to_json()

    def close(self) -> None:
        self._dispatcher.close()

    def _attach(
        self,
        snapshot: GraphSnapshot,
        parent_id: str,
        drafts: Sequence[NodeDraft],
        styles: Sequence[EdgeStyle],
    ) -> GraphSnapshot:
        parent = snapshot.node(parent_id)
        if parent is None:
            raise InvalidParent(parent_id)
        if not drafts:
            return snapshot

        existing_children = snapshot.children_of(parent_id)
        positions = layout_children(parent, existing_children, len(drafts), self._spacing)
        moved = {child.id: positions[index] for index, child in enumerate(existing_children)}

        nodes: List[Node] = []
        for node in snapshot.nodes:
            if node.id == parent_id:
                node = replace(node, kind=NodeKind.BRANCH)
            if node.id in moved:
                node = replace(node, position=moved[node.id])
            nodes.append(node)

        edges = list(snapshot.edges)
        next_id = self._max_numeric_id(snapshot) + 1
        for offset, (draft, style) in enumerate(zip(drafts, styles)):
            child_id = str(next_id + offset)
            nodes.append(
                Node(
                    id=child_id,
                    position=positions[len(existing_children) + offset],
                    label=draft.label,
                    kind=NodeKind.LEAF,
                )
            )
            edges.append(
                Edge(
                    id=Edge.build_id(parent_id, child_id),
                    source=parent_id,
                    target=child_id,
                    emphasized=style.emphasized,
                )
            )
        return GraphSnapshot(nodes=tuple(nodes), edges=tuple(edges))

    def _commit(self, snapshot: GraphSnapshot, description: str) -> GraphSnapshot:
        self._snapshot = snapshot
        logger.debug("Committed %s", description)
        self._dispatcher.submit(lambda: self._save(snapshot))
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def _save(self, snapshot: GraphSnapshot) -> None:
        try:
            result = self._persistence.save(snapshot)
        except Exception as error:
            logger.exception("Persistence gateway raised while saving graph")
            failure = PersistenceWriteFailed(str(error))
        else:
            failure = None if result.success else PersistenceWriteFailed(result.message or "save failed")

        with self._save_lock:
            self._last_save_error = failure
        if failure is not None:
            logger.warning("Graph save failed, in-memory state kept: %s", failure)

    @staticmethod
    def _resolve_styles(drafts: Sequence[NodeDraft], edge_styles: Sequence[EdgeStyle] | None) -> List[EdgeStyle]:
        if edge_styles is None:
            return [EdgeStyle() for _ in drafts]
        if len(edge_styles) != len(drafts):
            raise ValueError(f"Expected {len(drafts)} edge styles, got {len(edge_styles)}.")
        return list(edge_styles)

    @staticmethod
    def _max_numeric_id(snapshot: GraphSnapshot) -> int:
        numeric_ids = [int(node.id) for node in snapshot.nodes if node.id.isdecimal()]
        return max(numeric_ids, default=0)
