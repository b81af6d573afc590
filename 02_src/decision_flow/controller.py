"""Gesture entry points for whatever renders the tree."""

import logging

from .graph_model import Edge, GraphSnapshot, Position
from .graph_store import GraphStore
from .workflow import WorkflowStateMachine

logger = logging.getLogger(__name__)


class FlowController:
    """Routes the three supported canvas gestures to the core.

    Dragging a node goes straight to the store; clicking a node opens a
    workflow session; selecting an edge only marks it. No other gesture
    mutates the tree.
    """

    def __init__(self, store: GraphStore, workflow: WorkflowStateMachine) -> None:
        self.store = store
        self.workflow = workflow

    def snapshot(self) -> GraphSnapshot:
        return self.store.current_snapshot()

    def on_node_drag(self, node_id: str, final_position: Position) -> GraphSnapshot:
        return self.store.reposition(node_id, final_position)

    def on_node_click(self, node_id: str) -> bool:
        started = self.workflow.click_node(node_id)
        if not started:
            logger.info("Workflow already open, click on node %s ignored", node_id)
        return started

    def on_edge_select(self, edge_id: str) -> Edge:
        return self.store.select_edge(edge_id)
