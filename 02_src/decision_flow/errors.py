"""Error taxonomy for graph, workflow and gateway faults."""


class DecisionFlowError(Exception):
    """Base class for every error raised by the package."""


class InvalidParent(DecisionFlowError):
    def __init__(self, parent_id: str) -> None:
        super().__init__(f"Unknown parent node: {parent_id}")
        self.parent_id = parent_id


class UnknownNode(DecisionFlowError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Unknown node: {node_id}")
        self.node_id = node_id


class UnknownEdge(DecisionFlowError):
    def __init__(self, edge_id: str) -> None:
        super().__init__(f"Unknown edge: {edge_id}")
        self.edge_id = edge_id


class GraphNotEmpty(DecisionFlowError):
    def __init__(self, node_count: int) -> None:
        super().__init__(f"Root can only be created on an empty graph (found {node_count} nodes).")
        self.node_count = node_count


class IllegalTransition(DecisionFlowError):
    def __init__(self, event: str, phase: str) -> None:
        super().__init__(f"Event '{event}' is not allowed in phase '{phase}'.")
        self.event = event
        self.phase = phase


class MalformedQuestionSet(DecisionFlowError):
    pass


class MalformedOutcomeAnalysis(DecisionFlowError):
    pass


class GatewayUnavailable(DecisionFlowError):
    pass


class PersistenceWriteFailed(DecisionFlowError):
    pass


class PersistenceReadFailed(DecisionFlowError):
    pass
