"""Core package for the interactive decision flow tree."""

from .controller import FlowController
from .errors import (
    DecisionFlowError,
    GatewayUnavailable,
    GraphNotEmpty,
    IllegalTransition,
    InvalidParent,
    MalformedOutcomeAnalysis,
    MalformedQuestionSet,
    PersistenceReadFailed,
    PersistenceWriteFailed,
    UnknownEdge,
    UnknownNode,
)
from .graph_model import Edge, EdgeStyle, GraphSnapshot, Node, NodeDraft, NodeKind, Position
from .graph_store import GraphStore
from .layout import ROOT_POSITION, layout_children
from .persistence import JsonFilePersistence, PersistenceGateway, SaveResult
from .prediction import DEFAULT_QUESTIONS, FALLBACK_ANALYSIS, OutcomeAnalysis, PredictionGateway
from .workflow import WorkflowSession, WorkflowStateMachine

__all__ = [
    "Position",
    "Node",
    "NodeKind",
    "NodeDraft",
    "Edge",
    "EdgeStyle",
    "GraphSnapshot",
    "GraphStore",
    "layout_children",
    "ROOT_POSITION",
    "PersistenceGateway",
    "JsonFilePersistence",
    "SaveResult",
    "PredictionGateway",
    "OutcomeAnalysis",
    "DEFAULT_QUESTIONS",
    "FALLBACK_ANALYSIS",
    "WorkflowSession",
    "WorkflowStateMachine",
    "FlowController",
    "DecisionFlowError",
    "InvalidParent",
    "UnknownNode",
    "UnknownEdge",
    "GraphNotEmpty",
    "IllegalTransition",
    "MalformedQuestionSet",
    "MalformedOutcomeAnalysis",
    "GatewayUnavailable",
    "PersistenceWriteFailed",
    "PersistenceReadFailed",
]
