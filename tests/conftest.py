from typing import Callable, List, Tuple

import pytest

from decision_flow.graph_model import GraphSnapshot
from decision_flow.graph_store import GraphStore
from decision_flow.persistence import PersistenceGateway, SaveResult
from decision_flow.prediction import OutcomeAnalysis, PredictionGateway
from decision_flow.scheduling import InlineSaveDispatcher, Scheduler


class MemoryPersistence(PersistenceGateway):
    def __init__(self, snapshot: GraphSnapshot | None = None, fail: bool = False) -> None:
        self.stored = snapshot or GraphSnapshot()
        self.saved: List[GraphSnapshot] = []
        self.fail = fail

    def load(self) -> GraphSnapshot:
        return self.stored

    def save(self, snapshot: GraphSnapshot) -> SaveResult:
        self.saved.append(snapshot)
        if self.fail:
            return SaveResult(success=False, message="disk full")
        self.stored = snapshot
        return SaveResult(success=True)


class ManualScheduler(Scheduler):
    def __init__(self) -> None:
        self.pending: List[Tuple[float, Callable[[], None]]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> None:
        self.pending.append((delay, callback))

    def run_pending(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


class FakeGateway(PredictionGateway):
    def __init__(self, questions=None, analysis=None, question_error=None, outcome_error=None) -> None:
        self.questions = questions if questions is not None else [f"Question {i}?" for i in range(1, 6)]
        self.analysis = analysis or OutcomeAnalysis(
            summary="Summary",
            positive=("Good A", "Good B"),
            negative=("Bad A",),
            mixed=("Mixed A",),
        )
        self.question_error = question_error
        self.outcome_error = outcome_error
        self.topics: List[str] = []
        self.prompts: List[str] = []

    def ask_questions(self, topic: str):
        self.topics.append(topic)
        if self.question_error:
            raise self.question_error
        return self.questions

    def predict_outcomes(self, prompt: str, decision: str | None = None):
        self.prompts.append(prompt)
        if self.outcome_error:
            raise self.outcome_error
        return self.analysis


@pytest.fixture
def persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def store(persistence) -> GraphStore:
    return GraphStore(persistence, dispatcher=InlineSaveDispatcher())


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
