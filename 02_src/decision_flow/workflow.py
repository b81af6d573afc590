"""Workflow that turns a scenario or a clicked node into new outcome nodes.

The session moves through one phase value at a time::

    Idle -> AwaitingScenario -> AwaitingAnswer(0..4) -> Predicting -> ShowingOutcome -> Idle

``AwaitingScenario``, ``AwaitingAnswer`` and ``Predicting`` carry a ``loading``
flag while a prediction request is outstanding. Front-ends render their
dialogs from the current phase and forward user input to the event methods
below.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, ClassVar, List, Union

from .errors import GatewayUnavailable, IllegalTransition, MalformedOutcomeAnalysis, MalformedQuestionSet, UnknownNode
from .graph_model import EdgeStyle, GraphSnapshot, NodeDraft
from .graph_store import GraphStore
from .prediction import (
    DEFAULT_QUESTIONS,
    FALLBACK_ANALYSIS,
    QUESTION_COUNT,
    OutcomeAnalysis,
    PredictionGateway,
    validate_questions,
)
from .scheduling import Scheduler, ThreadingScheduler

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1


@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "idle"


@dataclass(frozen=True)
class AwaitingScenario:
    name: ClassVar[str] = "awaiting_scenario"
    loading: bool = False


@dataclass(frozen=True)
class AwaitingAnswer:
    name: ClassVar[str] = "awaiting_answer"
    index: int = 0
    loading: bool = False


@dataclass(frozen=True)
class Predicting:
    name: ClassVar[str] = "predicting"
    loading: bool = True


@dataclass(frozen=True)
class ShowingOutcome:
    name: ClassVar[str] = "showing_outcome"
    analysis: OutcomeAnalysis = FALLBACK_ANALYSIS


Phase = Union[Idle, AwaitingScenario, AwaitingAnswer, Predicting, ShowingOutcome]

IDLE = Idle()

PhaseListener = Callable[[Phase], None]


@dataclass
class WorkflowSession:
    anchor_node_id: str | None
    topic: str = ""
    questions: List[str] = field(default_factory=list)
    answers: List[str] = field(default_factory=list)
    outcome_analysis: OutcomeAnalysis | None = None
    phase: Phase = IDLE
    mandatory: bool = False

    @property
    def current_question(self) -> str | None:
        if isinstance(self.phase, AwaitingAnswer) and self.phase.index < len(self.questions):
            return self.questions[self.phase.index]
        return None


def build_prediction_prompt(topic: str, answers: List[str]) -> str:
    return f"{topic}. Additional context: {' '.join(answers)}"


class WorkflowStateMachine:
    def __init__(
        self,
        store: GraphStore,
        gateway: PredictionGateway,
        scheduler: Scheduler | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._scheduler = scheduler or ThreadingScheduler()
        self._debounce_seconds = debounce_seconds
        self._session: WorkflowSession | None = None
        self._prompt_scheduled = False
        self._listeners: List[PhaseListener] = []
        self._store.subscribe(self._on_snapshot)
        self._on_snapshot(store.current_snapshot())

    @property
    def session(self) -> WorkflowSession | None:
        return self._session

    @property
    def phase(self) -> Phase:
        return self._session.phase if self._session else IDLE

    def subscribe(self, listener: PhaseListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def click_node(self, node_id: str) -> bool:
        if self._session is not None:
            logger.debug("Ignoring click on node %s while a session is active", node_id)
            return False
        node = self._store.current_snapshot().node(node_id)
        if node is None:
            raise UnknownNode(node_id)

        self._session = WorkflowSession(anchor_node_id=node.id, topic=node.label)
        self._set_phase(AwaitingAnswer(index=0, loading=True))
        self._session.questions = self._fetch_questions(node.label)
        self._set_phase(AwaitingAnswer(index=0))
        return True

    def submit_scenario(self, text: str) -> bool:
        phase = self._require("submit_scenario", AwaitingScenario)
        if phase.loading:
            raise IllegalTransition("submit_scenario", f"{phase.name}.loading")
        scenario = text.strip()
        if not scenario:
            return False

        session = self._session
        session.topic = scenario
        self._set_phase(AwaitingScenario(loading=True))
        session.questions = self._fetch_questions(scenario)
        self._set_phase(AwaitingAnswer(index=0))
        return True

    def submit_answer(self, text: str) -> bool:
        phase = self._require("submit_answer", AwaitingAnswer)
        if phase.loading:
            raise IllegalTransition("submit_answer", f"{phase.name}.loading")
        answer = text.strip()
        if not answer:
            return False

        session = self._session
        session.answers.append(answer)
        if phase.index < QUESTION_COUNT - 1:
            self._set_phase(AwaitingAnswer(index=phase.index + 1))
            return True

        self._set_phase(Predicting())
        analysis = self._fetch_outcomes(build_prediction_prompt(session.topic, session.answers))
        session.outcome_analysis = analysis
        self._set_phase(ShowingOutcome(analysis=analysis))
        return True

    def confirm(self) -> GraphSnapshot:
        phase = self._require("confirm", ShowingOutcome)
        session = self._session
        analysis = phase.analysis

        drafts = [NodeDraft(label=label) for label in (*analysis.positive, *analysis.negative, *analysis.mixed)]
        styles = [EdgeStyle(emphasized=True) for _ in analysis.positive]
        styles += [EdgeStyle(emphasized=False) for _ in (*analysis.negative, *analysis.mixed)]

        if session.anchor_node_id is None:
            snapshot = self._store.create_root(NodeDraft(label=session.topic), drafts, styles)
        else:
            snapshot = self._store.insert_children(session.anchor_node_id, drafts, styles)
        logger.info("Added %d outcome nodes for '%s'", len(drafts), session.topic)
        self._discard()
        return snapshot

    def start_over(self) -> None:
        self._require("start_over", ShowingOutcome)
        self._discard()

    def cancel(self) -> bool:
        session = self._session
        if session is None:
            return False
        if getattr(session.phase, "loading", False):
            logger.debug("Cannot cancel while a request is outstanding")
            return False
        if session.mandatory and isinstance(session.phase, (AwaitingScenario, AwaitingAnswer)):
            logger.debug("First node is required, cancel refused")
            return False
        self._discard()
        return True

    def _fetch_questions(self, topic: str) -> List[str]:
        try:
            return validate_questions(self._gateway.ask_questions(topic))
        except (MalformedQuestionSet, GatewayUnavailable) as error:
            logger.warning("Falling back to default questions: %s", error)
        except Exception:
            logger.exception("Question request failed, falling back to default questions")
        return list(DEFAULT_QUESTIONS)

    def _fetch_outcomes(self, prompt: str) -> OutcomeAnalysis:
        try:
            analysis = self._gateway.predict_outcomes(prompt)
            if not isinstance(analysis, OutcomeAnalysis):
                raise MalformedOutcomeAnalysis(f"Unexpected analysis type {type(analysis).__name__}.")
            return analysis
        except (MalformedOutcomeAnalysis, GatewayUnavailable) as error:
            logger.warning("Falling back to default outcome analysis: %s", error)
        except Exception:
            logger.exception("Outcome prediction failed, falling back to default analysis")
        return FALLBACK_ANALYSIS

    def _on_snapshot(self, snapshot: GraphSnapshot) -> None:
        if snapshot.is_empty and self._session is None and not self._prompt_scheduled:
            self._prompt_scheduled = True
            self._scheduler.call_later(self._debounce_seconds, self._open_scenario_prompt)

    def _open_scenario_prompt(self) -> None:
        self._prompt_scheduled = False
        if self._session is not None or not self._store.current_snapshot().is_empty:
            return
        self._session = WorkflowSession(anchor_node_id=None, mandatory=True)
        self._set_phase(AwaitingScenario())

    def _discard(self) -> None:
        self._session = None
        self._notify(IDLE)
        self._on_snapshot(self._store.current_snapshot())

    def _require(self, event: str, phase_type: type):
        phase = self.phase
        if not isinstance(phase, phase_type):
            raise IllegalTransition(event, phase.name)
        return phase

    def _set_phase(self, phase: Phase) -> None:
        self._session.phase = phase
        self._notify(phase)

    def _notify(self, phase: Phase) -> None:
        for listener in list(self._listeners):
            listener(phase)
