"""Prediction collaborator contract, outcome model and fallback values."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from .errors import MalformedOutcomeAnalysis, MalformedQuestionSet

QUESTION_COUNT = 5

DEFAULT_QUESTIONS: Tuple[str, ...] = (
    "How are you feeling about this situation right now?",
    "What led to this scenario - can you share some background context?",
    "What would an ideal outcome look like for you?",
    "What are the biggest challenges or obstacles you're currently facing?",
    "What kind of support or guidance would be most helpful for you right now?",
)


@dataclass(frozen=True)
class OutcomeAnalysis:
    summary: str = ""
    positive: Tuple[str, ...] = field(default_factory=tuple)
    negative: Tuple[str, ...] = field(default_factory=tuple)
    mixed: Tuple[str, ...] = field(default_factory=tuple)
    considerations: Tuple[str, ...] = field(default_factory=tuple)
    recommendation: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "OutcomeAnalysis":
        """Build from the wire form; every field is optional."""
        if not isinstance(payload, dict):
            raise MalformedOutcomeAnalysis(f"Outcome analysis must be an object, got {type(payload).__name__}.")
        return cls(
            summary=_text_field(payload, "analysis_summary"),
            positive=_list_field(payload, "positive_outcomes"),
            negative=_list_field(payload, "negative_outcomes"),
            mixed=_list_field(payload, "neutral_mixed_outcomes"),
            considerations=_list_field(payload, "key_considerations"),
            recommendation=_text_field(payload, "recommendations"),
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            "analysis_summary": self.summary,
            "positive_outcomes": list(self.positive),
            "negative_outcomes": list(self.negative),
            "neutral_mixed_outcomes": list(self.mixed),
            "key_considerations": list(self.considerations),
            "recommendations": self.recommendation,
        }


FALLBACK_ANALYSIS = OutcomeAnalysis(
    summary="Analysis of potential outcomes for your decision.",
    positive=(
        "You may experience personal growth and learning from taking action",
        "This decision could lead to new opportunities and connections",
        "Successfully navigating this choice may boost your confidence",
    ),
    negative=(
        "There may be unexpected challenges or setbacks along the way",
        "The decision might require more time, energy, or resources than anticipated",
        "Some relationships or current situations might be affected",
    ),
    mixed=(
        "The outcome will likely be a mix of positive and challenging experiences",
        "You may find that the result is different from what you initially expected",
        "The decision may lead to other choices and decisions down the road",
    ),
    considerations=(
        "Consider your values and long-term goals when making this decision",
        "Think about what support systems or resources you might need",
        "Evaluate your risk tolerance and backup plans",
    ),
    recommendation=(
        "Take time to reflect on your priorities, seek advice from trusted sources, and consider "
        "starting with small steps to test your decision before fully committing."
    ),
)


class PredictionGateway(ABC):
    @abstractmethod
    def ask_questions(self, topic: str) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def predict_outcomes(self, prompt: str, decision: str | None = None) -> OutcomeAnalysis:
        raise NotImplementedError


class StaticPredictionGateway(PredictionGateway):
    """Offline gateway answering with the built-in defaults."""

    def ask_questions(self, topic: str) -> List[str]:
        return list(DEFAULT_QUESTIONS)

    def predict_outcomes(self, prompt: str, decision: str | None = None) -> OutcomeAnalysis:
        return FALLBACK_ANALYSIS


def validate_questions(questions: Any) -> List[str]:
    if not isinstance(questions, Sequence) or isinstance(questions, str):
        raise MalformedQuestionSet(f"Questions must be a list, got {type(questions).__name__}.")
    if len(questions) != QUESTION_COUNT:
        raise MalformedQuestionSet(f"Expected {QUESTION_COUNT} questions, got {len(questions)}.")
    cleaned: List[str] = []
    for question in questions:
        if not isinstance(question, str) or not question.strip():
            raise MalformedQuestionSet(f"Invalid question entry: {question!r}")
        cleaned.append(question.strip())
    return cleaned


def _list_field(payload: Dict[str, Any], key: str) -> Tuple[str, ...]:
    value = payload.get(key)
    if value is None:
        return ()
    if not isinstance(value, list):
        raise MalformedOutcomeAnalysis(f"Field '{key}' must be a list.")
    items: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise MalformedOutcomeAnalysis(f"Field '{key}' must contain strings only.")
        if item.strip():
            items.append(item.strip())
    return tuple(items)


def _text_field(payload: Dict[str, Any], key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedOutcomeAnalysis(f"Field '{key}' must be a string.")
    return value.strip()
