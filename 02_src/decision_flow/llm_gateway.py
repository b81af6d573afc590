"""Prediction gateway powered by LangGraph + a chat model."""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Tuple

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI
from langgraph.graph import END, START, StateGraph
from typing_extensions import TypedDict

from .config import Settings
from .errors import DecisionFlowError, GatewayUnavailable, MalformedOutcomeAnalysis, MalformedQuestionSet
from .prediction import QUESTION_COUNT, OutcomeAnalysis, PredictionGateway, validate_questions

logger = logging.getLogger(__name__)

QUESTIONS_SYSTEM_PROMPT = (
    "You are an empathetic AI assistant designed to help users think through their scenarios and situations.\n"
    "Generate exactly 5 thoughtful, open-ended questions that help you understand:\n"
    "1. The user's perspective and feelings about the situation\n"
    "2. The context and background that led to this scenario\n"
    "3. The user's goals, desires, or what they hope to achieve\n"
    "4. Any constraints, challenges, or obstacles they're facing\n"
    "5. What support, resources, or next steps might be most helpful\n"
    "Be supportive, avoid yes/no questions and make each question distinct.\n"
    'Return STRICT JSON only with shape: {"questions": ["...", "...", "...", "...", "..."]}'
)

OUTCOMES_SYSTEM_PROMPT = (
    "You are an expert decision analyst and strategic advisor with deep expertise in scenario planning "
    "and outcome prediction.\n"
    "Provide 2-3 specific, realistic outcomes for each of three categories: positive outcomes, "
    "negative outcomes, and neutral/mixed outcomes. Consider short-term and long-term implications and "
    "impact on relationships, finances, career and personal growth.\n"
    "Return STRICT JSON only with shape:\n"
    "{"
    '"analysis_summary":"...",'
    '"positive_outcomes":["..."],'
    '"negative_outcomes":["..."],'
    '"neutral_mixed_outcomes":["..."],'
    '"key_considerations":["..."],'
    '"recommendations":"..."'
    "}"
)


class PredictionState(TypedDict):
    task: str
    request: Dict[str, Any]
    messages: List[Tuple[str, str]]
    raw_text: str
    result: Any


class LangChainPredictionGateway(PredictionGateway):
    """Asks a chat model for clarifying questions and outcome analyses.

    Each request runs a small LangGraph workflow: build_prompt -> invoke_model
    -> parse_response. Client failures surface as ``GatewayUnavailable``;
    unusable model output surfaces as ``MalformedQuestionSet`` or
    ``MalformedOutcomeAnalysis``.
    """

    def __init__(self, settings: Settings, model: BaseChatModel | None = None) -> None:
        self._settings = settings
        self._model = model
        self._workflow = self._build_workflow()

    def ask_questions(self, topic: str) -> List[str]:
        return self._run("questions", {"scenario": topic})

    def predict_outcomes(self, prompt: str, decision: str | None = None) -> OutcomeAnalysis:
        return self._run("outcomes", {"prompt": prompt, "decision": decision})

    def _run(self, task: str, request: Dict[str, Any]) -> Any:
        try:
            final_state = self._workflow.invoke(
                {"task": task, "request": request, "messages": [], "raw_text": "", "result": None}
            )
        except DecisionFlowError:
            raise
        except Exception as error:
            raise GatewayUnavailable(f"Prediction request '{task}' failed: {error}") from error
        return final_state["result"]

    def _build_workflow(self):
        graph = StateGraph(PredictionState)
        graph.add_node("build_prompt", self._build_prompt)
        graph.add_node("invoke_model", self._invoke_model)
        graph.add_node("parse_response", self._parse_response)
        graph.add_edge(START, "build_prompt")
        graph.add_edge("build_prompt", "invoke_model")
        graph.add_edge("invoke_model", "parse_response")
        graph.add_edge("parse_response", END)
        return graph.compile()

    def _build_prompt(self, state: PredictionState) -> Dict[str, Any]:
        request = state["request"]
        if state["task"] == "questions":
            user_prompt = f'A user has shared the following scenario with you:\n"{request["scenario"]}"'
            return {"messages": [("system", QUESTIONS_SYSTEM_PROMPT), ("user", user_prompt)]}

        user_prompt = f'A user is considering the following situation/decision:\n"{request["prompt"]}"'
        if request.get("decision"):
            user_prompt += f'\nSpecifically, they are thinking about: "{request["decision"]}"'
        return {"messages": [("system", OUTCOMES_SYSTEM_PROMPT), ("user", user_prompt)]}

    def _invoke_model(self, state: PredictionState) -> Dict[str, Any]:
        model = self._get_model()
        response = model.invoke(state["messages"])
        response_metadata = getattr(response, "response_metadata", {}) or {}
        logger.debug(
            "Model %s answered %s request (finish_reason=%s)",
            response_metadata.get("model_name", self._settings.model_name),
            state["task"],
            response_metadata.get("finish_reason"),
        )
        return {"raw_text": self._to_text(response.content)}

    def _parse_response(self, state: PredictionState) -> Dict[str, Any]:
        parsers: Dict[str, Callable[[str], Any]] = {
            "questions": parse_questions,
            "outcomes": parse_outcome_analysis,
        }
        return {"result": parsers[state["task"]](state["raw_text"])}

    def _get_model(self) -> BaseChatModel:
        if self._model is not None:
            return self._model
        if not self._settings.openai_api_key:
            raise GatewayUnavailable("OPENAI_API_KEY is not set in environment/.env")
        self._model = ChatOpenAI(
            model=self._settings.model_name,
            temperature=self._settings.temperature,
            api_key=self._settings.openai_api_key,
            base_url=self._settings.openai_base_url,
            timeout=self._settings.request_timeout,
            max_retries=self._settings.max_retries,
        )
        return self._model

    @staticmethod
    def _to_text(content: Any) -> str:
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "\n".join(
                str(item["text"]) if isinstance(item, dict) and "text" in item else str(item) for item in content
            )
        return str(content)


def parse_questions(response_text: str) -> List[str]:
    payload = parse_json_object(response_text)
    if isinstance(payload, dict) and "questions" in payload:
        try:
            return validate_questions(payload["questions"])
        except MalformedQuestionSet as error:
            logger.warning("Model returned an invalid question list: %s", error)

    questions: List[str] = []
    for line in response_text.splitlines():
        if "?" not in line or len(questions) >= QUESTION_COUNT:
            continue
        question = re.sub(r"^\s*\d+\.?\s*", "", line)
        question = re.sub(r"^\s*-\s*", "", question)
        question = question.replace('"', "").strip().rstrip(",").strip()
        if question:
            questions.append(question)
    return validate_questions(questions)


def parse_outcome_analysis(response_text: str) -> OutcomeAnalysis:
    payload = parse_json_object(response_text)
    if payload is None:
        raise MalformedOutcomeAnalysis("Model response does not contain a JSON object.")
    return OutcomeAnalysis.from_payload(payload)


def parse_json_object(response_text: str) -> Any:
    text = strip_code_fence(response_text)
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", text, flags=re.DOTALL)
        if not match:
            return None
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            return None


def strip_code_fence(text: str) -> str:
    clean = text.strip()
    if clean.startswith("```"):
        clean = re.sub(r"^```(?:json)?\s*", "", clean)
        clean = re.sub(r"\s*```$", "", clean)
    return clean.strip()
