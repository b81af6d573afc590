"""Runtime settings read from the environment and an optional .env file."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_GRAPH_PATH = "03_data/node_data/nodes.json"


@dataclass(frozen=True)
class Settings:
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    model_name: str = DEFAULT_MODEL
    temperature: float = 0.7
    request_timeout: float = 30.0
    max_retries: int = 1
    graph_path: str = DEFAULT_GRAPH_PATH
    spacing: float = 200.0
    debounce_seconds: float = 0.1


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        model_name=os.getenv("OPENAI_MODEL", DEFAULT_MODEL),
        temperature=_env_number("FLOW_TEMPERATURE", 0.7),
        request_timeout=_env_number("FLOW_REQUEST_TIMEOUT", 30.0),
        max_retries=int(_env_number("FLOW_MAX_RETRIES", 1)),
        graph_path=os.getenv("FLOW_GRAPH_PATH", DEFAULT_GRAPH_PATH),
        spacing=_env_number("FLOW_SPACING", 200.0),
        debounce_seconds=_env_number("FLOW_DEBOUNCE_SECONDS", 0.1),
    )


def _env_number(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as error:
        raise ValueError(f"{name} must be a number, got {raw!r}") from error
