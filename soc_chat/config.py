from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


# Load environment variables from a local .env if present (harmless in containers)
load_dotenv()


@dataclass(frozen=True)
class Settings:
    enrichment_latency_ms: int = 900
    enrichment_timeout_s: float = 10.0
    enrichment_max_attempts: int = 3
    enrichment_backoff_s: float = 0.5
    responder_latency_ms: int = 600
    question_min_length: int = 8
    strict_ipv4: bool = False
    max_history_turns: int = 10
    log_level: str = "INFO"
    # Azure OpenAI (optional; enables the agent-backed responder)
    azure_openai_endpoint: Optional[str] = None
    azure_openai_api_key: Optional[str] = None
    azure_openai_chat_deployment_name: Optional[str] = None
    azure_openai_api_version: Optional[str] = None

    @property
    def agent_configured(self) -> bool:
        return bool(
            self.azure_openai_endpoint
            and self.azure_openai_api_key
            and self.azure_openai_chat_deployment_name
        )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def get_settings() -> Settings:
    endpoint = os.getenv("AZURE_OPENAI_ENDPOINT") or os.getenv("AZURE_OPEN_AI__ENDPOINT")
    api_key = os.getenv("AZURE_OPENAI_API_KEY") or os.getenv("AZURE_OPEN_AI__API_KEY")
    deployment = os.getenv("AZURE_OPENAI_CHAT_DEPLOYMENT_NAME") or os.getenv(
        "AZURE_OPEN_AI__CHAT_COMPLETION_DEPLOYMENT_NAME"
    )

    settings = Settings(
        enrichment_latency_ms=_int_env("ENRICHMENT_LATENCY_MS", 900),
        enrichment_timeout_s=_float_env("ENRICHMENT_TIMEOUT_S", 10.0),
        enrichment_max_attempts=_int_env("ENRICHMENT_MAX_ATTEMPTS", 3),
        enrichment_backoff_s=_float_env("ENRICHMENT_BACKOFF_S", 0.5),
        responder_latency_ms=_int_env("RESPONDER_LATENCY_MS", 600),
        question_min_length=_int_env("QUESTION_MIN_LENGTH", 8),
        strict_ipv4=_bool_env("STRICT_IPV4", False),
        max_history_turns=_int_env("MAX_HISTORY_TURNS", 10),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        azure_openai_endpoint=endpoint,
        azure_openai_api_key=api_key,
        azure_openai_chat_deployment_name=deployment,
        azure_openai_api_version=os.getenv("AZURE_OPENAI_API_VERSION"),
    )

    negative = [
        name
        for name, value in {
            "ENRICHMENT_LATENCY_MS": settings.enrichment_latency_ms,
            "ENRICHMENT_TIMEOUT_S": settings.enrichment_timeout_s,
            "ENRICHMENT_BACKOFF_S": settings.enrichment_backoff_s,
            "RESPONDER_LATENCY_MS": settings.responder_latency_ms,
            "QUESTION_MIN_LENGTH": settings.question_min_length,
        }.items()
        if value < 0
    ]
    if negative:
        raise RuntimeError(
            "Environment variables must not be negative: " + ", ".join(negative)
        )
    if settings.enrichment_max_attempts < 1:
        raise RuntimeError("ENRICHMENT_MAX_ATTEMPTS must be at least 1")
    if settings.enrichment_latency_ms / 1000 >= settings.enrichment_timeout_s:
        raise RuntimeError(
            "ENRICHMENT_LATENCY_MS must be below ENRICHMENT_TIMEOUT_S, "
            "otherwise every lookup times out"
        )

    return settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
