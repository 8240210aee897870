from __future__ import annotations

import asyncio
import logging
from typing import Annotated, List, Optional

from semantic_kernel.agents import ChatCompletionAgent
from semantic_kernel.connectors.ai.open_ai import (
    AzureChatCompletion,
    OpenAIChatPromptExecutionSettings,
)
from semantic_kernel.functions import KernelArguments, kernel_function

from .classifier import classify
from .config import Settings
from .enrichment import EnrichmentService, Sleep
from .formatter import format_verdict
from .repository import ChatSession, Message


logger = logging.getLogger(__name__)

CANNED_REPLY = (
    "Thanks, I've noted your question about \"{topic}\". Based on the current "
    "alert queue and knowledge base, I recommend reviewing related alerts and "
    "the matching playbook. Paste an IP, URL, or file hash to run a threat-intel "
    "lookup, or escalate if this needs a human analyst."
)


class Responder:
    """Generic conversational reply for input that is not an IOC."""

    async def reply(self, session: ChatSession, question: str) -> str:
        raise NotImplementedError


class CannedResponder(Responder):
    def __init__(self, latency: float = 0.6, sleep: Optional[Sleep] = None) -> None:
        self._latency = latency
        self._sleep: Sleep = sleep or asyncio.sleep

    async def reply(self, session: ChatSession, question: str) -> str:
        await self._sleep(self._latency)
        topic = question.strip()
        if len(topic) > 60:
            topic = topic[:57] + "..."
        return CANNED_REPLY.format(topic=topic)


class ThreatIntelPlugin:
    def __init__(self, enrichment: EnrichmentService, strict_ipv4: bool = False) -> None:
        self._enrichment = enrichment
        self._strict_ipv4 = strict_ipv4

    @kernel_function(
        description="Looks up an IP address, URL, or file hash and returns its threat-intel verdict.",
        name="lookup_ioc",
    )
    async def lookup(
        self,
        indicator: Annotated[str, "The IPv4 address, http(s) URL, or MD5/SHA1/SHA256 hash to look up."],
    ) -> str:
        classified = classify(indicator, strict_ipv4=self._strict_ipv4)
        if not classified.kind.is_enrichable:
            return f"'{indicator}' is not an IP address, URL, or file hash."
        result = await self._enrichment.enrich(classified.raw_text, classified.kind)
        return format_verdict(classified.kind, result)


class AgentResponder(Responder):
    """Semantic Kernel agent over Azure OpenAI, with the IOC lookup as a tool."""

    def __init__(self, settings: Settings, enrichment: EnrichmentService) -> None:
        service = AzureChatCompletion(
            api_key=settings.azure_openai_api_key,
            endpoint=settings.azure_openai_endpoint,
            deployment_name=settings.azure_openai_chat_deployment_name,
            api_version=settings.azure_openai_api_version,
        )
        prompt_settings = OpenAIChatPromptExecutionSettings()

        self._agent = ChatCompletionAgent(
            service=service,
            name="Sentinel",
            instructions=(
                "You are a security operations assistant helping analysts triage alerts. "
                "Answer concisely, and use the lookup_ioc tool for any IP, URL, or hash."
            ),
            plugins=[ThreatIntelPlugin(enrichment, strict_ipv4=settings.strict_ipv4)],
            arguments=KernelArguments(prompt_settings),
        )
        self._max_history = settings.max_history_turns

    def _build_prompt(self, session: ChatSession, question: str) -> str:
        history: List[Message] = list(session.messages[-self._max_history * 2 :])
        transcript_lines: List[str] = []
        for m in history:
            role_cap = "User" if m.role == "user" else "Assistant"
            # the current question is already appended on the unknown path
            if m is history[-1] and m.role == "user" and m.content == question:
                continue
            transcript_lines.append(f"{role_cap}: {m.content}")
        transcript_lines.append(f"User: {question}")
        transcript_lines.append("Assistant:")
        return "\n".join(transcript_lines)

    async def reply(self, session: ChatSession, question: str) -> str:
        response = await self._agent.get_response(self._build_prompt(session, question))
        content = getattr(response, "content", None)
        if not isinstance(content, str):
            content = str(content if content is not None else response)
        return content


def build_responder(
    settings: Settings, enrichment: EnrichmentService, sleep: Optional[Sleep] = None
) -> Responder:
    if settings.agent_configured:
        logger.info("Using Azure OpenAI agent responder")
        return AgentResponder(settings, enrichment)
    logger.info("Azure OpenAI not configured; using canned responder")
    return CannedResponder(latency=settings.responder_latency_ms / 1000, sleep=sleep)


__all__ = [
    "CANNED_REPLY",
    "Responder",
    "CannedResponder",
    "ThreatIntelPlugin",
    "AgentResponder",
    "build_responder",
]
