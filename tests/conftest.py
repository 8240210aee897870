"""Pytest fixtures for the chat enrichment pipeline."""
import pytest

from soc_chat.config import Settings
from soc_chat.enrichment import DemoEnrichmentService
from soc_chat.repository import InMemoryConversationRepository
from soc_chat.responder import CannedResponder
from soc_chat.service import ChatService


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def repository():
    return InMemoryConversationRepository()


@pytest.fixture
def chat_service(settings, repository, fake_sleep):
    return ChatService(
        settings=settings,
        repository=repository,
        enrichment=DemoEnrichmentService(latency=0.9, sleep=fake_sleep),
        responder=CannedResponder(latency=0.6, sleep=fake_sleep),
        sleep=fake_sleep,
    )
