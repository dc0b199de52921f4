"""Shared fixtures: a scripted provider and a fully wired orchestrator."""

import asyncio
import inspect
import json
from typing import Any, AsyncIterator, List, Optional

import pytest

from interview_engine.agents.orchestrator_agent import SessionOrchestrator
from interview_engine.models.profile import ParsedResume, UserProfile
from interview_engine.services.ai_gateway import AIGateway, LLMProvider
from interview_engine.services.configuration_manager import GatewayConfig
from interview_engine.services.directory_service import InMemoryDirectory
from interview_engine.services.storage_manager import StorageManager
from interview_engine.utils.exceptions import LLMProviderError

CATEGORIES = ["DSA", "System Design", "Behavioral", "Technical", "General"]


def question_json(text: str, category: str = "DSA", difficulty: Optional[str] = "medium") -> str:
    payload = {"text": text, "category": category}
    if difficulty is not None:
        payload["difficulty"] = difficulty
    return json.dumps(payload)


def evaluation_json(score: Any = 8, feedback: str = "Solid answer.", strengths=None, improvements=None) -> str:
    return json.dumps({
        "score": score,
        "feedback": feedback,
        "strengths": strengths if strengths is not None else ["Clear structure"],
        "improvements": improvements if improvements is not None else ["Mention trade-offs"],
    })


class ScriptedProvider(LLMProvider):
    """Provider returning queued responses.

    A queued item may be a string, an exception instance (raised) or a callable
    (sync or async) taking the prompt. When the queue is empty, ``responder`` is used.
    """

    def __init__(self, chunk_size: int = 7):
        super().__init__({"name": "scripted"})
        self.responses: List[Any] = []
        self.responder = None
        self.chunk_size = chunk_size
        self.calls: List[str] = []
        self.stream_calls = 0
        self.cleaned_up = False

    def initialize(self) -> None:
        pass

    async def cleanup(self) -> None:
        self.cleaned_up = True

    def queue(self, *responses: Any) -> None:
        self.responses.extend(responses)

    async def _next(self, prompt: str) -> str:
        self.calls.append(prompt)
        if self.responses:
            item = self.responses.pop(0)
        elif self.responder is not None:
            item = self.responder
        else:
            raise LLMProviderError("No scripted response left", provider_name=self.provider_name)

        if isinstance(item, BaseException):
            raise item
        if callable(item):
            result = item(prompt)
            return await result if inspect.isawaitable(result) else result
        return item

    async def generate_text(self, prompt: str) -> str:
        return await self._next(prompt)

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        self.stream_calls += 1
        text = await self._next(prompt)
        for start in range(0, len(text), self.chunk_size):
            yield text[start:start + self.chunk_size]


class AutoResponder:
    """Answers question prompts with distinct questions and evaluation prompts with a fixed score."""

    def __init__(self, score: int = 8, delay: float = 0.0):
        self.score = score
        self.delay = delay
        self.questions_generated = 0

    async def __call__(self, prompt: str) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if "Evaluate this interview answer" in prompt:
            return evaluation_json(score=self.score)
        category = CATEGORIES[self.questions_generated % len(CATEGORIES)]
        self.questions_generated += 1
        return question_json(f"Scripted question {self.questions_generated}?", category=category)


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(retry_attempts=3, retry_delay=0.0, operation_timeout=2.0, min_answer_length=10)


@pytest.fixture
def gateway(provider, gateway_config) -> AIGateway:
    return AIGateway(provider, gateway_config)


@pytest.fixture
def directory() -> InMemoryDirectory:
    directory = InMemoryDirectory()
    directory.add_user(
        "alice",
        profile=UserProfile(targetRole="Backend Engineer", experience="2 years"),
        resume=ParsedResume(skills=["Python", "PostgreSQL"]),
        token="alice-token",
    )
    directory.add_user("bob", profile=UserProfile(targetRole="Frontend Engineer"), token="bob-token")
    return directory


@pytest.fixture
async def storage_manager() -> StorageManager:
    manager = StorageManager("memory")
    await manager.initialize()
    return manager


@pytest.fixture
async def orchestrator(gateway, storage_manager, directory) -> SessionOrchestrator:
    orchestrator = SessionOrchestrator(gateway, storage_manager, directory, directory)
    await orchestrator.initialize()
    return orchestrator


@pytest.fixture
def auto_responder(provider) -> AutoResponder:
    responder = AutoResponder()
    provider.responder = responder
    return responder
