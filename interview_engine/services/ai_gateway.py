"""AI Gateway: adapter boundary to the generative-text provider."""

import asyncio
import inspect
import json
import math
import re
import time
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as SchemaValidationError, field_validator

from ..models.enums import DifficultyLevel, InterviewType, QuestionCategory
from ..models.interview import MAX_FEEDBACK_ITEMS, Evaluation, FinalReport, Question
from ..models.profile import ParsedResume, UserProfile
from ..utils.exceptions import ConfigurationError, LLMProviderError, ResponseParsingError, ServiceUnavailableError
from ..utils.logging import get_logger, log_performance
from .configuration_manager import GatewayConfig
from .prompts import build_evaluation_prompt, build_question_prompt
from .scoring import average_answered_score

ChunkSink = Callable[[str], Union[None, Awaitable[None]]]

FALLBACK_QUESTION_TEXT = "Tell me about your experience with software development."

SHORT_ANSWER_EVALUATION = Evaluation(
    score=1,
    feedback="Answer too brief. Provide more details.",
    strengths=[],
    improvements=["Elaborate more", "Include examples"],
)

FALLBACK_EVALUATION = Evaluation(
    score=5,
    feedback="Could not evaluate. Try again.",
    strengths=["Attempted answer"],
    improvements=["Provide more detail"],
)

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class LLMProvider(ABC):
    """Abstract base class for generative-text providers."""

    def __init__(self, config: Dict[str, Any]):
        """Initialize LLM provider.

        Args:
            config: Provider configuration
        """
        self.config = config
        self.provider_name = config.get("name", "unknown")
        self.logger = get_logger(f"llm.provider.{self.provider_name}")

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the provider."""
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up provider resources."""
        pass

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Return the full completion for a prompt."""
        pass

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        """Yield the completion as text fragments.

        Providers without a native stream deliver the whole completion as one fragment.
        """
        yield await self.generate_text(prompt)


def create_provider(config: Dict[str, Any]) -> LLMProvider:
    """Create and initialize the provider named in the configuration."""
    provider_name = str(config.get("name", "")).lower()
    if provider_name == "gemini":
        from ..providers.gemini_provider import GeminiProvider
        provider = GeminiProvider(config)
        provider.initialize()
        return provider
    raise ConfigurationError(f"Unknown provider type: {provider_name}", config_key="gemini.name")


def clean_response_text(text: str) -> str:
    """Strip markdown fences and any prose around the outermost JSON object."""
    cleaned = _FENCE_RE.sub("", text or "").strip()
    if not cleaned.startswith("{"):
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start != -1 and end > start:
            cleaned = cleaned[start:end + 1]
    return cleaned


def parse_json_payload(text: str) -> Dict[str, Any]:
    """Parse untrusted provider output into a JSON object.

    Raises:
        ResponseParsingError: If the text is not a JSON object.
    """
    cleaned = clean_response_text(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParsingError(f"Provider returned invalid JSON: {e}", raw_text=text) from e
    if not isinstance(data, dict):
        raise ResponseParsingError("Provider returned JSON that is not an object", raw_text=text)
    return data


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [str(item).strip() for item in value if item is not None and str(item).strip()]
    return items[:MAX_FEEDBACK_ITEMS]


class GeneratedQuestionPayload(BaseModel):
    """Schema for a generated question."""

    model_config = ConfigDict(extra="ignore")

    text: str = Field(..., min_length=1)
    category: QuestionCategory = QuestionCategory.GENERAL
    difficulty: Optional[DifficultyLevel] = None

    @field_validator("text", mode="before")
    @classmethod
    def _strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, v):
        if v is None:
            return QuestionCategory.GENERAL
        try:
            return QuestionCategory(v)
        except ValueError:
            return QuestionCategory.GENERAL

    @field_validator("difficulty", mode="before")
    @classmethod
    def _known_difficulty(cls, v):
        if v is None:
            return None
        try:
            return DifficultyLevel(v)
        except ValueError:
            return None

    def to_question(self, requested_difficulty: DifficultyLevel) -> Question:
        return Question(text=self.text, category=self.category, difficulty=self.difficulty or requested_difficulty)


class EvaluationPayload(BaseModel):
    """Schema for an answer evaluation. Missing fields take neutral defaults."""

    model_config = ConfigDict(extra="ignore")

    score: int = 5
    feedback: str = "Answer evaluated."
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v):
        if v is None:
            return 5
        if isinstance(v, bool):
            raise ValueError("score must be a number")
        try:
            number = float(v)
        except (TypeError, ValueError):
            raise ValueError("score must be a number")
        if math.isnan(number):
            raise ValueError("score must be a number")
        return int(math.floor(min(10.0, max(0.0, number)) + 0.5))

    @field_validator("feedback", mode="before")
    @classmethod
    def _default_feedback(cls, v):
        if v is None or not str(v).strip():
            return "Answer evaluated."
        return str(v).strip()

    @field_validator("strengths", "improvements", mode="before")
    @classmethod
    def _truncate(cls, v):
        return _string_list(v)

    def to_evaluation(self) -> Evaluation:
        return Evaluation(
            score=self.score,
            feedback=self.feedback,
            strengths=self.strengths,
            improvements=self.improvements,
        )


def _parse_payload(model_cls, text: str):
    try:
        return model_cls.model_validate(parse_json_payload(text))
    except SchemaValidationError as e:
        raise ResponseParsingError(f"Provider response failed validation: {e}", raw_text=text) from e


class AIGateway:
    """Question generation, answer evaluation and session summaries.

    Every operation is total: provider failures, malformed output and timeouts
    resolve to a fixed fallback value instead of raising.
    """

    def __init__(self, provider: LLMProvider, config: Optional[GatewayConfig] = None):
        self.provider = provider
        self.config = config or GatewayConfig()
        self.logger = get_logger("ai_gateway")

    async def _with_retry(self, operation: str, call: Callable[[], Awaitable[str]]) -> str:
        """Run a provider call, retrying only on overload."""
        attempts = self.config.retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await call()
            except ServiceUnavailableError:
                if attempt >= attempts:
                    raise
                self.logger.warning(
                    f"{operation}: provider overloaded, retrying in {self.config.retry_delay}s "
                    f"(attempt {attempt}/{attempts})"
                )
                await asyncio.sleep(self.config.retry_delay)
        raise LLMProviderError(f"{operation}: no attempts made")

    async def _collect_stream(self, prompt: str, on_chunk: Optional[ChunkSink]) -> str:
        parts: List[str] = []
        try:
            async for chunk in self.provider.stream_text(prompt):
                parts.append(chunk)
                if on_chunk is not None:
                    result = on_chunk(chunk)
                    if inspect.isawaitable(result):
                        await result
        except ServiceUnavailableError as e:
            if parts:
                # Chunks already reached the sink; a retry would repeat them.
                raise LLMProviderError("Stream interrupted after partial output", provider_name=e.provider_name) from e
            raise
        return "".join(parts)

    def _fallback_question(self, difficulty: DifficultyLevel) -> Question:
        return Question(text=FALLBACK_QUESTION_TEXT, category=QuestionCategory.GENERAL, difficulty=difficulty)

    async def generate_question(
        self,
        interview_type: InterviewType,
        difficulty: DifficultyLevel,
        profile: Optional[UserProfile] = None,
        resume: Optional[ParsedResume] = None,
        question_number: int = 1,
        previous_questions: Optional[List[str]] = None,
    ) -> Question:
        """Generate one interview question; falls back to a generic question on any failure."""
        start_time = time.time()
        prompt = build_question_prompt(
            interview_type, difficulty, profile, resume, question_number, list(previous_questions or [])
        )
        outcome = "generated"
        try:
            text = await asyncio.wait_for(
                self._with_retry("generate_question", lambda: self.provider.generate_text(prompt)),
                timeout=self.config.operation_timeout,
            )
            question = _parse_payload(GeneratedQuestionPayload, text).to_question(difficulty)
        except asyncio.TimeoutError:
            self.logger.warning(f"Question generation timed out after {self.config.operation_timeout}s, using fallback")
            question, outcome = self._fallback_question(difficulty), "timeout"
        except Exception as e:
            self.logger.error(f"Question generation failed, using fallback: {e}", exc_info=True)
            question, outcome = self._fallback_question(difficulty), "fallback"

        log_performance(
            "ai_gateway.generate_question",
            time.time() - start_time,
            {"outcome": outcome, "question_number": question_number},
        )
        return question

    async def evaluate_answer(
        self,
        question: str,
        answer: str,
        category: Union[QuestionCategory, str] = QuestionCategory.GENERAL,
        difficulty: Union[DifficultyLevel, str] = DifficultyLevel.MEDIUM,
        on_chunk: Optional[ChunkSink] = None,
        stream: Optional[bool] = None,
    ) -> Evaluation:
        """Evaluate an answer.

        Args:
            question: Question text
            answer: Candidate answer
            category: Question category
            difficulty: Question difficulty
            on_chunk: Optional sink receiving raw output fragments as they arrive
            stream: Use the provider stream; defaults to True when a sink is given

        Returns:
            The parsed evaluation, the short-answer evaluation, or the fallback evaluation.
        """
        if len((answer or "").strip()) < self.config.min_answer_length:
            self.logger.info("Answer below minimum length, skipping provider call")
            return SHORT_ANSWER_EVALUATION.model_copy(deep=True)

        start_time = time.time()
        prompt = build_evaluation_prompt(question, answer, str(category), str(difficulty))
        use_stream = on_chunk is not None if stream is None else stream
        if use_stream:
            call = lambda: self._collect_stream(prompt, on_chunk)  # noqa: E731
        else:
            call = lambda: self.provider.generate_text(prompt)  # noqa: E731

        outcome = "evaluated"
        try:
            text = await asyncio.wait_for(self._with_retry("evaluate_answer", call), timeout=self.config.operation_timeout)
            evaluation = _parse_payload(EvaluationPayload, text).to_evaluation()
        except asyncio.TimeoutError:
            self.logger.warning(f"Answer evaluation timed out after {self.config.operation_timeout}s, using fallback")
            evaluation, outcome = FALLBACK_EVALUATION.model_copy(deep=True), "timeout"
        except Exception as e:
            self.logger.error(f"Answer evaluation failed, using fallback: {e}", exc_info=True)
            evaluation, outcome = FALLBACK_EVALUATION.model_copy(deep=True), "fallback"

        log_performance(
            "ai_gateway.evaluate_answer",
            time.time() - start_time,
            {"outcome": outcome, "streamed": use_stream},
        )
        return evaluation

    def summarize_session(self, answered_questions: List[Question]) -> FinalReport:
        """Qualitative report banded on the mean answered score. Category scores are left empty."""
        start_time = time.time()
        average = average_answered_score(answered_questions)
        if average is None:
            report = FinalReport(
                strengths=["Completed interview"],
                weaknesses=["No answers provided"],
                recommendations=["Try answering next time"],
            )
        else:
            report = FinalReport(
                strengths=["Strong performance"] if average >= 7 else ["Completed interview"],
                weaknesses=["Needs improvement"] if average < 5 else [],
                recommendations=[
                    "Focus on fundamentals" if average < 6 else "Keep practicing",
                    "Review challenging questions",
                ],
            )

        log_performance("ai_gateway.summarize_session", time.time() - start_time, {"average_score": average})
        return report
