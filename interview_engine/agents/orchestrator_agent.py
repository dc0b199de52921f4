"""Session orchestrator: the interview state machine over persisted sessions."""

import math
import time
from typing import Any, Optional, Type, TypeVar

from ..models.base import utcnow
from ..models.enums import DifficultyLevel, InterviewDuration, InterviewType, SessionStatus
from ..models.interview import SKIPPED_ANSWER, Evaluation, InterviewSession
from ..models.results import AnswerResult, CompletionResult, NextQuestionResult, SkipResult, StartResult
from ..services.ai_gateway import AIGateway, ChunkSink
from ..services.directory_service import ProfileProvider, ResumeProvider
from ..services.scoring import calculate_overall_score, category_breakdown
from ..services.storage_manager import StorageManager
from ..utils.exceptions import InvalidStateError, ResourceNotFoundError, ValidationError
from ..utils.logging import log_performance
from .base_agent import BaseAgent

E = TypeVar("E")


def _skipped_evaluation() -> Evaluation:
    return Evaluation(
        score=0,
        feedback="Question was skipped",
        strengths=[],
        improvements=["Answer the question to get feedback"],
    )


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", field_name=field_name)
    return value.strip()


def _parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name}: {value!r} (expected one of: {allowed})", field_name=field_name)


def _parse_time_spent(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value) or value < 0:
        raise ValidationError("timeSpent must be a non-negative number", field_name="time_spent")
    if math.isinf(value):
        raise ValidationError("timeSpent must be finite", field_name="time_spent")
    return int(math.floor(value + 0.5))


class SessionOrchestrator(BaseAgent):
    """Drives the start / answer / next / skip / pause / resume / complete lifecycle.

    Every mutating operation loads the session through an owner-scoped query,
    holds the per-session lock for the whole read-modify-write cycle, and saves
    with a version check.
    """

    def __init__(
        self,
        gateway: AIGateway,
        storage_manager: StorageManager,
        profile_provider: ProfileProvider,
        resume_provider: ResumeProvider,
    ):
        """Initialize the orchestrator.

        Args:
            gateway: AI gateway used for generation and evaluation.
            storage_manager: Session store.
            profile_provider: Read-only user profile lookups.
            resume_provider: Read-only parsed resume lookups.
        """
        super().__init__("SessionOrchestrator")
        self.gateway = gateway
        self.storage_manager = storage_manager
        self.profile_provider = profile_provider
        self.resume_provider = resume_provider

    async def _initialize_resources(self) -> None:
        await self.storage_manager.initialize()

    async def _cleanup_resources(self) -> None:
        await self.gateway.provider.cleanup()
        await self.storage_manager.cleanup()

    async def _load_owned(self, session_id: str, user_id: str) -> InterviewSession:
        session = await self.storage_manager.load_session(session_id, user_id)
        if session is None:
            raise ResourceNotFoundError("Session not found", resource_type="session", resource_id=session_id)
        return session

    @staticmethod
    def _require_status(session: InterviewSession, status: SessionStatus, operation: str) -> None:
        if session.status != status:
            raise InvalidStateError(
                f"Cannot {operation} a session that is {session.status.value}",
                session_id=session.session_id,
                status=session.status.value,
            )

    @staticmethod
    def _require_not_terminal(session: InterviewSession, operation: str) -> None:
        if session.status.is_terminal:
            raise InvalidStateError(
                f"Cannot {operation} a session that is {session.status.value}",
                session_id=session.session_id,
                status=session.status.value,
            )

    async def start(
        self,
        user_id: str,
        interview_type: Any,
        difficulty: Any,
        duration: Any = InterviewDuration.STANDARD,
    ) -> StartResult:
        """Create a session holding its first generated question."""
        start_time = time.time()
        user_id = _require_text(user_id, "userId")
        interview_type = _parse_enum(InterviewType, interview_type, "type")
        difficulty = _parse_enum(DifficultyLevel, difficulty, "difficulty")
        duration = _parse_enum(InterviewDuration, duration, "duration")

        profile = await self.profile_provider.get_profile(user_id)
        if profile is None:
            raise ResourceNotFoundError("User not found", resource_type="user", resource_id=user_id)

        resume = await self.resume_provider.get_resume(user_id)
        if resume is None and interview_type == InterviewType.ROLE_SPECIFIC:
            raise ResourceNotFoundError(
                "Resume required for role-specific interviews", resource_type="resume", resource_id=user_id
            )

        session = InterviewSession(
            user_id=user_id,
            type=interview_type,
            difficulty=difficulty,
            duration=duration,
            total_questions=duration.total_questions,
        )
        self.bind_session(session.session_id)

        question = await self.gateway.generate_question(interview_type, difficulty, profile, resume, 1, [])
        session.append_question(question)

        async with self.storage_manager.session_lock(session.session_id):
            session = await self.storage_manager.create_session(session)

        self.log_operation("start", {
            "session_id": session.session_id,
            "interview_type": interview_type.value,
            "total_questions": session.total_questions,
        })
        log_performance("orchestrator.start", time.time() - start_time)
        return StartResult(
            session_id=session.session_id,
            question=question.prompt_view(),
            question_number=1,
            total_questions=session.total_questions,
        )

    async def submit_answer(
        self,
        user_id: str,
        session_id: str,
        question_id: str,
        answer: str,
        time_spent: Any = 0,
        on_chunk: Optional[ChunkSink] = None,
    ) -> AnswerResult:
        """Evaluate and record an answer.

        Args:
            user_id: Caller's user id
            session_id: Session id
            question_id: Id of the question being answered
            answer: Answer text
            time_spent: Seconds spent on the question
            on_chunk: Optional sink for incremental evaluation output

        Returns:
            The evaluation and whether the answered count has reached the question total.
        """
        start_time = time.time()
        user_id = _require_text(user_id, "userId")
        session_id = _require_text(session_id, "sessionId")
        question_id = _require_text(question_id, "questionId")
        answer = _require_text(answer, "answer")
        if answer == SKIPPED_ANSWER:
            raise ValidationError("answer uses a reserved value", field_name="answer")
        time_spent = _parse_time_spent(time_spent)
        self.bind_session(session_id)

        async with self.storage_manager.session_lock(session_id):
            session = await self._load_owned(session_id, user_id)
            self._require_status(session, SessionStatus.IN_PROGRESS, "answer questions in")

            question = session.find_question(question_id)
            if question is None:
                raise ResourceNotFoundError("Question not found", resource_type="question", resource_id=question_id)
            if question.answer is not None:
                raise InvalidStateError("Question has already been answered", session_id=session_id, status=session.status.value)

            evaluation = await self.gateway.evaluate_answer(
                question.text, answer, question.category, question.difficulty, on_chunk=on_chunk
            )
            question.answer = answer
            question.evaluation = evaluation
            question.time_spent = time_spent
            question.answered_at = utcnow()
            session.recompute_time_spent()

            session = await self.storage_manager.save_session(session)

        is_complete = session.answered_count >= session.total_questions
        self.log_operation("submit_answer", {
            "session_id": session_id,
            "question_id": question_id,
            "score": evaluation.score,
            "is_complete": is_complete,
        })
        log_performance("orchestrator.submit_answer", time.time() - start_time)
        return AnswerResult(evaluation=evaluation, is_complete=is_complete, session_id=session_id)

    async def next_question(self, user_id: str, session_id: str) -> NextQuestionResult:
        """Generate and append the next question."""
        start_time = time.time()
        user_id = _require_text(user_id, "userId")
        session_id = _require_text(session_id, "sessionId")
        self.bind_session(session_id)

        async with self.storage_manager.session_lock(session_id):
            session = await self._load_owned(session_id, user_id)
            self._require_status(session, SessionStatus.IN_PROGRESS, "request questions for")
            if not session.can_ask_more_questions():
                raise InvalidStateError(
                    "All questions have been asked", session_id=session_id, status=session.status.value
                )

            profile = await self.profile_provider.get_profile(user_id)
            resume = await self.resume_provider.get_resume(user_id)
            # Only answered questions feed de-duplication; skipped ones may be asked again.
            previous = [q.text for q in session.answered_questions]
            question_number = len(session.questions) + 1

            question = await self.gateway.generate_question(
                session.type, session.difficulty, profile, resume, question_number, previous
            )
            session.append_question(question)
            session = await self.storage_manager.save_session(session)

        self.log_operation("next_question", {"session_id": session_id, "question_number": question_number})
        log_performance("orchestrator.next_question", time.time() - start_time)
        return NextQuestionResult(
            question=question.prompt_view(),
            question_number=question_number,
            total_questions=session.total_questions,
        )

    async def skip(self, user_id: str, session_id: str) -> SkipResult:
        """Mark the current question as skipped and advance."""
        user_id = _require_text(user_id, "userId")
        session_id = _require_text(session_id, "sessionId")
        self.bind_session(session_id)

        async with self.storage_manager.session_lock(session_id):
            session = await self._load_owned(session_id, user_id)
            self._require_not_terminal(session, "skip questions in")

            index = session.effective_skip_index()
            if index is None:
                raise InvalidStateError("No question to skip", session_id=session_id, status=session.status.value)

            question = session.questions[index]
            if question.is_answered:
                raise InvalidStateError(
                    "Current question has already been answered", session_id=session_id, status=session.status.value
                )

            question.answer = SKIPPED_ANSWER
            question.evaluation = _skipped_evaluation()
            question.answered_at = utcnow()
            session.current_question_index = index + 1
            session = await self.storage_manager.save_session(session)

        is_complete = session.current_question_index >= session.total_questions
        self.log_operation("skip", {"session_id": session_id, "question_index": index, "is_complete": is_complete})
        return SkipResult(is_complete=is_complete, session_id=session_id)

    async def pause(self, user_id: str, session_id: str) -> InterviewSession:
        return await self._set_status(user_id, session_id, SessionStatus.PAUSED, "pause")

    async def resume(self, user_id: str, session_id: str) -> InterviewSession:
        return await self._set_status(user_id, session_id, SessionStatus.IN_PROGRESS, "resume")

    async def _set_status(self, user_id: str, session_id: str, status: SessionStatus, operation: str) -> InterviewSession:
        user_id = _require_text(user_id, "userId")
        session_id = _require_text(session_id, "sessionId")
        self.bind_session(session_id)

        async with self.storage_manager.session_lock(session_id):
            session = await self._load_owned(session_id, user_id)
            self._require_not_terminal(session, operation)
            session.status = status
            session = await self.storage_manager.save_session(session)

        self.log_operation(operation, {"session_id": session_id, "status": status.value})
        return session

    async def complete(self, user_id: str, session_id: str) -> CompletionResult:
        """Score the session, build its final report and mark it completed.

        Completing an already-completed session recomputes the same result and
        keeps the original completion time.
        """
        start_time = time.time()
        user_id = _require_text(user_id, "userId")
        session_id = _require_text(session_id, "sessionId")
        self.bind_session(session_id)

        async with self.storage_manager.session_lock(session_id):
            session = await self._load_owned(session_id, user_id)
            if session.status == SessionStatus.ABANDONED:
                raise InvalidStateError("Cannot complete an abandoned session", session_id=session_id, status=session.status.value)

            report = self.gateway.summarize_session(session.answered_questions)
            report.category_scores = category_breakdown(session.questions)

            session.overall_score = calculate_overall_score(session.questions)
            session.final_report = report
            session.status = SessionStatus.COMPLETED
            session.completed_at = session.completed_at or utcnow()
            session.recompute_time_spent()
            session = await self.storage_manager.save_session(session)

        self.log_operation("complete", {"session_id": session_id, "overall_score": session.overall_score})
        log_performance("orchestrator.complete", time.time() - start_time)
        return CompletionResult(
            session_id=session_id,
            overall_score=session.overall_score,
            report=session.final_report,
            total_questions=session.total_questions,
        )

    async def get_session(self, user_id: str, session_id: str) -> InterviewSession:
        """Read-only snapshot of a session owned by the caller."""
        user_id = _require_text(user_id, "userId")
        session_id = _require_text(session_id, "sessionId")
        return await self._load_owned(session_id, user_id)
