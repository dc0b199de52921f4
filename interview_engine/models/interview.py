"""Interview session models for the Interview Session Engine."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import Field, field_validator

from .base import BaseModel, TimestampedModel, utcnow
from .enums import DifficultyLevel, InterviewDuration, InterviewType, QuestionCategory, SessionStatus

# Answer text recorded for a skipped question
SKIPPED_ANSWER = "[SKIPPED]"

MAX_FEEDBACK_ITEMS = 3


class Evaluation(BaseModel):
    """Scored feedback attached to one answered question."""

    score: int = Field(..., ge=0, le=10, description="Score on a 0-10 scale")
    feedback: str = Field(default="", description="Feedback text")
    strengths: List[str] = Field(default_factory=list, max_length=MAX_FEEDBACK_ITEMS, description="Strengths")
    improvements: List[str] = Field(default_factory=list, max_length=MAX_FEEDBACK_ITEMS, description="Improvement hints")


class Question(BaseModel):
    """An interview question owned by a session."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Stable question identifier")
    text: str = Field(..., min_length=1, description="Prompt text")
    category: QuestionCategory = Field(default=QuestionCategory.GENERAL, description="Question category")
    difficulty: DifficultyLevel = Field(default=DifficultyLevel.MEDIUM, description="Question difficulty")
    answer: Optional[str] = Field(default=None, description="Answer text or the skip sentinel")
    evaluation: Optional[Evaluation] = Field(default=None, description="Evaluation of the answer")
    time_spent: int = Field(default=0, ge=0, description="Seconds spent answering")
    answered_at: Optional[datetime] = Field(default=None, description="When the answer was recorded")

    @property
    def is_skipped(self) -> bool:
        return self.answer == SKIPPED_ANSWER

    @property
    def is_answered(self) -> bool:
        """True for a non-empty, non-skipped answer."""
        return bool(self.answer and self.answer.strip()) and not self.is_skipped

    def prompt_view(self) -> "Question":
        """Copy carrying only what the candidate is shown."""
        return Question(id=self.id, text=self.text, category=self.category, difficulty=self.difficulty)


class FinalReport(BaseModel):
    """Qualitative and quantitative summary produced at completion."""

    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    category_scores: Dict[str, int] = Field(default_factory=dict, description="Category name to 0-100 score")


class InterviewSession(TimestampedModel):
    """Aggregate root for one interview-practice attempt."""

    session_id: str = Field(default_factory=lambda: uuid4().hex, description="Unique session identifier")
    user_id: str = Field(..., min_length=1, description="Owning user identifier")
    type: InterviewType = Field(..., description="Interview type")
    difficulty: DifficultyLevel = Field(..., description="Requested difficulty")
    duration: InterviewDuration = Field(default=InterviewDuration.STANDARD, description="Session length")
    total_questions: int = Field(default=10, ge=1, description="Questions to ask, fixed by duration")
    status: SessionStatus = Field(default=SessionStatus.IN_PROGRESS, description="Session status")
    questions: List[Question] = Field(default_factory=list, description="Questions in asked order")
    current_question_index: int = Field(default=0, ge=0, description="Position of the current question")
    overall_score: int = Field(default=0, ge=0, le=100, description="Overall score on a 0-100 scale")
    final_report: Optional[FinalReport] = Field(default=None, description="Final report")
    started_at: datetime = Field(default_factory=utcnow, description="Session start time")
    completed_at: Optional[datetime] = Field(default=None, description="Session completion time")
    total_time_spent: int = Field(default=0, ge=0, description="Seconds spent across all questions")
    version: int = Field(default=0, ge=0, description="Incremented on every successful save")

    @field_validator("questions")
    @classmethod
    def _unique_question_ids(cls, questions: List[Question]) -> List[Question]:
        ids = [q.id for q in questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique within a session")
        return questions

    @property
    def answered_count(self) -> int:
        return sum(1 for q in self.questions if q.is_answered)

    @property
    def answered_questions(self) -> List[Question]:
        return [q for q in self.questions if q.is_answered]

    def can_ask_more_questions(self) -> bool:
        """Check if more questions can be generated."""
        return len(self.questions) < self.total_questions

    def find_question(self, question_id: str) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def append_question(self, question: Question) -> int:
        """Append a question and make it current. Returns its 1-based number."""
        self.questions.append(question)
        self.current_question_index = len(self.questions) - 1
        return len(self.questions)

    def recompute_time_spent(self) -> int:
        self.total_time_spent = sum(q.time_spent for q in self.questions)
        return self.total_time_spent

    def effective_skip_index(self) -> Optional[int]:
        """Index a skip applies to, clamped to the last question; None when there is none."""
        if not self.questions:
            return None
        return min(self.current_question_index, len(self.questions) - 1)
