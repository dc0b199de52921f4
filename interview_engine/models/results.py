"""Result shapes returned by session orchestrator operations."""

from pydantic import Field

from .base import BaseModel
from .interview import Evaluation, FinalReport, Question


class StartResult(BaseModel):
    session_id: str
    question: Question
    question_number: int = Field(..., ge=1)
    total_questions: int


class AnswerResult(BaseModel):
    evaluation: Evaluation
    is_complete: bool
    session_id: str


class NextQuestionResult(BaseModel):
    question: Question
    question_number: int = Field(..., ge=1)
    total_questions: int


class SkipResult(BaseModel):
    is_complete: bool
    session_id: str


class CompletionResult(BaseModel):
    session_id: str
    overall_score: int = Field(..., ge=0, le=100)
    report: FinalReport
    total_questions: int
