"""Data models for the Interview Session Engine."""

from .base import BaseModel, TimestampedModel
from .enums import (
    DifficultyLevel,
    InterviewDuration,
    InterviewType,
    QuestionCategory,
    SessionStatus,
)
from .interview import (
    SKIPPED_ANSWER,
    Evaluation,
    FinalReport,
    InterviewSession,
    Question,
)
from .profile import EducationEntry, ExperienceEntry, ParsedResume, Project, UserProfile
from .results import AnswerResult, CompletionResult, NextQuestionResult, SkipResult, StartResult

__all__ = [
    "BaseModel",
    "TimestampedModel",
    "DifficultyLevel",
    "InterviewDuration",
    "InterviewType",
    "QuestionCategory",
    "SessionStatus",
    "SKIPPED_ANSWER",
    "Evaluation",
    "FinalReport",
    "InterviewSession",
    "Question",
    "EducationEntry",
    "ExperienceEntry",
    "ParsedResume",
    "Project",
    "UserProfile",
    "AnswerResult",
    "CompletionResult",
    "NextQuestionResult",
    "SkipResult",
    "StartResult",
]
