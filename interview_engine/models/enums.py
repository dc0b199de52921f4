"""Enumeration types for the Interview Session Engine."""

import re
from enum import Enum


def _normalize(value: str) -> str:
    return re.sub(r"[\s_\-]+", "", value).lower()


class LenientEnum(str, Enum):
    """String enum that tolerates case and hyphen/space/underscore spelling variants."""

    @classmethod
    def _missing_(cls, value):
        """Handle alternative spellings during deserialization."""
        if isinstance(value, str):
            # Handle cases like "SessionStatus.COMPLETED" or "COMPLETED"
            if value.startswith(f"{cls.__name__}."):
                value = value.split(".", 1)[1]
            wanted = _normalize(value)
            for member in cls:
                if _normalize(member.value) == wanted or _normalize(member.name) == wanted:
                    return member
        return None

    def __str__(self) -> str:
        return self.value


class InterviewType(LenientEnum):
    """Kind of interview being practised."""

    TECHNICAL = "technical"
    BEHAVIORAL = "behavioral"
    ROLE_SPECIFIC = "role-specific"

    @property
    def focus(self) -> str:
        """Prompt focus line for this interview type."""
        return {
            InterviewType.TECHNICAL: "DSA, System Design, OOP, design patterns",
            InterviewType.BEHAVIORAL: "STAR method, teamwork, leadership",
            InterviewType.ROLE_SPECIFIC: "Technologies from resume",
        }[self]


class DifficultyLevel(LenientEnum):
    """Question difficulty levels."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class InterviewDuration(LenientEnum):
    """Session length; fixes the number of questions asked."""

    QUICK = "quick"
    STANDARD = "standard"
    FULL = "full"

    @property
    def total_questions(self) -> int:
        """Get the number of questions for this duration."""
        return {InterviewDuration.QUICK: 5, InterviewDuration.STANDARD: 10, InterviewDuration.FULL: 15}[self]


class SessionStatus(LenientEnum):
    """Interview session status."""

    IN_PROGRESS = "in-progress"
    PAUSED = "paused"
    COMPLETED = "completed"
    # Reserved for an external timeout/cleanup process; no engine operation enters it.
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        """Terminal sessions are frozen for question/answer mutation."""
        return self in (SessionStatus.COMPLETED, SessionStatus.ABANDONED)


class QuestionCategory(LenientEnum):
    """Question categories used for the score breakdown."""

    DSA = "DSA"
    SYSTEM_DESIGN = "System Design"
    BEHAVIORAL = "Behavioral"
    TECHNICAL = "Technical"
    GENERAL = "General"
