"""Prompt templates sent to the generative-text provider."""

from typing import List, Optional

from ..models.enums import DifficultyLevel, InterviewType
from ..models.profile import ParsedResume, UserProfile

QUESTION_PROMPT = """
You are an expert interviewer conducting a {interview_type} interview.

Candidate: {target_role} ({experience})
Skills: {skills}

Focus: {focus}
Difficulty: {difficulty}
Question #{question_number}

{previously_asked}

Generate ONE unique question. Return ONLY valid JSON:
{{
  "text": "Your question?",
  "category": "DSA" | "System Design" | "Behavioral" | "Technical" | "General",
  "difficulty": "easy" | "medium" | "hard"
}}
"""

EVALUATION_PROMPT = """
Evaluate this interview answer:

Question: {question}
Category: {category}
Difficulty: {difficulty}
Answer: "{answer}"

Return ONLY valid JSON:
{{
  "score": 8,
  "feedback": "2-4 sentences of feedback",
  "strengths": ["strength1", "strength2"],
  "improvements": ["improvement1", "improvement2"]
}}
"""


def build_question_prompt(
    interview_type: InterviewType,
    difficulty: DifficultyLevel,
    profile: Optional[UserProfile],
    resume: Optional[ParsedResume],
    question_number: int,
    previous_questions: List[str],
) -> str:
    """Build a role- and skill-aware question generation prompt."""
    profile = profile or UserProfile()
    resume = resume or ParsedResume()
    skills = ", ".join(resume.skills) if resume.skills else "Not specified"

    focus = interview_type.focus
    if interview_type == InterviewType.ROLE_SPECIFIC:
        focus = f"{focus}: {', '.join(resume.skills) if resume.skills else 'General'}"

    previously_asked = ""
    if previous_questions:
        numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(previous_questions, start=1))
        previously_asked = f"Previously asked:\n{numbered}"

    return QUESTION_PROMPT.format(
        interview_type=interview_type.value,
        target_role=profile.target_role or resume.target_role or "Software Developer",
        experience=profile.experience or resume.experience_level or "Fresher",
        skills=skills,
        focus=focus,
        difficulty=difficulty.value,
        question_number=question_number,
        previously_asked=previously_asked,
    )


def build_evaluation_prompt(question: str, answer: str, category: str, difficulty: str) -> str:
    return EVALUATION_PROMPT.format(question=question, category=category, difficulty=difficulty, answer=answer)
