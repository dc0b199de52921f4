"""Scoring aggregator: pure functions over recorded question evaluations."""

import math
from typing import Dict, Iterable, List, Optional

from ..models.interview import Question


def _round_half_up(value: float) -> int:
    # Scores are never negative, so floor(x + 0.5) is round-half-up.
    return int(math.floor(value + 0.5))


def _scored(questions: Iterable[Question]) -> List[Question]:
    return [q for q in questions if q.evaluation is not None and q.evaluation.score > 0]


def calculate_overall_score(questions: Iterable[Question]) -> int:
    """Mean evaluation score of questions scoring above zero, on a 0-100 scale.

    Skipped questions carry a zero-score evaluation and therefore never count.
    Sessions without a qualifying question score 0.
    """
    scored = _scored(questions)
    if not scored:
        return 0
    total = sum(q.evaluation.score for q in scored)
    return _round_half_up(total / len(scored) * 10)


def category_breakdown(questions: Iterable[Question]) -> Dict[str, int]:
    """Mean score per category on a 0-100 scale.

    Categories without a scored question are omitted rather than zero-filled.
    Keys follow first-seen order.
    """
    totals: Dict[str, List[int]] = {}
    for question in _scored(questions):
        totals.setdefault(question.category.value, []).append(question.evaluation.score)

    return {
        category: _round_half_up(sum(scores) / len(scores) * 10)
        for category, scores in totals.items()
    }


def average_answered_score(questions: Iterable[Question]) -> Optional[float]:
    """Mean 0-10 score over answered (non-skipped) questions, or None if there are none."""
    answered = [q for q in questions if q.is_answered]
    if not answered:
        return None
    return sum(q.evaluation.score if q.evaluation else 0 for q in answered) / len(answered)
