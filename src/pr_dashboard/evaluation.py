"""Performance scoring and improvement suggestions for a PR summary.

This module derives from a :class:`SummaryBundle`:
- Speed, quality, and activity sub-scores and their rounded mean.
- The qualitative label for the overall score.
- An ordered list of improvement suggestions from threshold rules.
- The tier wording used by the evaluation section of the report.

A summary with no pull requests has no merge rate, so :func:`score` returns
:data:`INSUFFICIENT_DATA` and :func:`suggest` returns
:data:`NO_DATA_SUGGESTIONS` instead of dividing by zero.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence, Tuple

from .models import Score, SummaryBundle

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = Score(value=None, label="Insufficient Data")

SCORE_LABELS: Sequence[Tuple[float, str]] = (
    (9, "Outstanding Contributor!"),
    (8, "Strong Contributor!"),
    (7, "Good Contributor"),
    (6, "Satisfactory Performance"),
)
LOWEST_SCORE_LABEL = "Needs Improvement"

LOW_MERGE_RATE_SUGGESTION = "Focus on improving PR quality to increase merge rate."
SLOW_MERGE_SUGGESTION = "Work on reducing PR size for faster review cycles."
LOW_ENGAGEMENT_SUGGESTION = "Engage more in code reviews and discussions."
OPEN_BACKLOG_SUGGESTION = "Reduce open PR backlog by focusing on completion."
POSITIVE_SUGGESTIONS: Tuple[str, ...] = (
    "Continue maintaining excellent performance standards.",
    "Consider mentoring junior developers.",
)
NO_DATA_SUGGESTIONS: Tuple[str, ...] = (
    "Not enough pull request data to generate suggestions.",
)


def round_half_up(value: float, digits: int = 1) -> float:
    """Round ``value`` to ``digits`` decimals, with halves rounding up."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def speed_score(avg_days_to_merge: float) -> int:
    if avg_days_to_merge < 2:
        return 10
    if avg_days_to_merge < 5:
        return 8
    if avg_days_to_merge < 10:
        return 6
    return 4


def quality_score(merge_rate: float) -> int:
    if merge_rate > 80:
        return 10
    if merge_rate > 60:
        return 8
    return 6


def activity_score(total_prs: int) -> int:
    if total_prs > 20:
        return 10
    if total_prs > 10:
        return 8
    return 6


def score_label(value: float) -> str:
    """Map a rounded overall score to its label, checking thresholds in descending order."""
    for threshold, label in SCORE_LABELS:
        if value >= threshold:
            return label
    return LOWEST_SCORE_LABEL


def score(summary: SummaryBundle) -> Score:
    """Compute the overall performance score for a summary.

    The overall value is the mean of the speed, quality, and activity
    sub-scores rounded half-up to one decimal, so it always lies in
    ``[4.0, 10.0]``.

    Returns:
        The score and its label, or :data:`INSUFFICIENT_DATA` when the
        summary holds no pull requests.
    """
    merge_rate = summary.merge_rate
    if merge_rate is None:
        logger.debug("Skipping score computation for empty summary")
        return INSUFFICIENT_DATA

    sub_scores = (
        speed_score(summary.avg_days_to_merge),
        quality_score(merge_rate),
        activity_score(summary.total_prs),
    )
    value = round_half_up(sum(sub_scores) / len(sub_scores))

    logger.debug(
        "Computed performance score",
        extra={"sub_scores": sub_scores, "score": value},
    )
    return Score(value=value, label=score_label(value))


def suggest(summary: SummaryBundle) -> List[str]:
    """Derive improvement suggestions from independent threshold rules.

    Every matching rule contributes its message, in a fixed order. When no
    rule matches, the two positive messages are returned instead.
    """
    merge_rate = summary.merge_rate
    comments_per_pr = summary.comments_per_pr
    if merge_rate is None or comments_per_pr is None:
        return list(NO_DATA_SUGGESTIONS)

    suggestions: List[str] = []
    if merge_rate < 70:
        suggestions.append(LOW_MERGE_RATE_SUGGESTION)
    if summary.avg_days_to_merge > 7:
        suggestions.append(SLOW_MERGE_SUGGESTION)
    if comments_per_pr < 2:
        suggestions.append(LOW_ENGAGEMENT_SUGGESTION)
    if summary.open_prs > 5:
        suggestions.append(OPEN_BACKLOG_SUGGESTION)

    if not suggestions:
        suggestions.extend(POSITIVE_SUGGESTIONS)

    return suggestions


def quality_tier(merge_rate: Optional[float]) -> str:
    if merge_rate is None:
        return "n/a"
    if merge_rate > 80:
        return "Excellent"
    if merge_rate > 60:
        return "Good"
    return "Needs Improvement"


def engagement_tier(comments_per_pr: Optional[float]) -> str:
    if comments_per_pr is None:
        return "n/a"
    if comments_per_pr < 2:
        return "Low engagement"
    if comments_per_pr < 5:
        return "Good collaboration"
    return "High engagement"


def speed_tier(avg_days_to_merge: float) -> str:
    if avg_days_to_merge < 2:
        return "Very Fast"
    if avg_days_to_merge < 5:
        return "Fast"
    if avg_days_to_merge < 10:
        return "Moderate"
    return "Slow"


def velocity_adjective(avg_days_to_merge: float) -> str:
    return "efficient" if avg_days_to_merge < 3 else "moderate"
