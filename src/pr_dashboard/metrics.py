"""Summary statistics and text formatting for pull request activity.

This module provides utilities for:
- Reducing a list of pull requests into a :class:`SummaryBundle`.
- Formatting day counts and percentages to one decimal place.
- Building the human-readable summary and PR listing shown on the console.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from .models import PullRequestRecord, PullRequestState, SummaryBundle

CommentRule = Callable[[PullRequestRecord], int]

MISSING_VALUE = "-"


def aggregate(
    records: Sequence[PullRequestRecord],
    comment_rule: Optional[CommentRule] = None,
) -> SummaryBundle:
    """Aggregate pull request records into summary statistics.

    The average days to merge only considers merged pull requests that carry a
    ``days_to_merge`` value and is ``0`` when there are none, so an empty input
    yields an all-zero summary.

    Args:
        records: Pull requests to summarize.
        comment_rule: Optional per-record comment count to sum instead of the
            raw ``comments`` field.

    Returns:
        A freshly computed :class:`SummaryBundle`.
    """
    count_comments: CommentRule = comment_rule or (lambda pr: pr.comments)

    total_comments = 0
    total_commits = 0
    state_counts = {state: 0 for state in PullRequestState}
    merge_days: List[float] = []

    for pr in records:
        total_comments += count_comments(pr)
        total_commits += pr.commits
        state_counts[pr.state] += 1
        if pr.state is PullRequestState.MERGED and pr.days_to_merge is not None:
            merge_days.append(pr.days_to_merge)

    avg_days_to_merge = sum(merge_days) / len(merge_days) if merge_days else 0.0

    return SummaryBundle(
        total_prs=len(records),
        total_comments=total_comments,
        total_commits=total_commits,
        merged_prs=state_counts[PullRequestState.MERGED],
        open_prs=state_counts[PullRequestState.OPEN],
        declined_prs=state_counts[PullRequestState.DECLINED],
        avg_days_to_merge=avg_days_to_merge,
    )


def format_decimal(value: Optional[float]) -> str:
    """Format a number with one decimal place, or ``"n/a"`` when missing."""
    if value is None:
        return "n/a"
    return f"{value:.1f}"


def format_days(value: Optional[float]) -> str:
    """Format a days-to-merge cell, using ``"-"`` when missing."""
    if value is None:
        return MISSING_VALUE
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, marking cuts with ``...``."""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def generate_summary(summary: SummaryBundle) -> str:
    """Generate the console PR summary block."""
    avg_days = format_decimal(summary.avg_days_to_merge) if summary.merged_prs else MISSING_VALUE
    lines = [
        "PR Summary",
        f"   Total PRs: {summary.total_prs}",
        f"   Total Comments: {summary.total_comments}",
        f"   Total Commits: {summary.total_commits}",
        f"   Avg Days to Merge: {avg_days}",
        f"   Merged / Open / Declined: "
        f"{summary.merged_prs} / {summary.open_prs} / {summary.declined_prs}",
    ]
    return "\n".join(lines)


def generate_pr_table(
    records: Sequence[PullRequestRecord],
    comment_rule: Optional[CommentRule] = None,
) -> str:
    """Generate a plain-text listing of pull requests.

    Comment counts go through ``comment_rule`` when given so the listing and
    the summary totals agree. The PR link is printed last, untruncated.
    """
    if not records:
        return "No data available"

    count_comments: CommentRule = comment_rule or (lambda pr: pr.comments)
    header = (
        f"{'PR Title':<42} {'State':<9} {'Commits':>7} {'Comments':>8} {'Days':>6}  "
        f"{'Merged By':<16} {'Target':<12} {'Created':<13} Link"
    )
    lines = [header, "-" * len(header)]
    for pr in records:
        lines.append(
            f"{truncate(pr.title, 39):<42} {pr.state.value:<9} {pr.commits:>7} "
            f"{count_comments(pr):>8} {format_days(pr.days_to_merge):>6}  "
            f"{truncate(pr.merged_by or MISSING_VALUE, 13):<16} "
            f"{truncate(pr.target_branch or MISSING_VALUE, 9):<12} "
            f"{pr.created_on.strftime('%b %d, %Y'):<13} "
            f"{pr.link or MISSING_VALUE}"
        )
    return "\n".join(lines)
