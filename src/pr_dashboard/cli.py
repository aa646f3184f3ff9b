"""Command-line argument parsing for the PR evaluation dashboard."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import List, Optional

from .models import PullRequestState


def _iso_date(value: str) -> date:
    """Parse and validate an ISO ``YYYY-MM-DD`` CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not an ISO calendar date.
    """
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a date in YYYY-MM-DD format") from exc


def _state(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in {state.value for state in PullRequestState}:
        raise argparse.ArgumentTypeError("must be one of OPEN, MERGED, DECLINED")
    return normalized


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for PR evaluation.

    Returns:
        Parsed CLI arguments. Member, dates, and repositories are required
        unless ``--list-members`` is given.
    """
    parser = argparse.ArgumentParser(
        prog="pr-evaluation-dashboard",
        description=(
            "Summarize a team member's pull request activity across repositories "
            "and export a PDF evaluation report."
        ),
    )

    parser.add_argument(
        "--list-members",
        action="store_true",
        help="List workspace members and exit.",
    )
    parser.add_argument(
        "--member",
        help="Member uuid, display name, or username to evaluate.",
    )
    parser.add_argument(
        "--from",
        dest="from_date",
        type=_iso_date,
        help="Start of the period (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--to",
        dest="to_date",
        type=_iso_date,
        help="End of the period (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--repo",
        dest="repositories",
        action="append",
        default=[],
        help="Repository name to include (repeatable).",
    )
    parser.add_argument(
        "--state",
        type=_state,
        default=None,
        help="Only include PRs in this state (OPEN, MERGED, DECLINED).",
    )
    parser.add_argument(
        "--target-branch",
        default=None,
        help="Only include PRs targeting this branch, e.g. develop or main.",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Directory the PDF report is written to (default: current directory).",
    )
    parser.add_argument(
        "--no-charts",
        action="store_true",
        help="Leave charts out of the PDF report.",
    )
    parser.add_argument(
        "--no-report",
        action="store_true",
        help="Only print the summary and PR list; do not write a PDF.",
    )
    parser.add_argument(
        "--download-report",
        action="store_true",
        help=(
            "Download the report generated by the PR service for each repository "
            "into --output-dir instead of building the evaluation report."
        ),
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args(argv)

    if not args.list_members:
        missing = [
            flag
            for flag, value in (
                ("--member", args.member),
                ("--from", args.from_date),
                ("--to", args.to_date),
                ("--repo", args.repositories),
            )
            if not value
        ]
        if missing:
            parser.error(f"the following arguments are required: {', '.join(missing)}")

    return args
