"""Application entry point and orchestration for the PR evaluation dashboard."""

from __future__ import annotations

import logging
import sys
from typing import List, Optional, Sequence

from .api_client import DashboardClient
from .charts import rasterize_charts, render_charts
from .cli import parse_args
from .comments import CommentAdjustmentPolicy
from .config import Config, load_config, load_service_settings
from .errors import ApiError, ConfigurationError, DashboardError, ReportGenerationError
from .metrics import aggregate, generate_pr_table, generate_summary
from .models import TeamMember
from .report import downloaded_report_filename, export_report, write_report_file

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_API_ERROR = 4
EXIT_REPORT_ERROR = 5


def resolve_member(members: Sequence[TeamMember], query: str) -> TeamMember:
    """Find a member by uuid, display name, or username (case-insensitive).

    Raises:
        ConfigurationError: If no member matches ``query``.
    """
    normalized = query.strip().lower()
    for member in members:
        candidates = (member.uuid, member.display_name, member.username or "")
        if normalized in (candidate.lower() for candidate in candidates):
            return member

    raise ConfigurationError(f"Team member '{query}' was not found.")


def _print_members(members: Sequence[TeamMember]) -> None:
    for member in members:
        handle = f" (@{member.username})" if member.username else ""
        print(f"{member.uuid}  {member.display_name}{handle}")


def _download_service_reports(client: DashboardClient, config: Config, member: TeamMember) -> None:
    for repo in config.repositories:
        content = client.download_report(
            author=member.uuid,
            from_date=config.from_date,
            to_date=config.to_date,
            repo=repo,
            state=config.state,
            target_branch=config.target_branch,
        )
        filename = downloaded_report_filename(repo, config.from_date, config.to_date)
        path = write_report_file(config.output_dir / filename, content)
        print(f"Service report for {repo} written to {path}")


def orchestrate_evaluation(argv: Optional[List[str]] = None) -> int:
    """Run the fetch, display, and export workflow.

    Returns:
        Process exit code: ``0`` on success, ``2`` for configuration errors,
        ``4`` for upstream API errors, ``5`` for report generation errors, and
        ``1`` for anything else.
    """
    try:
        args = parse_args(argv)
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

        if args.list_members:
            api_url, timeout_seconds = load_service_settings()
            client = DashboardClient(base_url=api_url, timeout_seconds=timeout_seconds)
            _print_members(client.list_members())
            return EXIT_OK

        config = load_config(
            member=args.member,
            from_date=args.from_date,
            to_date=args.to_date,
            repositories=args.repositories,
            state=args.state,
            target_branch=args.target_branch,
            output_dir=args.output_dir,
        )
        client = DashboardClient(base_url=config.api_url, timeout_seconds=config.timeout_seconds)
        member = resolve_member(client.list_members(), config.member)

        if args.download_report:
            _download_service_reports(client, config, member)
            return EXIT_OK

        print(
            f"Fetching PRs for '{member.display_name}' from {config.date_range} "
            f"across {len(config.repositories)} repositories..."
        )
        records = client.fetch_pull_requests(
            author=member.uuid,
            from_date=config.from_date,
            to_date=config.to_date,
            repositories=config.repositories,
            state=config.state,
            target_branch=config.target_branch,
        )

        policy = CommentAdjustmentPolicy.with_reviewer_tiers(config.review_heavy_members)
        comment_rule = policy.for_member(member.uuid)
        summary = aggregate(records, comment_rule=comment_rule)

        print(generate_summary(summary))
        print()
        print(generate_pr_table(records, comment_rule=comment_rule))

        if args.no_report:
            return EXIT_OK

        if not records:
            print("No PR data available for report generation.", file=sys.stderr)
            return EXIT_OK

        chart_images: List[bytes] = []
        if not args.no_charts:
            chart_images = rasterize_charts(render_charts(records))

        path = export_report(
            output_dir=config.output_dir,
            employee=member.display_name,
            date_range=config.date_range,
            repositories=config.repositories,
            records=records,
            summary=summary,
            chart_images=chart_images,
            comment_rule=comment_rule,
        )
        print(f"\nReport written to {path}")
        return EXIT_OK
    except ConfigurationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except ApiError as exc:
        logger.error("Upstream request failed", extra={"error": str(exc)})
        print("ERROR: Failed to fetch PRs.", file=sys.stderr)
        return EXIT_API_ERROR
    except ReportGenerationError as exc:
        logger.error("Report generation failed", extra={"error": str(exc)})
        print("ERROR: Failed to generate report.", file=sys.stderr)
        return EXIT_REPORT_ERROR
    except DashboardError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR
    except Exception:
        logger.exception("Unexpected error during PR evaluation")
        print("ERROR: An unexpected error occurred.", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR


def main() -> None:
    sys.exit(orchestrate_evaluation())


if __name__ == "__main__":
    main()
