"""Evaluation report layout and PDF export.

:func:`layout` composes the report into a :class:`ReportDocument`: A4 pages
in millimetres holding positioned text and image blocks. Text is wrapped with
the real Helvetica metrics of the PDF backend. Page breaks are decided per
block: before placing a block of height ``h`` the cursor must satisfy
``cursor + h <= PAGE_HEIGHT - BOTTOM_MARGIN``, otherwise a new page starts at
``TOP_MARGIN``.

:func:`render_pdf` serializes a document with fpdf2 and :func:`export_report`
runs the whole export, writing the file only once rendering succeeded.
"""

from __future__ import annotations

import io
import logging
import os
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.errors import FPDFException

from .errors import ReportGenerationError
from .evaluation import (
    engagement_tier,
    quality_tier,
    score as compute_score,
    speed_tier,
    suggest,
    velocity_adjective,
)
from .metrics import CommentRule, format_days, format_decimal, truncate
from .models import (
    ImageBlock,
    Page,
    PullRequestRecord,
    ReportDocument,
    Score,
    SummaryBundle,
    TextBlock,
)

logger = logging.getLogger(__name__)

PAGE_WIDTH = 210.0
PAGE_HEIGHT = 297.0
TOP_MARGIN = 20.0
BOTTOM_MARGIN = 20.0
LEFT_MARGIN = 20.0
BULLET_INDENT = 25.0
TEXT_WIDTH = PAGE_WIDTH - 2 * LEFT_MARGIN

FONT_FAMILY = "helvetica"
TEXT_LINE_HEIGHT = 5.0
BULLET_ADVANCE = 7.0
BULLET = "-"

CHART_WIDTH = 150.0
CHART_HEIGHT = 100.0
CHART_SPACING = 15.0

TABLE_HEADERS = ("Title", "State", "Commits", "Comments", "Days to Merge")
TABLE_COLUMN_WIDTHS = (80.0, 25.0, 20.0, 25.0, 30.0)
TABLE_MAX_ROWS = 20
TABLE_TITLE_LIMIT = 30
TABLE_ROW_CHECK = 8.0
TABLE_ROW_ADVANCE = 6.0

REPORT_TITLE = "Employee Evaluation Report"
BRANDING = "PR Dashboard - Performance Analytics"
BRANDING_COLOR = (100, 100, 100)
SCORE_COLOR = (0, 150, 0)


def _latin1(text: str) -> str:
    """Replace characters the core PDF fonts cannot encode."""
    return text.encode("latin-1", "replace").decode("latin-1")


class _PageComposer:
    """Tracks the page list and vertical cursor while blocks are placed."""

    def __init__(self) -> None:
        self.pages: List[Page] = []
        self.y = TOP_MARGIN
        self._metrics = FPDF(orientation="P", unit="mm", format="A4")
        self._metrics.add_page()

    def new_page(self) -> None:
        self.pages.append(Page())
        self.y = TOP_MARGIN

    def check_page_break(self, height: float) -> None:
        if self.y + height > PAGE_HEIGHT - BOTTOM_MARGIN:
            self.new_page()

    def place_text(
        self,
        x: float,
        y: float,
        lines: Sequence[str],
        size: float,
        style: str = "",
        align: str = "L",
        color: Tuple[int, int, int] = (0, 0, 0),
        line_height: float = TEXT_LINE_HEIGHT,
    ) -> None:
        self.pages[-1].blocks.append(
            TextBlock(
                x=x,
                y=y,
                lines=tuple(lines),
                font_size=size,
                style=style,
                align=align,
                color=color,
                line_height=line_height,
            )
        )

    def place_image(self, data: bytes, width: float, height: float) -> None:
        x = (PAGE_WIDTH - width) / 2
        self.pages[-1].blocks.append(ImageBlock(x=x, y=self.y, width=width, height=height, data=data))

    def wrap(self, text: str, size: float, style: str = "", width: float = TEXT_WIDTH) -> List[str]:
        """Split ``text`` into lines no wider than ``width`` millimetres.

        Explicit newlines always start a new line. Words wider than a whole
        line are broken between characters.
        """
        self._metrics.set_font(FONT_FAMILY, style=style, size=size)
        return self._metrics.multi_cell(
            width, TEXT_LINE_HEIGHT, _latin1(text), dry_run=True, output="LINES"
        )


def _merge_rate_text(summary: SummaryBundle) -> str:
    if summary.merge_rate is None:
        return "n/a"
    return f"{format_decimal(summary.merge_rate)}%"


def _executive_summary_text(
    employee: str,
    date_range: str,
    repositories: Sequence[str],
    summary: SummaryBundle,
) -> str:
    return (
        f"This report analyzes {employee}'s pull request activity from {date_range}. "
        f"During this period, {employee} contributed {summary.total_prs} pull requests "
        f"across {len(repositories)} repositories, with {summary.merged_prs} successfully "
        f"merged PRs ({_merge_rate_text(summary)} merge rate). "
        f"The average time to merge was {format_decimal(summary.avg_days_to_merge)} days, "
        f"indicating {velocity_adjective(summary.avg_days_to_merge)} development velocity."
    )


def _key_metric_lines(summary: SummaryBundle) -> List[str]:
    return [
        f"Total Pull Requests: {summary.total_prs}",
        f"Merged PRs: {summary.merged_prs} ({_merge_rate_text(summary)})",
        f"Open PRs: {summary.open_prs}",
        f"Declined PRs: {summary.declined_prs}",
        f"Total Commits: {summary.total_commits}",
        f"Total Comments: {summary.total_comments}",
        f"Average Days to Merge: {format_decimal(summary.avg_days_to_merge)} days",
    ]


def _score_line(score: Score) -> str:
    value = format_decimal(score.value)
    suffix = "/10" if score.has_data else ""
    return f"Overall Score: {value}{suffix} - {score.label}"


def _table_row(pr: PullRequestRecord, comment_rule: Optional[CommentRule]) -> Tuple[str, ...]:
    comments = comment_rule(pr) if comment_rule else pr.comments
    return (
        truncate(pr.title, TABLE_TITLE_LIMIT),
        pr.state.value,
        str(pr.commits),
        str(comments),
        format_days(pr.days_to_merge),
    )


def _compose_cover(
    composer: _PageComposer,
    employee: str,
    date_range: str,
    repositories: Sequence[str],
    generated_at: datetime,
) -> None:
    composer.new_page()
    center = PAGE_WIDTH / 2

    composer.place_text(center, 40, [REPORT_TITLE], 24, style="B", align="C")

    y = 60.0
    for text in (f"Employee: {employee}", f"Period: {date_range}"):
        composer.place_text(center, y, [text], 16, align="C")
        y += 15

    repository_lines = composer.wrap(f"Repositories: {', '.join(repositories)}", 16)
    composer.place_text(center, y, repository_lines, 16, align="C", line_height=7)
    y += 15 + 7 * (len(repository_lines) - 1)

    generated_on = f"Generated on: {generated_at.strftime('%Y-%m-%d %H:%M')}"
    composer.place_text(center, y, [generated_on], 16, align="C")
    composer.place_text(center, PAGE_HEIGHT - 20, [BRANDING], 12, align="C", color=BRANDING_COLOR)


def _compose_heading(composer: _PageComposer, text: str, size: float, advance: float) -> None:
    composer.check_page_break(advance)
    composer.place_text(LEFT_MARGIN, composer.y, [text], size, style="B")
    composer.y += advance


def _compose_paragraph(composer: _PageComposer, text: str, after: float = 10) -> None:
    lines = composer.wrap(text, 12)
    composer.check_page_break(len(lines) * TEXT_LINE_HEIGHT)
    composer.place_text(LEFT_MARGIN, composer.y, lines, 12)
    composer.y += len(lines) * TEXT_LINE_HEIGHT + after


def _compose_bullets(composer: _PageComposer, items: Sequence[str]) -> None:
    for item in items:
        lines = composer.wrap(f"{BULLET} {item}", 12, width=PAGE_WIDTH - BULLET_INDENT - LEFT_MARGIN)
        composer.check_page_break(BULLET_ADVANCE * len(lines))
        composer.place_text(BULLET_INDENT, composer.y, lines, 12, line_height=BULLET_ADVANCE)
        composer.y += BULLET_ADVANCE * len(lines)


def _compose_summary(
    composer: _PageComposer,
    employee: str,
    date_range: str,
    repositories: Sequence[str],
    summary: SummaryBundle,
) -> None:
    composer.new_page()
    _compose_heading(composer, "Executive Summary", 18, 15)
    _compose_paragraph(composer, _executive_summary_text(employee, date_range, repositories, summary))

    composer.check_page_break(60)
    _compose_heading(composer, "Key Performance Metrics", 16, 15)
    _compose_bullets(composer, _key_metric_lines(summary))


def _compose_charts(composer: _PageComposer, chart_images: Sequence[bytes]) -> None:
    for image in chart_images:
        composer.check_page_break(CHART_HEIGHT)
        composer.place_image(image, CHART_WIDTH, CHART_HEIGHT)
        composer.y += CHART_HEIGHT + CHART_SPACING


def _compose_evaluation(
    composer: _PageComposer,
    summary: SummaryBundle,
    score: Score,
    suggestions: Sequence[str],
) -> None:
    composer.new_page()
    _compose_heading(composer, "Employee Evaluation", 18, 20)

    _compose_heading(composer, "PR Quality Assessment", 14, 10)
    _compose_paragraph(
        composer,
        f"Merge Rate: {_merge_rate_text(summary)} - {quality_tier(summary.merge_rate)}\n"
        f"Comments per PR: {format_decimal(summary.comments_per_pr)} - "
        f"{engagement_tier(summary.comments_per_pr)}",
    )

    _compose_heading(composer, "Development Speed", 14, 10)
    _compose_paragraph(
        composer,
        f"Average Days to Merge: {format_decimal(summary.avg_days_to_merge)} days - "
        f"{speed_tier(summary.avg_days_to_merge)}",
        after=10,
    )

    composer.check_page_break(20)
    composer.place_text(LEFT_MARGIN, composer.y, [_score_line(score)], 15, style="B", color=SCORE_COLOR)
    composer.y += 20

    _compose_heading(composer, "Suggestions for Improvement", 14, 10)
    _compose_bullets(composer, suggestions)


def _compose_table(
    composer: _PageComposer,
    records: Sequence[PullRequestRecord],
    comment_rule: Optional[CommentRule],
) -> List[Tuple[str, ...]]:
    composer.new_page()
    _compose_heading(composer, "Detailed PR List", 16, 15)

    x = LEFT_MARGIN
    for header, width in zip(TABLE_HEADERS, TABLE_COLUMN_WIDTHS):
        composer.place_text(x, composer.y, [header], 10, style="B")
        x += width
    composer.y += 8

    rows = [_table_row(pr, comment_rule) for pr in records[:TABLE_MAX_ROWS]]
    for row in rows:
        composer.check_page_break(TABLE_ROW_CHECK)
        x = LEFT_MARGIN
        for cell, width in zip(row, TABLE_COLUMN_WIDTHS):
            composer.place_text(x, composer.y, [cell], 10)
            x += width
        composer.y += TABLE_ROW_ADVANCE

    return rows


def layout(
    employee: str,
    date_range: str,
    repositories: Sequence[str],
    records: Sequence[PullRequestRecord],
    summary: SummaryBundle,
    score: Score,
    suggestions: Sequence[str],
    chart_images: Sequence[bytes] = (),
    generated_at: Optional[datetime] = None,
    comment_rule: Optional[CommentRule] = None,
) -> ReportDocument:
    """Compose the evaluation report into a paginated document.

    Sections are the cover page, executive summary with key metrics, chart
    images, the evaluation page, and the detailed PR table. The cover,
    executive summary, evaluation, and table each start on a new page.

    Args:
        employee: Display name of the evaluated member.
        date_range: Human-readable period, for example ``"2026-01-01 to 2026-03-31"``.
        repositories: Repository names included in the query.
        records: Pull requests in display order; the table shows the first 20.
        summary: Aggregate statistics for ``records``.
        score: Overall score from :func:`pr_dashboard.evaluation.score`.
        suggestions: Ordered suggestions from :func:`pr_dashboard.evaluation.suggest`.
        chart_images: PNG images placed after the key metrics.
        generated_at: Timestamp printed on the cover; defaults to now.
        comment_rule: Comment count shown per table row; defaults to the raw
            count. Pass the same rule used to build ``summary``.

    Returns:
        The laid-out :class:`ReportDocument`.
    """
    composer = _PageComposer()

    _compose_cover(composer, employee, date_range, repositories, generated_at or datetime.now())
    _compose_summary(composer, employee, date_range, repositories, summary)
    _compose_charts(composer, chart_images)
    _compose_evaluation(composer, summary, score, suggestions)
    table_rows = _compose_table(composer, records, comment_rule)

    logger.debug(
        "Laid out evaluation report",
        extra={
            "pages": len(composer.pages),
            "table_rows": len(table_rows),
            "charts": len(chart_images),
        },
    )
    return ReportDocument(
        title=f"{employee} - {REPORT_TITLE}",
        width=PAGE_WIDTH,
        height=PAGE_HEIGHT,
        pages=composer.pages,
        table_rows=table_rows,
    )


def render_pdf(document: ReportDocument) -> bytes:
    """Serialize a laid-out document to PDF bytes."""
    pdf = FPDF(orientation="P", unit="mm", format=(document.width, document.height))
    pdf.set_auto_page_break(False)
    pdf.set_title(_latin1(document.title))

    for page in document.pages:
        pdf.add_page()
        for block in page.blocks:
            if isinstance(block, ImageBlock):
                pdf.image(io.BytesIO(block.data), x=block.x, y=block.y, w=block.width, h=block.height)
                continue

            pdf.set_font(FONT_FAMILY, style=block.style, size=block.font_size)
            pdf.set_text_color(*block.color)
            for index, line in enumerate(block.lines):
                text = _latin1(line)
                x = block.x
                if block.align == "C":
                    x -= pdf.get_string_width(text) / 2
                pdf.text(x, block.y + index * block.line_height, text)

    return bytes(pdf.output())


def report_filename(employee: str, today: Optional[date] = None) -> str:
    """Return ``{employee}_Evaluation_Report_{YYYY-MM-DD}.pdf``."""
    day = today or date.today()
    safe_employee = employee.replace("/", "_").replace("\\", "_")
    return f"{safe_employee}_Evaluation_Report_{day.isoformat()}.pdf"


def downloaded_report_filename(repo: str, from_date: date, to_date: date) -> str:
    """Return ``{repo}_PR_Report_{from}_to_{to}.pdf`` for a service report."""
    safe_repo = repo.replace("/", "_").replace("\\", "_")
    return f"{safe_repo}_PR_Report_{from_date.isoformat()}_to_{to_date.isoformat()}.pdf"


def write_report_file(path: Path, data: bytes) -> Path:
    """Write ``data`` to ``path`` through a temporary sibling file.

    The final path only ever holds a complete file: the bytes go to a
    temporary file in the same directory which is then moved into place.

    Raises:
        ReportGenerationError: If the directory or file cannot be written.
    """
    path = Path(path)
    tmp_path = path.with_name(f".{path.name}.tmp")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_bytes(data)
        os.replace(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise ReportGenerationError(f"Failed to write report to {path}") from exc

    return path


def export_report(
    output_dir: Path,
    employee: str,
    date_range: str,
    repositories: Sequence[str],
    records: Sequence[PullRequestRecord],
    summary: SummaryBundle,
    chart_images: Sequence[bytes] = (),
    comment_rule: Optional[CommentRule] = None,
    today: Optional[date] = None,
) -> Path:
    """Score, lay out, render, and write the evaluation report.

    The file is written only after the whole PDF rendered successfully.

    Raises:
        ReportGenerationError: If any step fails; no file is left behind.
    """
    path = Path(output_dir) / report_filename(employee, today)

    try:
        document = layout(
            employee=employee,
            date_range=date_range,
            repositories=repositories,
            records=records,
            summary=summary,
            score=compute_score(summary),
            suggestions=suggest(summary),
            chart_images=chart_images,
            comment_rule=comment_rule,
        )
        pdf_bytes = render_pdf(document)
    except ReportGenerationError:
        raise
    except (FPDFException, OSError, ValueError, TypeError, RuntimeError) as exc:
        raise ReportGenerationError("Failed to generate report") from exc

    write_report_file(path, pdf_bytes)

    logger.info(
        "Wrote evaluation report",
        extra={"path": str(path), "pages": len(document.pages), "bytes": len(pdf_bytes)},
    )
    return path
