"""Tests for evaluation report layout and PDF export."""

import sys
from datetime import date, datetime, timezone
from pathlib import Path
from unittest.mock import patch

from fpdf import FPDF
import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pr_dashboard.errors import ReportGenerationError
from pr_dashboard.evaluation import INSUFFICIENT_DATA, score, suggest
from pr_dashboard.metrics import aggregate
from pr_dashboard.models import ImageBlock, PullRequestRecord, PullRequestState, SummaryBundle
from pr_dashboard.report import (
    BOTTOM_MARGIN,
    CHART_HEIGHT,
    CHART_WIDTH,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    TOP_MARGIN,
    _PageComposer,
    downloaded_report_filename,
    export_report,
    layout,
    render_pdf,
    report_filename,
    write_report_file,
)

GENERATED_AT = datetime(2026, 10, 17, 9, 30)


def _make_pr(
    pr_id: int,
    title: str = "Improve caching",
    state: PullRequestState = PullRequestState.MERGED,
) -> PullRequestRecord:
    merged = state is PullRequestState.MERGED
    return PullRequestRecord(
        id=pr_id,
        title=title,
        state=state,
        link=f"https://example.test/pr/{pr_id}",
        created_on=datetime(2026, 1, 1, tzinfo=timezone.utc),
        comments=3,
        commits=2,
        days_to_merge=1.5 if merged else None,
    )


def _layout(records, chart_images=(), summary=None, **kwargs):
    summary = summary or aggregate(records)
    return layout(
        employee="Ada Lovelace",
        date_range="2026-01-01 to 2026-03-31",
        repositories=["webcore", "zenit"],
        records=records,
        summary=summary,
        score=score(summary),
        suggestions=suggest(summary),
        chart_images=chart_images,
        generated_at=GENERATED_AT,
        **kwargs,
    )


def _page_text(page) -> str:
    return "\n".join(line for block in page.text_blocks for line in block.lines)


def test_layout_section_order_without_charts():
    """Verify cover, summary, evaluation, and table each start on their own page."""
    document = _layout([_make_pr(1)])

    assert len(document.pages) == 4
    cover, summary, evaluation, table = (_page_text(page) for page in document.pages)
    assert "Employee Evaluation Report" in cover
    assert "Employee: Ada Lovelace" in cover
    assert "Repositories: webcore, zenit" in cover
    assert "Generated on: 2026-10-17 09:30" in cover
    assert "PR Dashboard - Performance Analytics" in cover
    assert "Executive Summary" in summary
    assert "Key Performance Metrics" in summary
    assert "Employee Evaluation" in evaluation
    assert "Detailed PR List" in table


def test_layout_cover_text_is_centred():
    """Verify every cover block is centre-aligned on the page midline."""
    document = _layout([_make_pr(1)])

    for block in document.pages[0].text_blocks:
        assert block.align == "C"
        assert block.x == PAGE_WIDTH / 2


def test_layout_executive_summary_and_metrics_content():
    """Verify the narrative interpolates the summary and the seven metric bullets."""
    records = [_make_pr(1), _make_pr(2, state=PullRequestState.OPEN)]
    document = _layout(records)

    text = _page_text(document.pages[1])
    flattened = " ".join(text.split())
    assert "contributed 2 pull requests across 2 repositories" in flattened
    assert "(50.0% merge rate)" in flattened
    assert "The average time to merge was 1.5 days, indicating efficient development velocity." in flattened

    bullets = [line for line in text.splitlines() if line.startswith("- ")]
    assert bullets == [
        "- Total Pull Requests: 2",
        "- Merged PRs: 1 (50.0%)",
        "- Open PRs: 1",
        "- Declined PRs: 0",
        "- Total Commits: 4",
        "- Total Comments: 6",
        "- Average Days to Merge: 1.5 days",
    ]


def test_layout_wraps_narrative_to_text_width():
    """Verify wrapped lines fit within the page text width."""
    composer = _PageComposer()
    long_name = "Maximiliana Featherstonehaugh-Cholmondeley"
    lines = composer.wrap(f"This report analyzes {long_name}'s activity. " * 6, 12)
    metrics = FPDF(unit="mm", format="A4")
    metrics.add_page()
    metrics.set_font("helvetica", size=12)

    assert len(lines) > 1
    for line in lines:
        assert metrics.get_string_width(line) <= PAGE_WIDTH - 40


def test_layout_evaluation_section_content():
    """Verify quality, speed, score, and suggestion lines for the reference scenario."""
    records = [_make_pr(i) for i in range(1, 10)] + [_make_pr(10, state=PullRequestState.OPEN)]
    document = _layout(records)

    text = _page_text(document.pages[2])
    assert "Merge Rate: 90.0% - Excellent" in text
    assert "Comments per PR: 3.0 - Good collaboration" in text
    assert "Average Days to Merge: 1.5 days - Very Fast" in text
    assert "Overall Score: 8.7/10 - Strong Contributor!" in text
    assert "- Continue maintaining excellent performance standards." in text
    assert "- Consider mentoring junior developers." in text


def test_layout_table_renders_at_most_twenty_rows():
    """Verify a 25-record input renders exactly 20 table rows."""
    records = [_make_pr(i) for i in range(1, 26)]
    document = _layout(records)

    assert len(document.table_rows) == 20
    assert [row[1] for row in document.table_rows] == ["MERGED"] * 20


def test_layout_table_truncates_long_titles():
    """Verify a 40-character title renders as 30 characters plus an ellipsis."""
    title = "A" * 40
    records = [_make_pr(1, title=title), _make_pr(2, title="Short title", state=PullRequestState.OPEN)]
    document = _layout(records)

    long_row, short_row = document.table_rows
    assert long_row[0] == "A" * 30 + "..."
    assert short_row == ("Short title", "OPEN", "2", "3", "-")


def test_layout_table_uses_comment_rule():
    """Verify table comment cells use the same rule as the summary totals."""
    document = _layout([_make_pr(1)], comment_rule=lambda pr: pr.comments - 1)

    assert document.table_rows[0][3] == "2"


def test_layout_charts_are_centred_and_break_pages():
    """Verify chart images keep their size, are centred, and never cross the bottom margin."""
    images = [b"chart-1", b"chart-2", b"chart-3"]
    document = _layout([_make_pr(1)], chart_images=images)

    placed = [
        (index, block)
        for index, page in enumerate(document.pages)
        for block in page.blocks
        if isinstance(block, ImageBlock)
    ]
    assert [block.data for _, block in placed] == images
    for _, block in placed:
        assert block.width == CHART_WIDTH
        assert block.height == CHART_HEIGHT
        assert block.x == (PAGE_WIDTH - CHART_WIDTH) / 2
        assert block.y + block.height <= PAGE_HEIGHT - BOTTOM_MARGIN
    assert placed[0][0] != placed[-1][0]


def test_layout_blocks_respect_bottom_margin():
    """Verify no content block starts below the bottom margin on any page."""
    records = [_make_pr(i) for i in range(1, 26)]
    document = _layout(records, chart_images=[b"x"] * 4)

    for page in document.pages:
        for block in page.text_blocks:
            last_line = block.y + (len(block.lines) - 1) * block.line_height
            assert last_line <= PAGE_HEIGHT - BOTTOM_MARGIN


def test_page_composer_breaks_page_when_block_does_not_fit():
    """Verify the page-break check starts a new page and resets the cursor."""
    composer = _PageComposer()
    composer.new_page()
    composer.y = PAGE_HEIGHT - BOTTOM_MARGIN - 5

    composer.check_page_break(5)
    assert len(composer.pages) == 1

    composer.check_page_break(6)
    assert len(composer.pages) == 2
    assert composer.y == TOP_MARGIN


def test_layout_zero_summary_uses_placeholders():
    """Verify an empty summary lays out without division errors."""
    summary = SummaryBundle()
    document = layout(
        employee="Ada Lovelace",
        date_range="2026-01-01 to 2026-01-31",
        repositories=["webcore"],
        records=[],
        summary=summary,
        score=INSUFFICIENT_DATA,
        suggestions=suggest(summary),
        generated_at=GENERATED_AT,
    )

    text = _page_text(document.pages[2])
    assert "Merge Rate: n/a - n/a" in text
    assert "Overall Score: n/a - Insufficient Data" in text
    assert document.table_rows == []


def test_report_filename_uses_employee_and_iso_date():
    """Verify the export file name pattern."""
    expected = "Ada Lovelace_Evaluation_Report_2026-10-17.pdf"
    assert report_filename("Ada Lovelace", date(2026, 10, 17)) == expected


def test_render_pdf_produces_pdf_bytes():
    """Verify serialization yields a PDF with one page per laid-out page."""
    document = _layout([_make_pr(1, title="Café ☃ support")])

    data = render_pdf(document)

    assert data.startswith(b"%PDF")


def test_export_report_writes_file(tmp_path):
    """Verify export writes the named PDF file into the output directory."""
    records = [_make_pr(1)]

    path = export_report(
        output_dir=tmp_path,
        employee="Ada Lovelace",
        date_range="2026-01-01 to 2026-01-31",
        repositories=["webcore"],
        records=records,
        summary=aggregate(records),
        today=date(2026, 10, 17),
    )

    assert path == tmp_path / "Ada Lovelace_Evaluation_Report_2026-10-17.pdf"
    assert path.read_bytes().startswith(b"%PDF")


def test_export_report_failure_raises_and_leaves_no_file(tmp_path):
    """Verify rendering failures surface as ReportGenerationError without partial output."""
    records = [_make_pr(1)]

    with patch("pr_dashboard.report.render_pdf", side_effect=ValueError("bad image")):
        with pytest.raises(ReportGenerationError):
            export_report(
                output_dir=tmp_path,
                employee="Ada Lovelace",
                date_range="2026-01-01 to 2026-01-31",
                repositories=["webcore"],
                records=records,
                summary=aggregate(records),
                today=date(2026, 10, 17),
            )

    assert list(tmp_path.iterdir()) == []


def _write_half_then_fail(self, data):
    with open(self, "wb") as handle:
        handle.write(data[: len(data) // 2])
    raise OSError(28, "No space left on device")


def test_export_report_interrupted_write_leaves_no_file(tmp_path):
    """Verify a write that fails midway leaves neither a truncated report nor a temp file."""
    records = [_make_pr(1)]

    with patch.object(Path, "write_bytes", _write_half_then_fail):
        with pytest.raises(ReportGenerationError):
            export_report(
                output_dir=tmp_path,
                employee="Ada",
                date_range="2026-01-01 to 2026-01-31",
                repositories=["webcore"],
                records=records,
                summary=aggregate(records),
                today=date(2026, 1, 1),
            )

    assert list(tmp_path.iterdir()) == []


def test_write_report_file_replaces_existing_file(tmp_path):
    """Verify the target is replaced in one step and the temp file is gone."""
    target = tmp_path / "reports" / "out.pdf"
    target.parent.mkdir()
    target.write_bytes(b"old")

    assert write_report_file(target, b"%PDF-new") == target

    assert target.read_bytes() == b"%PDF-new"
    assert [path.name for path in target.parent.iterdir()] == ["out.pdf"]


def test_downloaded_report_filename_uses_repo_and_period():
    """Verify downloaded service reports are named after the repository and period."""
    name = downloaded_report_filename("team/webcore", date(2026, 1, 1), date(2026, 1, 31))

    assert name == "team_webcore_PR_Report_2026-01-01_to_2026-01-31.pdf"
