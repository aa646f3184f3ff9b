"""Tests for chart surfaces and rasterization."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pr_dashboard.charts import ChartSurface, rasterize_charts, render_charts
from pr_dashboard.errors import ReportGenerationError
from pr_dashboard.models import PullRequestRecord, PullRequestState

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _make_pr(pr_id: int, state: PullRequestState) -> PullRequestRecord:
    return PullRequestRecord(
        id=pr_id,
        title=f"Implement feature number {pr_id} end to end",
        state=state,
        link=f"https://example.test/pr/{pr_id}",
        created_on=datetime(2026, 1, 1, tzinfo=timezone.utc),
        commits=pr_id,
        days_to_merge=float(pr_id) if state is PullRequestState.MERGED else None,
    )


def test_render_charts_produces_three_ready_surfaces():
    """Verify the state, commits, and days-to-merge surfaces are drawn and ready."""
    records = [_make_pr(i, PullRequestState.MERGED) for i in range(1, 13)] + [
        _make_pr(13, PullRequestState.OPEN),
        _make_pr(14, PullRequestState.DECLINED),
    ]

    surfaces = render_charts(records)

    try:
        assert [surface.name for surface in surfaces] == ["pie-chart", "bar-chart", "line-chart"]
        assert all(surface.ready.is_set() for surface in surfaces)
    finally:
        for surface in surfaces:
            surface.close()


def test_rasterize_charts_returns_png_images():
    """Verify each surface is captured as PNG bytes."""
    images = rasterize_charts(render_charts([_make_pr(1, PullRequestState.MERGED)]))

    assert len(images) == 3
    assert all(image.startswith(PNG_SIGNATURE) for image in images)


def test_rasterize_charts_handles_empty_records():
    """Verify charts still render when there are no pull requests."""
    images = rasterize_charts(render_charts([]))

    assert len(images) == 3


def test_rasterize_unready_surface_raises_report_generation_error():
    """Verify capture waits for the ready signal and fails when it never arrives."""
    surface = ChartSurface("pending", Figure())
    try:
        with pytest.raises(ReportGenerationError):
            surface.rasterize(timeout=0.01)
    finally:
        surface.close()


def test_render_charts_failure_closes_figures_and_raises_report_generation_error():
    """Verify a chart that fails to draw surfaces as ReportGenerationError and leaks no figures."""
    open_before = len(plt.get_fignums())

    def _broken(figure):
        raise ValueError("bad data")

    with patch("pr_dashboard.charts._paint_commits_per_pr", return_value=_broken):
        with pytest.raises(ReportGenerationError):
            render_charts([_make_pr(1, PullRequestState.MERGED)])

    assert len(plt.get_fignums()) == open_before
