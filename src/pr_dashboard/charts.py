"""Chart surfaces for the evaluation report.

Each chart is drawn onto a matplotlib figure wrapped in a :class:`ChartSurface`.
A surface signals through its ``ready`` event once drawing has finished, and
:meth:`ChartSurface.rasterize` waits on that event before capturing PNG bytes.
"""

from __future__ import annotations

import io
import logging
import threading
from typing import Callable, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # Set non-interactive backend before importing pyplot
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from .errors import ReportGenerationError
from .metrics import truncate
from .models import PullRequestRecord, PullRequestState

logger = logging.getLogger(__name__)

CHART_LIMIT = 10
STATE_COLORS = {
    PullRequestState.MERGED: "#10B981",
    PullRequestState.OPEN: "#6B7280",
    PullRequestState.DECLINED: "#EF4444",
}


class ChartSurface:
    """A drawn chart figure that can be captured as a PNG image."""

    def __init__(self, name: str, figure: Figure) -> None:
        self.name = name
        self.figure = figure
        self.ready = threading.Event()

    def draw(self, painter: Callable[[Figure], None]) -> "ChartSurface":
        """Run ``painter`` on the figure and mark the surface ready."""
        painter(self.figure)
        self.figure.tight_layout()
        self.ready.set()
        return self

    def rasterize(self, timeout: Optional[float] = 5.0, dpi: int = 150) -> bytes:
        """Capture the surface as PNG bytes once it is ready.

        Raises:
            ReportGenerationError: If the surface does not become ready within
                ``timeout`` seconds or the figure cannot be saved.
        """
        if not self.ready.wait(timeout):
            raise ReportGenerationError(f"Chart '{self.name}' was not ready for capture.")

        buffer = io.BytesIO()
        try:
            self.figure.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
        except (ValueError, RuntimeError) as exc:
            raise ReportGenerationError(f"Failed to rasterize chart '{self.name}'.") from exc
        return buffer.getvalue()

    def close(self) -> None:
        plt.close(self.figure)


def _paint_state_distribution(records: Sequence[PullRequestRecord]) -> Callable[[Figure], None]:
    def paint(figure: Figure) -> None:
        ax = figure.add_subplot(1, 1, 1)
        states = list(PullRequestState)
        counts = [sum(1 for pr in records if pr.state is state) for state in states]
        labels = [state.value.title() for state in states]

        if sum(counts) == 0:
            ax.text(0.5, 0.5, "No data", ha="center", va="center")
            ax.axis("off")
        else:
            ax.pie(
                counts,
                labels=labels,
                colors=[STATE_COLORS[state] for state in states],
                wedgeprops={"linewidth": 2, "edgecolor": "white"},
                autopct=lambda pct: f"{pct:.0f}%" if pct > 0 else "",
            )
            ax.axis("equal")
        ax.set_title("PR State Distribution", fontweight="bold")

    return paint


def _paint_commits_per_pr(records: Sequence[PullRequestRecord]) -> Callable[[Figure], None]:
    def paint(figure: Figure) -> None:
        ax = figure.add_subplot(1, 1, 1)
        shown = list(records[:CHART_LIMIT])
        labels = [truncate(pr.title, 20) for pr in shown]
        commits = [pr.commits for pr in shown]
        ax.bar(range(len(shown)), commits, color="#3B82F6", edgecolor="#2563EB")
        ax.set_xticks(range(len(shown)))
        ax.set_xticklabels(labels, rotation=45, ha="right", fontsize=8)
        ax.set_ylabel("Commits")
        ax.set_title("Commits per PR", fontweight="bold")
        ax.grid(True, axis="y", alpha=0.3)

    return paint


def _paint_days_to_merge(records: Sequence[PullRequestRecord]) -> Callable[[Figure], None]:
    def paint(figure: Figure) -> None:
        ax = figure.add_subplot(1, 1, 1)
        merged = [
            pr
            for pr in records
            if pr.state is PullRequestState.MERGED and pr.days_to_merge is not None
        ][:CHART_LIMIT]
        positions = list(range(1, len(merged) + 1))
        days = [pr.days_to_merge or 0 for pr in merged]

        ax.set_title("Days to Merge Timeline", fontweight="bold")
        if not merged:
            ax.text(0.5, 0.5, "No merged PRs", ha="center", va="center")
            ax.axis("off")
            return

        ax.plot(positions, days, color="#F59E0B", marker="o", label="Days to Merge")
        ax.fill_between(positions, days, color="#F59E0B", alpha=0.1)
        ax.set_xticks(positions)
        ax.set_xticklabels([f"PR {index}" for index in positions], fontsize=8)
        ax.set_ylabel("Days")
        ax.legend(loc="upper left")
        ax.grid(True, alpha=0.3)

    return paint


def render_charts(records: Sequence[PullRequestRecord]) -> List[ChartSurface]:
    """Draw one surface per report chart for ``records``.

    Raises:
        ReportGenerationError: If any chart fails to draw. Figures created so
            far are closed before the error propagates.
    """
    painters = (
        ("pie-chart", _paint_state_distribution(records)),
        ("bar-chart", _paint_commits_per_pr(records)),
        ("line-chart", _paint_days_to_merge(records)),
    )

    surfaces: List[ChartSurface] = []
    try:
        for name, painter in painters:
            surface = ChartSurface(name, plt.figure(figsize=(7.5, 5)))
            surfaces.append(surface)
            surface.draw(painter)
    except (ValueError, TypeError, RuntimeError) as exc:
        for surface in surfaces:
            surface.close()
        raise ReportGenerationError(f"Failed to draw chart '{name}'.") from exc

    logger.debug(
        "Rendered chart surfaces",
        extra={"charts": len(surfaces), "prs_total": len(records)},
    )
    return surfaces


def rasterize_charts(
    surfaces: Sequence[ChartSurface],
    timeout: Optional[float] = 5.0,
) -> List[bytes]:
    """Rasterize every surface to PNG bytes and release the figures."""
    try:
        return [surface.rasterize(timeout=timeout) for surface in surfaces]
    finally:
        for surface in surfaces:
            surface.close()
