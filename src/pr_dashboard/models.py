"""Domain models for pull request evaluation reporting.

These dataclasses model only the subset of upstream payload fields that the
dashboard displays, aggregates, or exports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


class PullRequestState(str, Enum):
    """Lifecycle state of a pull request as reported upstream."""

    OPEN = "OPEN"
    MERGED = "MERGED"
    DECLINED = "DECLINED"


@dataclass(frozen=True, slots=True)
class TeamMember:
    """Represents a workspace member that pull requests can be queried for."""

    uuid: str
    display_name: str
    username: Optional[str] = None


@dataclass(frozen=True, slots=True)
class PullRequestRecord:
    """Represents one pull request returned for a member query."""

    id: int
    title: str
    state: PullRequestState
    link: str
    created_on: datetime
    comments: int = 0
    commits: int = 0
    merged_on: Optional[datetime] = None
    days_to_merge: Optional[float] = None
    target_branch: Optional[str] = None
    source_branch: Optional[str] = None
    merged_by: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SummaryBundle:
    """Aggregate statistics over a set of pull requests."""

    total_prs: int = 0
    total_comments: int = 0
    total_commits: int = 0
    merged_prs: int = 0
    open_prs: int = 0
    declined_prs: int = 0
    avg_days_to_merge: float = 0.0

    @property
    def merge_rate(self) -> Optional[float]:
        """Percentage of merged pull requests, or ``None`` without data."""
        if self.total_prs == 0:
            return None
        return self.merged_prs / self.total_prs * 100

    @property
    def comments_per_pr(self) -> Optional[float]:
        """Average comment count per pull request, or ``None`` without data."""
        if self.total_prs == 0:
            return None
        return self.total_comments / self.total_prs


@dataclass(frozen=True, slots=True)
class Score:
    """Overall performance score with its qualitative label."""

    value: Optional[float]
    label: str

    @property
    def has_data(self) -> bool:
        return self.value is not None


@dataclass(frozen=True, slots=True)
class TextBlock:
    """A run of text lines placed at an absolute position on a page.

    ``y`` is the baseline of the first line; following lines are
    ``line_height`` apart. ``x`` is the left edge, or the centre when
    ``align`` is ``"C"``.
    """

    x: float
    y: float
    lines: Tuple[str, ...]
    font_size: float
    style: str = ""
    align: str = "L"
    color: Tuple[int, int, int] = (0, 0, 0)
    line_height: float = 5.0


@dataclass(frozen=True, slots=True)
class ImageBlock:
    """A raster image placed at an absolute position and size on a page."""

    x: float
    y: float
    width: float
    height: float
    data: bytes


@dataclass(slots=True)
class Page:
    """One page of a report document."""

    blocks: List[object] = field(default_factory=list)

    @property
    def text_blocks(self) -> List[TextBlock]:
        return [block for block in self.blocks if isinstance(block, TextBlock)]

    @property
    def image_blocks(self) -> List[ImageBlock]:
        return [block for block in self.blocks if isinstance(block, ImageBlock)]


@dataclass(slots=True)
class ReportDocument:
    """Paginated evaluation report ready for serialization."""

    title: str
    width: float
    height: float
    pages: List[Page] = field(default_factory=list)
    table_rows: List[Tuple[str, ...]] = field(default_factory=list)
