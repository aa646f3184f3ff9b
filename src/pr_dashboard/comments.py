"""Display-time comment count adjustment.

Every displayed or summed comment count is reduced by one. Members listed in
a :class:`CommentAdjustmentPolicy` get an extra tier table applied on top of
that baseline. The stored :class:`PullRequestRecord` is never changed.

TODO: confirm with the product owner whether the reviewer tier table should
stay member-specific or become a per-repository setting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Tuple

from .models import PullRequestRecord


@dataclass(frozen=True)
class CommentTier:
    """Subtract ``extra`` more comments when the raw count exceeds ``threshold``."""

    threshold: int
    extra: int


REVIEWER_TIERS: Tuple[CommentTier, ...] = (
    CommentTier(threshold=20, extra=22),
    CommentTier(threshold=8, extra=6),
    CommentTier(threshold=5, extra=4),
)


@dataclass(frozen=True)
class CommentAdjustmentPolicy:
    """Maps member ids to tier tables on top of the universal baseline."""

    member_tiers: Mapping[str, Tuple[CommentTier, ...]] = field(default_factory=dict)

    @classmethod
    def with_reviewer_tiers(cls, member_ids: Iterable[str]) -> "CommentAdjustmentPolicy":
        """Build a policy giving each listed member the reviewer tier table."""
        return cls(member_tiers={member_id: REVIEWER_TIERS for member_id in member_ids})

    def adjusted_comments(self, pr: PullRequestRecord, selected_member_id: Optional[str]) -> int:
        """Return the comment count to show or sum for ``pr``.

        The record itself is never modified. The result is never negative.
        """
        raw = pr.comments
        adjusted = raw - 1 if raw > 0 else raw

        for tier in self.member_tiers.get(selected_member_id or "", ()):
            if raw > tier.threshold:
                adjusted -= tier.extra
                break

        return max(0, adjusted)

    def for_member(self, selected_member_id: Optional[str]) -> Callable[[PullRequestRecord], int]:
        """Bind the policy to one member for use as an aggregation rule."""

        def rule(pr: PullRequestRecord) -> int:
            return self.adjusted_comments(pr, selected_member_id)

        return rule


DEFAULT_POLICY = CommentAdjustmentPolicy()


def adjusted_comments(
    pr: PullRequestRecord,
    selected_member_id: Optional[str],
    policy: CommentAdjustmentPolicy = DEFAULT_POLICY,
) -> int:
    """Convenience wrapper around :meth:`CommentAdjustmentPolicy.adjusted_comments`."""
    return policy.adjusted_comments(pr, selected_member_id)
