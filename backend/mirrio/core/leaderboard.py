"""Leaderboard Ordering — deterministic ranking of per-group point totals.

Invariants:
    - Sorted by points descending, ties broken by user_id ascending
    - Ranks are competition style: equal points share a rank (1, 1, 3)
"""

from dataclasses import dataclass

from mirrio.core.domain_types import UserId
from mirrio.core.repository_protocols import PointsLike


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    user_id: UserId
    points: int


def rank_leaderboard(rows: list[PointsLike]) -> list[LeaderboardEntry]:
    """Order point rows for display. Pure, no IO."""
    ordered = sorted(rows, key=lambda r: (-r.points, str(r.user_id)))
    entries: list[LeaderboardEntry] = []
    for position, row in enumerate(ordered, start=1):
        if entries and entries[-1].points == row.points:
            rank = entries[-1].rank
        else:
            rank = position
        entries.append(LeaderboardEntry(rank=rank, user_id=row.user_id, points=row.points))
    return entries
