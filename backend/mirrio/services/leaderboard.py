"""Leaderboard Accumulator — awards points and reads the ranked board.

Invariants:
    - award() is an atomic upsert; it never commits (runs inside the close transaction)
    - Points never decrease: delta must be positive
"""

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.core.domain_types import GroupId, UserId, utc_now
from mirrio.core.errors import ValidationError
from mirrio.core.leaderboard import LeaderboardEntry, rank_leaderboard
from mirrio.infrastructure.repositories import SqlPointsRepository


class LeaderboardAccumulator:
    def __init__(self, db: AsyncSession):
        self.points = SqlPointsRepository(db)

    async def award(
        self,
        group_id: GroupId,
        user_id: UserId,
        delta: int = 1,
        now: datetime | None = None,
    ) -> None:
        if delta <= 0:
            raise ValidationError("Points can only be awarded, never revoked", "delta")
        await self.points.increment(group_id, user_id, delta, now or utc_now())

    async def leaderboard(self, group_id: GroupId) -> list[LeaderboardEntry]:
        return rank_leaderboard(await self.points.list_for_group(group_id))
