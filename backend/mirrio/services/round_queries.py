"""Round Queries — read models for the active round and round history.

Invariants:
    - Members only (delegated to GroupService.require_member)
    - Ballots stay anonymous: the active view exposes the count of voters and the
      caller's own ballot, never who voted for whom
    - Read-only: never writes, never commits
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.config import Settings, get_settings
from mirrio.core.domain_types import GroupId, UserId
from mirrio.core.round_rules import next_round_at
from mirrio.infrastructure.repositories import (
    SqlGroupRepository, SqlRoundRepository, SqlRoundResultRepository,
    SqlStatementRepository, SqlVoteRepository,
)
from mirrio.models import Round, RoundResult, Statement, Vote
from mirrio.services.group_service import GroupService


@dataclass
class ActiveRoundView:
    round: Round | None
    statement: Statement | None
    votes_received: int
    member_count: int
    own_vote: Vote | None
    next_round_at: datetime | None


@dataclass
class RoundSummary:
    round: Round
    statement: Statement | None
    result: RoundResult | None


class RoundQueries:
    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.access = GroupService(db)
        self.groups = SqlGroupRepository(db)
        self.rounds = SqlRoundRepository(db)
        self.results = SqlRoundResultRepository(db)
        self.statements = SqlStatementRepository(db)
        self.votes = SqlVoteRepository(db)

    async def active_round(
        self, group_id: GroupId, user_id: UserId,
    ) -> ActiveRoundView:
        await self.access.require_member(group_id, user_id)
        members = await self.groups.member_ids(group_id)
        member_count = len(members)

        round_ = await self.rounds.get_open(group_id)
        if round_ is None:
            last_closed = await self.rounds.last_closed_at(group_id)
            return ActiveRoundView(
                round=None,
                statement=None,
                votes_received=0,
                member_count=member_count,
                own_vote=None,
                next_round_at=next_round_at(last_closed, self.settings.cooldown),
            )

        return ActiveRoundView(
            round=round_,
            statement=await self.statements.get(round_.statement_id),
            votes_received=await self.votes.voter_count(round_.id, members),
            member_count=member_count,
            own_vote=await self.votes.get(round_.id, user_id),
            next_round_at=None,
        )

    async def history(
        self, group_id: GroupId, user_id: UserId,
    ) -> list[RoundSummary]:
        await self.access.require_member(group_id, user_id)
        rounds = await self.rounds.list_for_group(group_id)
        results = await self.results.for_rounds([r.id for r in rounds])
        statements = await self.statements.by_ids(
            list({r.statement_id for r in rounds}),
        )
        return [
            RoundSummary(
                round=r,
                statement=statements.get(r.statement_id),
                result=results.get(r.id),
            )
            for r in rounds
        ]
