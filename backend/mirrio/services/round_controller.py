"""Round Controller — owns the round state machine: open → collect votes → close.

Invariants:
    - open_round: at most one open round per group; the partial unique index is the
      authority, the pre-check only avoids a wasted pick
    - open_round marks the statement used in the same transaction as the round insert
    - close_round is idempotent: an existing RoundResult is returned unchanged and no
      point is awarded twice (result row, closed_at and the award commit together)
    - submit_vote upserts on (round, voter) and closes the round early once every
      current member has voted; ballots of departed members neither count toward
      that nor toward the tally
    - Notifications fire after commit and never affect the outcome

Design Decisions:
    - Decisions live in core (tally_votes, should_close, validate_ballot); this class
      fetches, calls core, writes, commits
    - IntegrityError → rollback → re-read: no savepoints, so the same code path works on
      SQLite and PostgreSQL
    - "Next round timer" is not stored; the scheduler derives it from the last closed_at
"""

import logging
import random
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.config import Settings, get_settings
from mirrio.core.domain_types import GroupId, RoundId, UserId, ensure_utc, utc_now
from mirrio.core.errors import (
    ConflictError, ErrorContext, NoContentError, NotFoundError,
    PermissionDeniedError, ValidationError,
)
from mirrio.core.notifications import RoundEvent, round_closed, round_opened
from mirrio.core.round_rules import (
    compute_expiry, is_expired, should_close, validate_ballot,
)
from mirrio.core.tally import serialize_counts, tally_votes
from mirrio.infrastructure.notifications import (
    LoggingNotificationDispatcher, NotificationDispatcher,
)
from mirrio.infrastructure.repositories import (
    SqlGroupRepository, SqlRoundRepository, SqlRoundResultRepository,
    SqlUsedStatementRepository, SqlVoteRepository,
)
from mirrio.models import Round, RoundResult, Statement
from mirrio.services.leaderboard import LeaderboardAccumulator
from mirrio.services.statement_selector import StatementPoolSelector

logger = logging.getLogger(__name__)


@dataclass
class OpenOutcome:
    round: Round
    statement: Statement
    notified: bool = False


@dataclass
class CloseOutcome:
    result: RoundResult
    closed_now: bool
    notified: bool = False


@dataclass
class VoteOutcome:
    round_id: RoundId
    voter_id: UserId
    target_id: UserId | None
    voters: int
    members: int
    closed: CloseOutcome | None = None


class RoundController:
    def __init__(
        self,
        db: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ):
        self.db = db
        self.dispatcher = dispatcher or LoggingNotificationDispatcher()
        self.settings = settings or get_settings()
        self.groups = SqlGroupRepository(db)
        self.rounds = SqlRoundRepository(db)
        self.votes = SqlVoteRepository(db)
        self.results = SqlRoundResultRepository(db)
        self.used = SqlUsedStatementRepository(db)
        self.selector = StatementPoolSelector(db, rng)
        self.leaderboard = LeaderboardAccumulator(db)

    # ─── Open ────────────────────────────────────────────────────

    async def open_round(
        self, group_id: GroupId, now: datetime | None = None,
    ) -> OpenOutcome:
        now = ensure_utc(now or utc_now())
        ctx = ErrorContext(group_id=str(group_id))

        group = await self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", str(group_id), ctx)
        edition_id = group.edition_id

        if await self.rounds.get_open(group_id) is not None:
            raise ConflictError("Group already has an open round", ctx)

        statement = await self.selector.pick_next(group_id)
        if statement is None:
            await self.db.rollback()
            raise NoContentError(str(edition_id), ctx)

        try:
            await self.used.mark_used(group_id, statement.id, now)
            round_ = await self.rounds.add(
                group_id,
                statement.id,
                issued_at=now,
                expires_at=compute_expiry(now, self.settings.voting_window),
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(
                "Concurrent open detected, another round won the race",
                extra={"group_id": group_id},
            )
            raise ConflictError("Group already has an open round", ctx)

        logger.info(
            f"Round opened, expires {round_.expires_at.isoformat()}",
            extra={
                "group_id": group_id,
                "round_id": round_.id,
                "statement_id": statement.id,
            },
        )
        notified = await self._notify(
            round_opened(round_.id, group_id, statement.id),
        )
        return OpenOutcome(round=round_, statement=statement, notified=notified)

    async def start_round(
        self, group_id: GroupId, requested_by: UserId, now: datetime | None = None,
    ) -> OpenOutcome:
        """Owner-initiated open. Skips the cooldown the scheduler honours."""
        group = await self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", str(group_id))
        if group.owner_id != requested_by:
            raise PermissionDeniedError(
                "Only the group owner can start a round",
                ErrorContext(group_id=str(group_id)),
            )
        return await self.open_round(group_id, now)

    # ─── Close ───────────────────────────────────────────────────

    async def close_round(
        self, round_id: RoundId, now: datetime | None = None,
    ) -> CloseOutcome:
        now = ensure_utc(now or utc_now())

        existing = await self.results.get(round_id)
        if existing is not None:
            return CloseOutcome(result=existing, closed_now=False)

        round_ = await self.rounds.get(round_id)
        if round_ is None:
            raise NotFoundError("Round", str(round_id))
        group_id = round_.group_id
        statement_id = round_.statement_id

        # Ballots of members who have since left are not counted
        members = await self.groups.member_ids(group_id)
        outcome = tally_votes([
            v for v in await self.votes.list_for_round(round_id)
            if v.voter_id in members
        ])

        try:
            result = await self.results.add(
                round_id,
                winner_id=outcome.winner,
                votes_count=outcome.max_votes,
                tally=serialize_counts(outcome.vote_counts),
                abstentions=outcome.abstentions,
                closed_at=now,
            )
            await self.rounds.mark_closed(round_id, now)
            if outcome.winner is not None:
                await self.leaderboard.award(group_id, outcome.winner, 1, now)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await self.results.get(round_id)
            if existing is None:
                raise
            logger.warning(
                "Concurrent close detected, returning existing result",
                extra={"group_id": group_id, "round_id": round_id},
            )
            return CloseOutcome(result=existing, closed_now=False)

        logger.info(
            f"Round closed with {outcome.voters} ballot(s), "
            f"{'winner' if outcome.winner else 'no winner'}",
            extra={
                "group_id": group_id,
                "round_id": round_id,
                "winner_id": outcome.winner,
            },
        )
        notified = await self._notify(
            round_closed(round_id, group_id, statement_id, outcome.winner),
        )
        return CloseOutcome(result=result, closed_now=True, notified=notified)

    async def close_if_due(
        self, round_id: RoundId, now: datetime | None = None,
    ) -> CloseOutcome | None:
        """Close when expired or fully voted; None when the round should stay open."""
        now = ensure_utc(now or utc_now())
        round_ = await self.rounds.get(round_id)
        if round_ is None:
            raise NotFoundError("Round", str(round_id))
        if round_.closed_at is not None:
            return None
        members = await self.groups.member_ids(round_.group_id)
        voters = await self.votes.voter_count(round_id, members)
        if not should_close(round_, voters, len(members), now):
            return None
        return await self.close_round(round_id, now)

    async def settle_group(
        self, group_id: GroupId, now: datetime | None = None,
    ) -> CloseOutcome | None:
        """Re-check the group's open round after its roster shrank."""
        round_ = await self.rounds.get_open(group_id)
        if round_ is None:
            return None
        return await self.close_if_due(round_.id, now)

    # ─── Vote ────────────────────────────────────────────────────

    async def submit_vote(
        self,
        round_id: RoundId,
        voter_id: UserId,
        target_id: UserId | None,
        now: datetime | None = None,
    ) -> VoteOutcome:
        now = ensure_utc(now or utc_now())

        round_ = await self.rounds.get(round_id)
        if round_ is None:
            raise NotFoundError("Round", str(round_id))
        ctx = ErrorContext(group_id=str(round_.group_id), round_id=str(round_id))

        if round_.closed_at is not None or await self.results.get(round_id):
            raise ConflictError("Round is already closed", ctx)
        if is_expired(round_, now):
            raise ConflictError("Voting window has ended", ctx)

        members = await self.groups.member_ids(round_.group_id)
        error = validate_ballot(voter_id, target_id, members)
        if error is not None:
            if error["error_code"] == "NOT_A_MEMBER":
                raise PermissionDeniedError(error["message"], ctx)
            raise ValidationError(error["message"], error["field"], ctx)

        await self.votes.upsert(round_id, voter_id, target_id, now)
        await self.db.commit()

        voters = await self.votes.voter_count(round_id, members)
        closed = None
        if should_close(round_, voters, len(members), now):
            closed = await self.close_round(round_id, now)

        return VoteOutcome(
            round_id=round_id,
            voter_id=voter_id,
            target_id=target_id,
            voters=voters,
            members=len(members),
            closed=closed,
        )

    # ─── Helpers ─────────────────────────────────────────────────

    async def _notify(self, event: RoundEvent) -> bool:
        try:
            return await self.dispatcher.dispatch(event)
        except Exception as e:
            logger.error(
                f"Notification dispatch failed: {e}",
                exc_info=True,
                extra={"round_id": event.round_id, "group_id": event.group_id},
            )
            return False
