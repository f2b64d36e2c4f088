"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All store access goes through one typed repository per entity
    - Implementations provided by infrastructure/repositories.py

Design Decisions:
    - Protocol over ABC: structural subtyping, ORM rows satisfy the *Like contracts
      without inheriting from anything
    - Async in Protocol: repository methods do IO, but the core functions that consume
      their results are never async — services orchestrate the calls around pure logic
    - Uniqueness violations surface as IntegrityError from the insert methods; services
      decide whether that is a benign race or a failure
"""

from datetime import datetime
from typing import Protocol

from mirrio.core.domain_types import (
    EditionId, GroupId, RoundId, StatementId, UserId,
)


# ─── Row contracts ───────────────────────────────────────────────

class VoteLike(Protocol):
    """A single ballot. target_id None means abstain."""
    voter_id: UserId
    target_id: UserId | None


class StatementLike(Protocol):
    id: StatementId
    text: str
    edition_id: EditionId
    deleted: bool


class GroupLike(Protocol):
    id: GroupId
    name: str
    owner_id: UserId
    edition_id: EditionId


class RoundLike(Protocol):
    id: RoundId
    group_id: GroupId
    statement_id: StatementId
    issued_at: datetime
    expires_at: datetime
    closed_at: datetime | None


class RoundResultLike(Protocol):
    round_id: RoundId
    winner_id: UserId | None
    votes_count: int
    tally: dict
    abstentions: int
    closed_at: datetime


class PointsLike(Protocol):
    group_id: GroupId
    user_id: UserId
    points: int


# ─── Repositories ────────────────────────────────────────────────

class EditionRepository(Protocol):
    async def list_all(self) -> list: ...
    async def get(self, edition_id: EditionId): ...
    async def create(self, name: str, slug: str, active: bool = True): ...
    async def update(self, edition_id: EditionId, **fields: object): ...
    async def delete(self, edition_id: EditionId) -> bool: ...


class StatementRepository(Protocol):
    async def list_all(
        self, edition_id: EditionId | None = None, include_deleted: bool = False,
    ) -> list[StatementLike]: ...
    async def get(self, statement_id: StatementId) -> StatementLike | None: ...
    async def by_ids(
        self, statement_ids: list[StatementId],
    ) -> dict[StatementId, StatementLike]: ...
    async def create(self, text: str, edition_id: EditionId) -> StatementLike: ...
    async def update_text(
        self, statement_id: StatementId, text: str,
    ) -> StatementLike | None: ...
    async def soft_delete(self, statement_id: StatementId) -> bool: ...
    async def ids_for_edition(self, edition_id: EditionId) -> list[StatementId]: ...


class UsedStatementRepository(Protocol):
    async def used_ids(self, group_id: GroupId) -> set[StatementId]: ...
    async def mark_used(
        self, group_id: GroupId, statement_id: StatementId, used_at: datetime,
    ) -> None: ...
    async def reset(
        self, group_id: GroupId, statement_ids: list[StatementId],
    ) -> int: ...


class GroupRepository(Protocol):
    async def get(self, group_id: GroupId) -> GroupLike | None: ...
    async def create(
        self, name: str, owner_id: UserId, edition_id: EditionId,
    ) -> GroupLike: ...
    async def list_for_user(self, user_id: UserId) -> list[GroupLike]: ...
    async def rename(self, group_id: GroupId, name: str) -> None: ...
    async def delete(self, group_id: GroupId) -> None: ...
    async def member_ids(self, group_id: GroupId) -> set[UserId]: ...
    async def add_member(self, group_id: GroupId, user_id: UserId) -> bool: ...
    async def remove_member(self, group_id: GroupId, user_id: UserId) -> bool: ...


class RoundRepository(Protocol):
    async def get(self, round_id: RoundId) -> RoundLike | None: ...
    async def get_open(self, group_id: GroupId) -> RoundLike | None: ...
    async def add(
        self,
        group_id: GroupId,
        statement_id: StatementId,
        issued_at: datetime,
        expires_at: datetime,
    ) -> RoundLike: ...
    async def mark_closed(self, round_id: RoundId, closed_at: datetime) -> None: ...
    async def list_for_group(self, group_id: GroupId) -> list[RoundLike]: ...
    async def list_open(self) -> list[RoundLike]: ...
    async def last_closed_at(self, group_id: GroupId) -> datetime | None: ...
    async def idle_groups(self) -> list[tuple[GroupId, datetime | None]]: ...


class VoteRepository(Protocol):
    async def upsert(
        self,
        round_id: RoundId,
        voter_id: UserId,
        target_id: UserId | None,
        now: datetime,
    ) -> None: ...
    async def get(self, round_id: RoundId, voter_id: UserId) -> VoteLike | None: ...
    async def list_for_round(self, round_id: RoundId) -> list[VoteLike]: ...
    async def voter_count(
        self, round_id: RoundId, member_ids: set[UserId] | None = None,
    ) -> int: ...


class RoundResultRepository(Protocol):
    async def get(self, round_id: RoundId) -> RoundResultLike | None: ...
    async def add(
        self,
        round_id: RoundId,
        winner_id: UserId | None,
        votes_count: int,
        tally: dict,
        abstentions: int,
        closed_at: datetime,
    ) -> RoundResultLike: ...


class PointsRepository(Protocol):
    async def increment(
        self, group_id: GroupId, user_id: UserId, delta: int, now: datetime,
    ) -> None: ...
    async def list_for_group(self, group_id: GroupId) -> list[PointsLike]: ...


class CommentRepository(Protocol):
    async def add(self, round_id: RoundId, author_id: UserId, text: str): ...
    async def list_for_round(self, round_id: RoundId) -> list: ...
