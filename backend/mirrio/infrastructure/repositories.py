"""SQLAlchemy Repositories — typed store access, one class per entity.

Invariants:
    - Repositories flush, services commit: one service call == one transaction
    - Upserts (votes, points) are single INSERT … ON CONFLICT statements, never
      read-modify-write
    - Unique-constraint violations propagate as IntegrityError to the calling service

Design Decisions:
    - Dialect-specific insert() picked at runtime: PostgreSQL in production, SQLite in
      tests, same ON CONFLICT semantics on both
    - Group deletion removes dependents explicitly: SQLite does not enforce FK cascades
      unless PRAGMA foreign_keys is on, and the behaviour must not depend on it
"""

from datetime import datetime

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.core.domain_types import (
    EditionId, GroupId, RoundId, StatementId, UserId,
)
from mirrio.models import (
    Comment, Edition, Group, GroupMember, Points, Round, RoundResult,
    Statement, UsedStatement, Vote,
)


def _upsert(db: AsyncSession, model):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise RuntimeError(f"Upsert not supported for dialect '{dialect}'")


class SqlEditionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self) -> list[Edition]:
        result = await self.db.execute(
            select(Edition).order_by(Edition.active.desc(), Edition.name.asc()),
        )
        return list(result.scalars().all())

    async def get(self, edition_id: EditionId) -> Edition | None:
        return await self.db.get(Edition, edition_id)

    async def create(self, name: str, slug: str, active: bool = True) -> Edition:
        edition = Edition(name=name, slug=slug, active=active)
        self.db.add(edition)
        await self.db.flush()
        return edition

    async def update(self, edition_id: EditionId, **fields: object) -> Edition | None:
        edition = await self.get(edition_id)
        if edition is None:
            return None
        for key, value in fields.items():
            setattr(edition, key, value)
        await self.db.flush()
        return edition

    async def delete(self, edition_id: EditionId) -> bool:
        result = await self.db.execute(
            delete(Edition).where(Edition.id == edition_id),
        )
        return result.rowcount > 0


class SqlStatementRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(
        self, edition_id: EditionId | None = None, include_deleted: bool = False,
    ) -> list[Statement]:
        query = select(Statement).order_by(Statement.created_at.desc())
        if edition_id is not None:
            query = query.where(Statement.edition_id == edition_id)
        if not include_deleted:
            query = query.where(Statement.deleted.is_(False))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, statement_id: StatementId) -> Statement | None:
        return await self.db.get(Statement, statement_id)

    async def by_ids(
        self, statement_ids: list[StatementId],
    ) -> dict[StatementId, Statement]:
        """Includes soft-deleted rows: history must still resolve them."""
        if not statement_ids:
            return {}
        result = await self.db.execute(
            select(Statement).where(Statement.id.in_(statement_ids)),
        )
        return {s.id: s for s in result.scalars().all()}

    async def create(self, text: str, edition_id: EditionId) -> Statement:
        statement = Statement(text=text, edition_id=edition_id)
        self.db.add(statement)
        await self.db.flush()
        return statement

    async def update_text(
        self, statement_id: StatementId, text: str,
    ) -> Statement | None:
        statement = await self.get(statement_id)
        if statement is None or statement.deleted:
            return None
        statement.text = text
        await self.db.flush()
        return statement

    async def soft_delete(self, statement_id: StatementId) -> bool:
        result = await self.db.execute(
            update(Statement)
            .where(Statement.id == statement_id)
            .where(Statement.deleted.is_(False))
            .values(deleted=True),
        )
        return result.rowcount > 0

    async def ids_for_edition(self, edition_id: EditionId) -> list[StatementId]:
        result = await self.db.execute(
            select(Statement.id)
            .where(Statement.edition_id == edition_id)
            .where(Statement.deleted.is_(False)),
        )
        return list(result.scalars().all())


class SqlUsedStatementRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def used_ids(self, group_id: GroupId) -> set[StatementId]:
        result = await self.db.execute(
            select(UsedStatement.statement_id)
            .where(UsedStatement.group_id == group_id),
        )
        return set(result.scalars().all())

    async def mark_used(
        self, group_id: GroupId, statement_id: StatementId, used_at: datetime,
    ) -> None:
        self.db.add(UsedStatement(
            group_id=group_id, statement_id=statement_id, used_at=used_at,
        ))
        await self.db.flush()

    async def reset(
        self, group_id: GroupId, statement_ids: list[StatementId],
    ) -> int:
        if not statement_ids:
            return 0
        result = await self.db.execute(
            delete(UsedStatement)
            .where(UsedStatement.group_id == group_id)
            .where(UsedStatement.statement_id.in_(statement_ids)),
        )
        return result.rowcount


class SqlGroupRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, group_id: GroupId) -> Group | None:
        return await self.db.get(Group, group_id)

    async def create(
        self, name: str, owner_id: UserId, edition_id: EditionId,
    ) -> Group:
        group = Group(name=name, owner_id=owner_id, edition_id=edition_id)
        self.db.add(group)
        await self.db.flush()
        self.db.add(GroupMember(group_id=group.id, user_id=owner_id))
        await self.db.flush()
        return group

    async def list_for_user(self, user_id: UserId) -> list[Group]:
        memberships = select(GroupMember.group_id).where(GroupMember.user_id == user_id)
        result = await self.db.execute(
            select(Group)
            .where(or_(Group.owner_id == user_id, Group.id.in_(memberships)))
            .order_by(Group.created_at.desc()),
        )
        return list(result.scalars().all())

    async def rename(self, group_id: GroupId, name: str) -> None:
        await self.db.execute(
            update(Group).where(Group.id == group_id).values(name=name),
        )

    async def delete(self, group_id: GroupId) -> None:
        round_ids = select(Round.id).where(Round.group_id == group_id)
        for model in (Comment, Vote, RoundResult):
            await self.db.execute(
                delete(model).where(model.round_id.in_(round_ids)),
            )
        for model in (Round, Points, UsedStatement, GroupMember):
            await self.db.execute(
                delete(model).where(model.group_id == group_id),
            )
        await self.db.execute(delete(Group).where(Group.id == group_id))
        self.db.expunge_all()

    async def member_ids(self, group_id: GroupId) -> set[UserId]:
        result = await self.db.execute(
            select(GroupMember.user_id).where(GroupMember.group_id == group_id),
        )
        return set(result.scalars().all())

    async def member_counts(self, group_ids: list[GroupId]) -> dict[GroupId, int]:
        if not group_ids:
            return {}
        result = await self.db.execute(
            select(GroupMember.group_id, func.count(GroupMember.id))
            .where(GroupMember.group_id.in_(group_ids))
            .group_by(GroupMember.group_id),
        )
        return {group_id: count for group_id, count in result.all()}

    async def add_member(self, group_id: GroupId, user_id: UserId) -> bool:
        """Add membership. Returns False if the user already belongs to the group."""
        if user_id in await self.member_ids(group_id):
            return False
        self.db.add(GroupMember(group_id=group_id, user_id=user_id))
        await self.db.flush()
        return True

    async def remove_member(self, group_id: GroupId, user_id: UserId) -> bool:
        result = await self.db.execute(
            delete(GroupMember)
            .where(GroupMember.group_id == group_id)
            .where(GroupMember.user_id == user_id),
        )
        return result.rowcount > 0


class SqlRoundRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, round_id: RoundId) -> Round | None:
        return await self.db.get(Round, round_id)

    async def get_open(self, group_id: GroupId) -> Round | None:
        result = await self.db.execute(
            select(Round)
            .where(Round.group_id == group_id)
            .where(Round.closed_at.is_(None)),
        )
        return result.scalar_one_or_none()

    async def add(
        self,
        group_id: GroupId,
        statement_id: StatementId,
        issued_at: datetime,
        expires_at: datetime,
    ) -> Round:
        round_ = Round(
            group_id=group_id,
            statement_id=statement_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        self.db.add(round_)
        await self.db.flush()
        return round_

    async def mark_closed(self, round_id: RoundId, closed_at: datetime) -> None:
        await self.db.execute(
            update(Round)
            .where(Round.id == round_id)
            .where(Round.closed_at.is_(None))
            .values(closed_at=closed_at),
        )

    async def list_for_group(self, group_id: GroupId) -> list[Round]:
        result = await self.db.execute(
            select(Round)
            .where(Round.group_id == group_id)
            .order_by(Round.issued_at.desc()),
        )
        return list(result.scalars().all())

    async def list_open(self) -> list[Round]:
        result = await self.db.execute(
            select(Round)
            .where(Round.closed_at.is_(None))
            .order_by(Round.expires_at.asc()),
        )
        return list(result.scalars().all())

    async def last_closed_at(self, group_id: GroupId) -> datetime | None:
        result = await self.db.execute(
            select(func.max(Round.closed_at)).where(Round.group_id == group_id),
        )
        return result.scalar_one_or_none()

    async def idle_groups(self) -> list[tuple[GroupId, datetime | None]]:
        """Groups with no open round, paired with their last close time."""
        open_rounds = func.sum(case(
            (and_(Round.id.is_not(None), Round.closed_at.is_(None)), 1),
            else_=0,
        ))
        result = await self.db.execute(
            select(Group.id, func.max(Round.closed_at))
            .outerjoin(Round, Round.group_id == Group.id)
            .group_by(Group.id)
            .having(open_rounds == 0),
        )
        return [(group_id, last_closed) for group_id, last_closed in result.all()]


class SqlVoteRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def upsert(
        self,
        round_id: RoundId,
        voter_id: UserId,
        target_id: UserId | None,
        now: datetime,
    ) -> None:
        stmt = _upsert(self.db, Vote).values(
            round_id=round_id,
            voter_id=voter_id,
            target_id=target_id,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["round_id", "voter_id"],
            set_={
                "target_id": stmt.excluded.target_id,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.db.execute(stmt)

    async def get(self, round_id: RoundId, voter_id: UserId) -> Vote | None:
        result = await self.db.execute(
            select(Vote)
            .where(Vote.round_id == round_id)
            .where(Vote.voter_id == voter_id)
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def list_for_round(self, round_id: RoundId) -> list[Vote]:
        result = await self.db.execute(
            select(Vote)
            .where(Vote.round_id == round_id)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def voter_count(
        self, round_id: RoundId, member_ids: set[UserId] | None = None,
    ) -> int:
        """Distinct voters; restricted to member_ids when given (departed members drop out)."""
        stmt = (
            select(func.count(func.distinct(Vote.voter_id)))
            .where(Vote.round_id == round_id)
        )
        if member_ids is not None:
            if not member_ids:
                return 0
            stmt = stmt.where(Vote.voter_id.in_(list(member_ids)))
        result = await self.db.execute(stmt)
        return result.scalar_one()


class SqlRoundResultRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, round_id: RoundId) -> RoundResult | None:
        result = await self.db.execute(
            select(RoundResult).where(RoundResult.round_id == round_id),
        )
        return result.scalar_one_or_none()

    async def for_rounds(self, round_ids: list[RoundId]) -> dict[RoundId, RoundResult]:
        if not round_ids:
            return {}
        result = await self.db.execute(
            select(RoundResult).where(RoundResult.round_id.in_(round_ids)),
        )
        return {r.round_id: r for r in result.scalars().all()}

    async def add(
        self,
        round_id: RoundId,
        winner_id: UserId | None,
        votes_count: int,
        tally: dict,
        abstentions: int,
        closed_at: datetime,
    ) -> RoundResult:
        result = RoundResult(
            round_id=round_id,
            winner_id=winner_id,
            votes_count=votes_count,
            tally=tally,
            abstentions=abstentions,
            closed_at=closed_at,
        )
        self.db.add(result)
        await self.db.flush()
        return result


class SqlPointsRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def increment(
        self, group_id: GroupId, user_id: UserId, delta: int, now: datetime,
    ) -> None:
        stmt = _upsert(self.db, Points).values(
            group_id=group_id, user_id=user_id, points=delta, updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["group_id", "user_id"],
            set_={
                "points": Points.points + stmt.excluded.points,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.db.execute(stmt)

    async def list_for_group(self, group_id: GroupId) -> list[Points]:
        result = await self.db.execute(
            select(Points)
            .where(Points.group_id == group_id)
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())


class SqlCommentRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, round_id: RoundId, author_id: UserId, text: str) -> Comment:
        comment = Comment(round_id=round_id, author_id=author_id, text=text)
        self.db.add(comment)
        await self.db.flush()
        return comment

    async def list_for_round(self, round_id: RoundId) -> list[Comment]:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.round_id == round_id)
            .order_by(Comment.created_at.asc()),
        )
        return list(result.scalars().all())
