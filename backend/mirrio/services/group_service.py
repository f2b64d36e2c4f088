"""Group Service — group lifecycle, membership and round comment threads.

Invariants:
    - Only members read a group; only the owner renames, deletes, kicks or starts rounds
    - The owner is always a member and cannot leave or be kicked (delete the group instead)
    - join() is idempotent; the group id doubles as the invite code
    - A group is created against an active edition; its edition never changes
    - Comments are append-only and visible to members only
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.core.domain_types import EditionId, GroupId, RoundId, UserId
from mirrio.core.errors import (
    ErrorContext, NotFoundError, PermissionDeniedError, ValidationError,
)
from mirrio.infrastructure.repositories import (
    SqlCommentRepository, SqlEditionRepository, SqlGroupRepository,
    SqlRoundRepository,
)
from mirrio.models import Comment, Group

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


class GroupService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.groups = SqlGroupRepository(db)
        self.editions = SqlEditionRepository(db)
        self.rounds = SqlRoundRepository(db)
        self.comments = SqlCommentRepository(db)

    # ─── Access checks ───────────────────────────────────────────

    async def require_member(self, group_id: GroupId, user_id: UserId) -> Group:
        group = await self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", str(group_id))
        if user_id not in await self.groups.member_ids(group_id):
            raise PermissionDeniedError(
                "You are not a member of this group",
                ErrorContext(group_id=str(group_id)),
            )
        return group

    async def require_owner(self, group_id: GroupId, user_id: UserId) -> Group:
        group = await self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", str(group_id))
        if group.owner_id != user_id:
            raise PermissionDeniedError(
                "Only the group owner can do this",
                ErrorContext(group_id=str(group_id)),
            )
        return group

    # ─── Lifecycle ───────────────────────────────────────────────

    async def create_group(
        self, owner_id: UserId, name: str, edition_id: EditionId,
    ) -> Group:
        name = name.strip()
        if not name:
            raise ValidationError("Group name cannot be empty", "name")
        edition = await self.editions.get(edition_id)
        if edition is None:
            raise NotFoundError("Edition", str(edition_id))
        if not edition.active:
            raise ValidationError("Edition is not active", "edition_id")

        group = await self.groups.create(name, owner_id, edition_id)
        await self.db.commit()
        logger.info(
            f"Group created on edition {edition.slug}",
            extra={"group_id": group.id, "user_id": owner_id},
        )
        return group

    async def list_groups(self, user_id: UserId) -> list[tuple[Group, int]]:
        groups = await self.groups.list_for_user(user_id)
        counts = await self.groups.member_counts([g.id for g in groups])
        return [(g, counts.get(g.id, 0)) for g in groups]

    async def rename_group(
        self, group_id: GroupId, user_id: UserId, name: str,
    ) -> Group:
        await self.require_owner(group_id, user_id)
        name = name.strip()
        if not name:
            raise ValidationError("Group name cannot be empty", "name")
        await self.groups.rename(group_id, name)
        await self.db.commit()
        group = await self.groups.get(group_id)
        await self.db.refresh(group)
        return group

    async def delete_group(self, group_id: GroupId, user_id: UserId) -> None:
        await self.require_owner(group_id, user_id)
        await self.groups.delete(group_id)
        await self.db.commit()
        logger.info("Group deleted", extra={"group_id": group_id, "user_id": user_id})

    # ─── Membership ──────────────────────────────────────────────

    async def join(self, group_id: GroupId, user_id: UserId) -> bool:
        if await self.groups.get(group_id) is None:
            raise NotFoundError("Group", str(group_id))
        joined = await self.groups.add_member(group_id, user_id)
        await self.db.commit()
        if joined:
            logger.info("Member joined", extra={"group_id": group_id, "user_id": user_id})
        return joined

    async def leave(self, group_id: GroupId, user_id: UserId) -> None:
        group = await self.require_member(group_id, user_id)
        if group.owner_id == user_id:
            raise ValidationError(
                "The owner cannot leave the group; delete it instead", "user_id",
            )
        await self.groups.remove_member(group_id, user_id)
        await self.db.commit()
        logger.info("Member left", extra={"group_id": group_id, "user_id": user_id})

    async def kick(
        self, group_id: GroupId, owner_id: UserId, member_id: UserId,
    ) -> None:
        await self.require_owner(group_id, owner_id)
        if member_id == owner_id:
            raise ValidationError("The owner cannot remove themselves", "user_id")
        if not await self.groups.remove_member(group_id, member_id):
            raise NotFoundError("Member", str(member_id))
        await self.db.commit()
        logger.info(
            "Member removed by owner",
            extra={"group_id": group_id, "user_id": member_id},
        )

    # ─── Comments ────────────────────────────────────────────────

    async def _round_group(self, round_id: RoundId) -> GroupId:
        round_ = await self.rounds.get(round_id)
        if round_ is None:
            raise NotFoundError("Round", str(round_id))
        return round_.group_id

    async def add_comment(
        self, round_id: RoundId, author_id: UserId, text: str,
    ) -> Comment:
        await self.require_member(await self._round_group(round_id), author_id)
        text = text.strip()
        if not text:
            raise ValidationError("Comment cannot be empty", "text")
        if len(text) > MAX_COMMENT_LENGTH:
            raise ValidationError(
                f"Comment exceeds {MAX_COMMENT_LENGTH} characters", "text",
            )
        comment = await self.comments.add(round_id, author_id, text)
        await self.db.commit()
        return comment

    async def list_comments(
        self, round_id: RoundId, user_id: UserId,
    ) -> list[Comment]:
        await self.require_member(await self._round_group(round_id), user_id)
        return await self.comments.list_for_round(round_id)
