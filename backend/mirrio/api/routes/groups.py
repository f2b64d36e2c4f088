"""Group Routes — group CRUD, membership and leaderboard.

Invariants:
    - Every route requires X-User-Id (get_current_user_id)
    - Handlers only translate HTTP ↔ service calls; rules live in GroupService
    - MirrioError propagates to the global handler (no HTTPException wrapping)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.api.dependencies import get_current_user_id, get_dispatcher
from mirrio.config import Settings, get_settings
from mirrio.core.domain_types import EditionId, GroupId, UserId
from mirrio.infrastructure.database import get_db
from mirrio.infrastructure.notifications import NotificationDispatcher
from mirrio.schemas.group import (
    GroupCreate, GroupDetailResponse, GroupRename, GroupResponse,
    JoinResponse, LeaderboardEntryResponse,
)
from mirrio.services.group_service import GroupService
from mirrio.services.leaderboard import LeaderboardAccumulator
from mirrio.services.round_controller import RoundController

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/groups", tags=["groups"])


@router.post(
    "", response_model=GroupResponse, status_code=status.HTTP_201_CREATED,
)
async def create_group(
    body: GroupCreate,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    group = await GroupService(db).create_group(
        user_id, body.name, EditionId(body.edition_id),
    )
    return GroupResponse(
        id=group.id,
        name=group.name,
        owner_id=group.owner_id,
        edition_id=group.edition_id,
        created_at=group.created_at,
        member_count=1,
    )


@router.get("", response_model=list[GroupResponse])
async def list_groups(
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Groups the caller owns or belongs to, newest first."""
    rows = await GroupService(db).list_groups(user_id)
    return [
        GroupResponse(
            id=g.id,
            name=g.name,
            owner_id=g.owner_id,
            edition_id=g.edition_id,
            created_at=g.created_at,
            member_count=count,
        )
        for g, count in rows
    ]


@router.get("/{group_id}", response_model=GroupDetailResponse)
async def get_group(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    service = GroupService(db)
    group = await service.require_member(GroupId(group_id), user_id)
    member_ids = sorted(await service.groups.member_ids(group.id), key=str)
    return GroupDetailResponse(
        id=group.id,
        name=group.name,
        owner_id=group.owner_id,
        edition_id=group.edition_id,
        created_at=group.created_at,
        member_count=len(member_ids),
        member_ids=member_ids,
        is_owner=group.owner_id == user_id,
    )


@router.patch("/{group_id}", response_model=GroupResponse)
async def rename_group(
    group_id: UUID,
    body: GroupRename,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    service = GroupService(db)
    group = await service.rename_group(GroupId(group_id), user_id, body.name)
    counts = await service.groups.member_counts([group.id])
    return GroupResponse(
        id=group.id,
        name=group.name,
        owner_id=group.owner_id,
        edition_id=group.edition_id,
        created_at=group.created_at,
        member_count=counts.get(group.id, 0),
    )


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await GroupService(db).delete_group(GroupId(group_id), user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{group_id}/join", response_model=JoinResponse)
async def join_group(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Join by invite code (the group id). Joining twice is a no-op."""
    joined = await GroupService(db).join(GroupId(group_id), user_id)
    return JoinResponse(group_id=group_id, joined=joined)


@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    await GroupService(db).leave(GroupId(group_id), user_id)
    # The remaining members may all have voted already
    await RoundController(db, dispatcher, settings).settle_group(GroupId(group_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{group_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT,
)
async def kick_member(
    group_id: UUID,
    member_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    await GroupService(db).kick(GroupId(group_id), user_id, UserId(member_id))
    await RoundController(db, dispatcher, settings).settle_group(GroupId(group_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{group_id}/leaderboard", response_model=list[LeaderboardEntryResponse],
)
async def get_leaderboard(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await GroupService(db).require_member(GroupId(group_id), user_id)
    entries = await LeaderboardAccumulator(db).leaderboard(GroupId(group_id))
    return [
        LeaderboardEntryResponse(rank=e.rank, user_id=e.user_id, points=e.points)
        for e in entries
    ]
