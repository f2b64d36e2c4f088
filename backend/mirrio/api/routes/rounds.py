"""Round Routes — active round, history, owner start, ballots and comments.

Invariants:
    - Every route requires X-User-Id
    - State transitions go through RoundController only (single open/close path)
    - An open round's ballots stay anonymous: only counts and the caller's own vote
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.api.dependencies import get_current_user_id, get_dispatcher
from mirrio.config import Settings, get_settings
from mirrio.core.domain_types import GroupId, RoundId, UserId
from mirrio.infrastructure.database import get_db
from mirrio.infrastructure.notifications import NotificationDispatcher
from mirrio.models import Round, RoundResult, Statement
from mirrio.schemas.group import CommentCreate, CommentResponse
from mirrio.schemas.round import (
    ActiveRoundResponse, RoundResponse, RoundResultResponse, VoteCreate,
    VoteResponse,
)
from mirrio.services.group_service import GroupService
from mirrio.services.round_controller import RoundController
from mirrio.services.round_queries import RoundQueries

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["rounds"])


def _round_response(
    round_: Round, statement: Statement | None, result: RoundResult | None = None,
) -> RoundResponse:
    return RoundResponse(
        id=round_.id,
        group_id=round_.group_id,
        statement_id=round_.statement_id,
        statement_text=statement.text if statement else None,
        issued_at=round_.issued_at,
        expires_at=round_.expires_at,
        closed_at=round_.closed_at,
        result=RoundResultResponse.model_validate(result) if result else None,
    )


@router.get("/groups/{group_id}/rounds", response_model=list[RoundResponse])
async def list_rounds(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Round history, newest first, with results for closed rounds."""
    summaries = await RoundQueries(db, settings).history(GroupId(group_id), user_id)
    return [_round_response(s.round, s.statement, s.result) for s in summaries]


@router.get(
    "/groups/{group_id}/rounds/active", response_model=ActiveRoundResponse,
)
async def get_active_round(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    view = await RoundQueries(db, settings).active_round(GroupId(group_id), user_id)
    return ActiveRoundResponse(
        round=_round_response(view.round, view.statement) if view.round else None,
        votes_received=view.votes_received,
        member_count=view.member_count,
        has_voted=view.own_vote is not None,
        own_target_user_id=view.own_vote.target_id if view.own_vote else None,
        next_round_at=view.next_round_at,
    )


@router.post(
    "/groups/{group_id}/rounds",
    response_model=RoundResponse,
    status_code=status.HTTP_201_CREATED,
)
async def start_round(
    group_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Owner starts a round now, regardless of the cooldown."""
    outcome = await RoundController(db, dispatcher, settings).start_round(
        GroupId(group_id), user_id,
    )
    return _round_response(outcome.round, outcome.statement)


@router.post("/rounds/{round_id}/votes", response_model=VoteResponse)
async def submit_vote(
    round_id: UUID,
    body: VoteCreate,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Cast or change a ballot. target_user_id null abstains."""
    target = UserId(body.target_user_id) if body.target_user_id else None
    outcome = await RoundController(db, dispatcher, settings).submit_vote(
        RoundId(round_id), user_id, target,
    )
    result = outcome.closed.result if outcome.closed else None
    return VoteResponse(
        round_id=outcome.round_id,
        target_user_id=outcome.target_id,
        votes_received=outcome.voters,
        member_count=outcome.members,
        round_closed=outcome.closed is not None,
        result=RoundResultResponse.model_validate(result) if result else None,
    )


@router.get("/rounds/{round_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    round_id: UUID,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    comments = await GroupService(db).list_comments(RoundId(round_id), user_id)
    return [CommentResponse.model_validate(c) for c in comments]


@router.post(
    "/rounds/{round_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    round_id: UUID,
    body: CommentCreate,
    user_id: UserId = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    comment = await GroupService(db).add_comment(RoundId(round_id), user_id, body.text)
    return CommentResponse.model_validate(comment)
