"""Round Schemas — ballots, active-round view, history and results.

Invariants:
    - VoteCreate.target_user_id None means abstain
    - Responses never expose who voted for whom in an open round
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class VoteCreate(BaseModel):
    target_user_id: UUID | None = None


class RoundResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    round_id: UUID
    winner_id: UUID | None
    votes_count: int
    tally: dict[str, int]
    abstentions: int
    closed_at: datetime


class RoundResponse(BaseModel):
    id: UUID
    group_id: UUID
    statement_id: UUID
    statement_text: str | None
    issued_at: datetime
    expires_at: datetime
    closed_at: datetime | None
    result: RoundResultResponse | None = None


class ActiveRoundResponse(BaseModel):
    round: RoundResponse | None
    votes_received: int
    member_count: int
    has_voted: bool
    own_target_user_id: UUID | None
    next_round_at: datetime | None


class VoteResponse(BaseModel):
    round_id: UUID
    target_user_id: UUID | None
    votes_received: int
    member_count: int
    round_closed: bool
    result: RoundResultResponse | None = None
