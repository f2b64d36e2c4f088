"""Group Schemas — request validation and response shapes for groups and comments.

Invariants:
    - GroupCreate/GroupRename.name: 1-100 chars, stripped, non-empty
    - CommentCreate.text: 1-2000 chars, stripped, non-empty
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _strip_non_empty(v: str, field_name: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field_name} cannot be empty or whitespace")
    return v


class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    edition_id: UUID

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_non_empty(v, "name")


class GroupRename(BaseModel):
    name: str = Field(min_length=1, max_length=100)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_non_empty(v, "name")


class GroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    owner_id: UUID
    edition_id: UUID
    created_at: datetime
    member_count: int = 0


class GroupDetailResponse(GroupResponse):
    member_ids: list[UUID] = []
    is_owner: bool = False


class JoinResponse(BaseModel):
    group_id: UUID
    joined: bool


class LeaderboardEntryResponse(BaseModel):
    rank: int
    user_id: UUID
    points: int


class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=2000)

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return _strip_non_empty(v, "text")


class CommentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    round_id: UUID
    author_id: UUID
    text: str
    created_at: datetime
