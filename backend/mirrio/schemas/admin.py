"""Admin Schemas — edition and statement management payloads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EditionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9][a-z0-9-]*$")
    active: bool = True

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class EditionUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    slug: str | None = Field(
        None, min_length=1, max_length=100, pattern=r"^[a-z0-9][a-z0-9-]*$",
    )
    active: bool | None = None


class EditionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    slug: str
    active: bool
    created_at: datetime


class StatementCreate(BaseModel):
    text: str = Field(min_length=1, max_length=1000)
    edition_id: UUID

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("text cannot be empty or whitespace")
        return v


class StatementUpdate(BaseModel):
    text: str = Field(min_length=1, max_length=1000)


class StatementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    text: str
    edition_id: UUID
    deleted: bool
    created_at: datetime


class TickResponse(BaseModel):
    rounds_closed: int
    rounds_created: int
    notifications_sent: int
    skipped: int = 0
    errors: int
