"""Content ORM — editions (named statement pools) and their statements.

Invariants:
    - Edition.slug is unique
    - Statement.edition_id has no FK: deleting an edition leaves statements orphaned
      (tolerated — they simply stop being reachable through any group)
    - Statements are soft-deleted (deleted=True) so historical rounds keep their reference

Design Decisions:
    - Both entities in one module: they are only ever administered together
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from mirrio.db.base import Base


class Edition(Base):
    """A named pool of statements a group draws from."""
    __tablename__ = "editions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


class Statement(Base):
    """Prompt text shown to a group during a round."""
    __tablename__ = "statements"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    edition_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
