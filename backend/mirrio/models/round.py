"""Round ORM — one open-to-closed voting cycle for a group around one statement.

Invariants:
    - At most one round per group with closed_at IS NULL (partial unique index,
      enforced by the store — the application pre-check is only an optimisation)
    - closed_at is written once, in the same transaction as the RoundResult row
    - expires_at = issued_at + voting window

Design Decisions:
    - Partial index declared for both PostgreSQL and SQLite so tests exercise the
      same constraint production relies on
    - statement_id FK without cascade: statements are soft-deleted, never removed
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from mirrio.db.base import Base


class Round(Base):
    """Round entity (a.k.a. group statement)."""
    __tablename__ = "rounds"
    __table_args__ = (
        Index(
            "uq_rounds_one_open_per_group",
            "group_id",
            unique=True,
            postgresql_where=text("closed_at IS NULL"),
            sqlite_where=text("closed_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    statement_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("statements.id"), nullable=False,
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
