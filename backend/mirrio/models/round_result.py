"""RoundResult ORM — the closure record of a round.

Invariants:
    - round_id unique: created exactly once, its existence means "closed"
    - winner_id NULL on tie or when no targeted vote was cast
    - votes_count is the winning tally (max_votes), tally holds every candidate's count

Design Decisions:
    - tally as JSON: result screens and notifications read it without re-counting votes
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from mirrio.db.base import Base


class RoundResult(Base):
    __tablename__ = "round_results"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    round_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("rounds.id", ondelete="CASCADE"),
        nullable=False, unique=True,
    )
    winner_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    votes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tally: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    abstentions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    closed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
