"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, GroupId, RoundId, StatementId, EditionId wrap UUIDs — never use bare UUID in domain logic
    - All valid states encoded as Enums — no raw string matching
    - Every datetime crossing into core/ is timezone-aware UTC (see ensure_utc)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from datetime import datetime, timezone
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
GroupId = NewType("GroupId", UUID)
RoundId = NewType("RoundId", UUID)
StatementId = NewType("StatementId", UUID)
EditionId = NewType("EditionId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class RoundState(str, Enum):
    """Round lifecycle states. CLOSED is terminal."""
    NONE = "none"
    OPEN = "open"
    CLOSED = "closed"


class RoundEventType(str, Enum):
    """Events handed to the notification dispatcher after a transition."""
    ROUND_OPENED = "round_opened"
    ROUND_CLOSED = "round_closed"


# ─── Time ────────────────────────────────────────────────────────

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
