"""Round Rules — pure state-machine decisions for the round lifecycle.

Invariants:
    - round_state: CLOSED iff closed_at is set; no round → NONE; otherwise OPEN
    - should_close: expired (now >= expires_at) OR every member has voted
      (abstentions count as voted)
    - should_open: no open round AND (never had a round OR cooldown elapsed since last close)
    - validate_ballot returns an error descriptor or None — it never raises

Design Decisions:
    - The "next round timer" is derived from the last closed_at, never stored:
      nothing survives between scheduler ticks except rows in the store
    - Self votes are rejected here (not in the schema) so every entry point shares the rule
"""

from datetime import datetime, timedelta

from mirrio.core.domain_types import RoundState, UserId, ensure_utc
from mirrio.core.repository_protocols import RoundLike


def round_state(round_: RoundLike | None) -> RoundState:
    if round_ is None:
        return RoundState.NONE
    if round_.closed_at is not None:
        return RoundState.CLOSED
    return RoundState.OPEN


def compute_expiry(issued_at: datetime, voting_window: timedelta) -> datetime:
    return ensure_utc(issued_at) + voting_window


def is_expired(round_: RoundLike, now: datetime) -> bool:
    return ensure_utc(now) >= ensure_utc(round_.expires_at)


def is_fully_voted(voter_count: int, member_count: int) -> bool:
    """Every member has cast a ballot. An empty group is never 'fully voted'."""
    return member_count > 0 and voter_count >= member_count


def should_close(
    round_: RoundLike, voter_count: int, member_count: int, now: datetime,
) -> bool:
    if round_.closed_at is not None:
        return False
    return is_expired(round_, now) or is_fully_voted(voter_count, member_count)


def next_round_at(
    last_closed_at: datetime | None, cooldown: timedelta,
) -> datetime | None:
    """When the group becomes eligible again. None means immediately."""
    if last_closed_at is None:
        return None
    return ensure_utc(last_closed_at) + cooldown


def should_open(
    has_open_round: bool,
    last_closed_at: datetime | None,
    now: datetime,
    cooldown: timedelta,
) -> bool:
    if has_open_round:
        return False
    due_at = next_round_at(last_closed_at, cooldown)
    return due_at is None or ensure_utc(now) >= due_at


def validate_ballot(
    voter_id: UserId, target_id: UserId | None, member_ids: set[UserId],
) -> dict | None:
    """Check a ballot against the group roster. Pure — returns error descriptor or None."""
    if voter_id not in member_ids:
        return {
            "error_code": "NOT_A_MEMBER",
            "field": "voter_id",
            "message": "Only group members can vote in this round.",
        }
    if target_id is None:
        return None
    if target_id == voter_id:
        return {
            "error_code": "SELF_VOTE",
            "field": "target_user_id",
            "message": "You cannot vote for yourself.",
        }
    if target_id not in member_ids:
        return {
            "error_code": "TARGET_NOT_A_MEMBER",
            "field": "target_user_id",
            "message": "Vote target must be a member of the group.",
        }
    return None
