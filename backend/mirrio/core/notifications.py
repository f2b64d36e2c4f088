"""Round Events — payloads handed to the notification dispatcher.

Invariants:
    - Payload keys are exactly: event, roundId, groupId, statementId, and winnerId
      (winnerId only on round_closed)
    - UUIDs rendered as strings: the payload is JSON-ready
"""

from dataclasses import dataclass

from mirrio.core.domain_types import (
    GroupId, RoundEventType, RoundId, StatementId, UserId,
)


@dataclass(frozen=True)
class RoundEvent:
    event: RoundEventType
    round_id: RoundId
    group_id: GroupId
    statement_id: StatementId
    winner_id: UserId | None = None

    def to_payload(self) -> dict:
        payload = {
            "event": self.event.value,
            "roundId": str(self.round_id),
            "groupId": str(self.group_id),
            "statementId": str(self.statement_id),
        }
        if self.event is RoundEventType.ROUND_CLOSED:
            payload["winnerId"] = str(self.winner_id) if self.winner_id else None
        return payload


def round_opened(
    round_id: RoundId, group_id: GroupId, statement_id: StatementId,
) -> RoundEvent:
    return RoundEvent(RoundEventType.ROUND_OPENED, round_id, group_id, statement_id)


def round_closed(
    round_id: RoundId,
    group_id: GroupId,
    statement_id: StatementId,
    winner_id: UserId | None,
) -> RoundEvent:
    return RoundEvent(
        RoundEventType.ROUND_CLOSED, round_id, group_id, statement_id, winner_id,
    )
