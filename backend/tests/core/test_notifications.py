"""Round Events — payload shape handed to the dispatcher."""

from uuid import uuid4

from mirrio.core.domain_types import RoundEventType
from mirrio.core.notifications import round_closed, round_opened


def test_round_opened_payload_has_no_winner_key():
    rid, gid, sid = uuid4(), uuid4(), uuid4()
    event = round_opened(rid, gid, sid)
    assert event.event is RoundEventType.ROUND_OPENED
    assert event.to_payload() == {
        "event": "round_opened",
        "roundId": str(rid),
        "groupId": str(gid),
        "statementId": str(sid),
    }


def test_round_closed_payload_carries_winner():
    rid, gid, sid, winner = uuid4(), uuid4(), uuid4(), uuid4()
    payload = round_closed(rid, gid, sid, winner).to_payload()
    assert payload["event"] == "round_closed"
    assert payload["winnerId"] == str(winner)


def test_round_closed_without_winner_sends_null():
    payload = round_closed(uuid4(), uuid4(), uuid4(), None).to_payload()
    assert "winnerId" in payload
    assert payload["winnerId"] is None
