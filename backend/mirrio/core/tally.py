"""Vote Tally — plurality winner with "no winner on tie" and separate abstention count.

Invariants:
    - Abstentions (target_id is None) never contribute to any candidate's count
    - max_votes is 0 when no targeted vote was cast
    - winner is set iff exactly one target reaches max_votes
    - Result is independent of ballot order

Design Decisions:
    - One ballot per voter: if the same voter appears twice the later ballot replaces
      the earlier one (mirrors the store's upsert on (round_id, voter_id))
    - vote_counts is a plain dict so it can be persisted as JSON on the round result
"""

from dataclasses import dataclass, field

from mirrio.core.domain_types import UserId
from mirrio.core.repository_protocols import VoteLike


@dataclass(frozen=True)
class TallyResult:
    """Outcome of counting a round's ballots."""
    winner: UserId | None
    vote_counts: dict[UserId, int] = field(default_factory=dict)
    max_votes: int = 0
    abstentions: int = 0
    voters: int = 0

    @property
    def is_tie(self) -> bool:
        return self.winner is None and self.max_votes > 0


def tally_votes(votes: list[VoteLike]) -> TallyResult:
    """Count ballots and determine the winner. Pure, no IO."""
    ballots: dict[UserId, UserId | None] = {}
    for vote in votes:
        ballots[vote.voter_id] = vote.target_id

    counts: dict[UserId, int] = {}
    abstentions = 0
    for target in ballots.values():
        if target is None:
            abstentions += 1
            continue
        counts[target] = counts.get(target, 0) + 1

    max_votes = max(counts.values(), default=0)
    leaders = [user for user, count in counts.items() if count == max_votes]
    winner = leaders[0] if max_votes > 0 and len(leaders) == 1 else None

    return TallyResult(
        winner=winner,
        vote_counts=counts,
        max_votes=max_votes,
        abstentions=abstentions,
        voters=len(ballots),
    )


def serialize_counts(counts: dict[UserId, int]) -> dict[str, int]:
    """JSON-safe copy of vote counts, keys sorted for stable storage."""
    return {str(user): counts[user] for user in sorted(counts, key=str)}
