"""Statement Pool — eligible-set computation and fair pick with wraparound.

Invariants:
    - Eligible pool = edition statements − statements already used by the group
    - No statement repeats before every other statement of the edition was used
    - Exhausted pool → reset (all of the edition's statements become eligible again)
    - Empty edition → no pick (PoolPick.statement_id is None), never an exception
    - plan_pick is PURE: returns a descriptor, the shell applies the reset and marker

Design Decisions:
    - Pool sorted by id before choosing: a seeded random.Random gives reproducible picks
    - reset_ids lists only this edition's statements, so markers from other editions
      (e.g. data migrated between editions) survive the wraparound
"""

import random
from dataclasses import dataclass, field

from mirrio.core.domain_types import StatementId


@dataclass(frozen=True)
class PoolPick:
    """What the selector decided. Applied by services/statement_selector.py."""
    statement_id: StatementId | None
    reset: bool = False
    reset_ids: list[StatementId] = field(default_factory=list)
    pool_size: int = 0


def eligible_pool(
    edition_statement_ids: list[StatementId], used_ids: set[StatementId],
) -> list[StatementId]:
    """Statements of the edition the group has not seen yet, in stable order."""
    return sorted(
        (sid for sid in set(edition_statement_ids) if sid not in used_ids),
        key=str,
    )


def plan_pick(
    edition_statement_ids: list[StatementId],
    used_ids: set[StatementId],
    rng: random.Random | None = None,
) -> PoolPick:
    """Decide the next statement for a group. Pure — no IO, no mutation."""
    rng = rng or random.Random()
    pool = eligible_pool(edition_statement_ids, used_ids)
    reset = False
    reset_ids: list[StatementId] = []

    if not pool:
        full = eligible_pool(edition_statement_ids, set())
        if not full:
            return PoolPick(statement_id=None)
        reset = True
        reset_ids = [sid for sid in full if sid in used_ids]
        pool = full

    return PoolPick(
        statement_id=rng.choice(pool),
        reset=reset,
        reset_ids=reset_ids,
        pool_size=len(pool),
    )
