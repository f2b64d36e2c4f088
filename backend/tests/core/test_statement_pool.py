"""Statement Pool — eligible set, no-repeat law and wraparound reset.

Tests:
    - Used statements are excluded while unused ones remain
    - Exhausted pool resets to the full edition (only this edition's markers)
    - Empty edition yields no pick
    - Seeded rng gives reproducible picks
"""

import random
from uuid import uuid4

from mirrio.core.statement_pool import eligible_pool, plan_pick


def test_eligible_pool_excludes_used():
    s1, s2, s3 = uuid4(), uuid4(), uuid4()
    assert set(eligible_pool([s1, s2, s3], {s2})) == {s1, s3}


def test_pick_never_returns_used_statement_while_pool_not_exhausted():
    ids = [uuid4() for _ in range(5)]
    used = set(ids[:4])
    for seed in range(20):
        pick = plan_pick(ids, used, random.Random(seed))
        assert pick.statement_id == ids[4]
        assert not pick.reset
        assert pick.pool_size == 1


def test_exhausted_pool_resets_with_edition_markers_only():
    ids = [uuid4() for _ in range(3)]
    foreign = uuid4()
    pick = plan_pick(ids, set(ids) | {foreign}, random.Random(1))
    assert pick.reset
    assert pick.statement_id in ids
    assert set(pick.reset_ids) == set(ids)
    assert foreign not in pick.reset_ids
    assert pick.pool_size == 3


def test_empty_edition_yields_no_pick():
    pick = plan_pick([], set(), random.Random(1))
    assert pick.statement_id is None
    assert not pick.reset


def test_empty_edition_ignores_foreign_markers():
    pick = plan_pick([], {uuid4()}, random.Random(1))
    assert pick.statement_id is None


def test_seeded_rng_is_reproducible():
    ids = [uuid4() for _ in range(10)]
    first = plan_pick(ids, set(), random.Random(42)).statement_id
    second = plan_pick(list(reversed(ids)), set(), random.Random(42)).statement_id
    assert first == second


def test_full_cycle_covers_every_statement_once():
    ids = [uuid4() for _ in range(6)]
    used: set = set()
    rng = random.Random(3)
    seen = []
    for _ in range(len(ids)):
        pick = plan_pick(ids, used, rng)
        assert not pick.reset
        seen.append(pick.statement_id)
        used.add(pick.statement_id)
    assert sorted(seen, key=str) == sorted(ids, key=str)
