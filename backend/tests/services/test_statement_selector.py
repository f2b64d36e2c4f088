"""Statement Pool Selector — no-repeat law and wraparound reset against the store.

Invariants:
    - No statement repeats for a group until the edition is exhausted
    - Wraparound clears only this edition's markers for this group
    - Soft-deleted statements are never picked
"""

import random
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from mirrio.core.errors import NotFoundError
from mirrio.models import Statement, UsedStatement
from mirrio.services.statement_selector import StatementPoolSelector

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _used(db, group_id):
    result = await db.execute(
        select(UsedStatement.statement_id).where(UsedStatement.group_id == group_id),
    )
    return list(result.scalars().all())


async def test_picks_only_unused_statements(seed, test_db):
    s = await seed(n_statements=4)
    selector = StatementPoolSelector(test_db, random.Random(1))

    seen = []
    for _ in range(4):
        statement = await selector.pick_next(s.group_id)
        assert statement.id not in seen
        await selector.used.mark_used(s.group_id, statement.id, T0)
        seen.append(statement.id)
    await test_db.commit()

    assert set(seen) == set(s.statement_ids)


async def test_exhausted_pool_resets_and_picks_again(seed, test_db):
    s = await seed(n_statements=2)
    foreign = uuid4()
    for sid in s.statement_ids + [foreign]:
        await StatementPoolSelector(test_db).used.mark_used(s.group_id, sid, T0)
    await test_db.commit()

    statement = await StatementPoolSelector(test_db, random.Random(5)).pick_next(s.group_id)
    await test_db.commit()

    assert statement.id in s.statement_ids
    # Only this edition's markers were cleared
    assert await _used(test_db, s.group_id) == [foreign]


async def test_empty_edition_returns_none(seed, test_db):
    s = await seed(n_statements=0)
    assert await StatementPoolSelector(test_db).pick_next(s.group_id) is None


async def test_soft_deleted_statements_excluded(seed, test_db):
    s = await seed(n_statements=2)
    deleted = await test_db.get(Statement, s.statement_ids[0])
    deleted.deleted = True
    await test_db.commit()

    for seed_value in range(10):
        statement = await StatementPoolSelector(
            test_db, random.Random(seed_value),
        ).pick_next(s.group_id)
        assert statement.id == s.statement_ids[1]


async def test_unknown_group_is_not_found(test_db):
    with pytest.raises(NotFoundError):
        await StatementPoolSelector(test_db).pick_next(uuid4())
