"""Statement Pool Selector — picks the next unused statement for a group.

Invariants:
    - Participates in the caller's transaction: never commits
    - A reset (wraparound) deletes only this edition's used markers for the group
    - Returns None when the edition has no statements; never raises for that

Design Decisions:
    - Decision delegated to core.statement_pool.plan_pick (pure); this class only
      fetches inputs and applies the reset
    - rng injectable: tests seed it, production uses the module-level Random
"""

import logging
import random

from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.core.domain_types import GroupId
from mirrio.core.errors import NotFoundError
from mirrio.core.statement_pool import plan_pick
from mirrio.infrastructure.repositories import (
    SqlGroupRepository, SqlStatementRepository, SqlUsedStatementRepository,
)
from mirrio.models import Statement

logger = logging.getLogger(__name__)


class StatementPoolSelector:
    def __init__(self, db: AsyncSession, rng: random.Random | None = None):
        self.groups = SqlGroupRepository(db)
        self.statements = SqlStatementRepository(db)
        self.used = SqlUsedStatementRepository(db)
        self.rng = rng or random.Random()

    async def pick_next(self, group_id: GroupId) -> Statement | None:
        group = await self.groups.get(group_id)
        if group is None:
            raise NotFoundError("Group", str(group_id))

        edition_ids = await self.statements.ids_for_edition(group.edition_id)
        used = await self.used.used_ids(group_id)
        pick = plan_pick(edition_ids, used, self.rng)

        if pick.statement_id is None:
            logger.warning(
                f"Edition {group.edition_id} has no statements",
                extra={"group_id": group_id},
            )
            return None

        if pick.reset:
            cleared = await self.used.reset(group_id, pick.reset_ids)
            logger.info(
                f"Statement pool exhausted, cleared {cleared} used marker(s)",
                extra={"group_id": group_id},
            )

        return await self.statements.get(pick.statement_id)
