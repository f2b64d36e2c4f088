"""Content Admin — edition and statement management behind the admin token.

Invariants:
    - Edition slugs are unique; a duplicate surfaces as ConflictError
    - Statements are soft-deleted: issued rounds keep resolving their text
    - Deleting an edition leaves its statements and groups in place (no FK)
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.core.domain_types import EditionId, StatementId
from mirrio.core.errors import ConflictError, NotFoundError, ValidationError
from mirrio.infrastructure.repositories import (
    SqlEditionRepository, SqlStatementRepository,
)
from mirrio.models import Edition, Statement

logger = logging.getLogger(__name__)


class ContentAdmin:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.editions = SqlEditionRepository(db)
        self.statements = SqlStatementRepository(db)

    # ─── Editions ────────────────────────────────────────────────

    async def list_editions(self) -> list[Edition]:
        return await self.editions.list_all()

    async def create_edition(
        self, name: str, slug: str, active: bool = True,
    ) -> Edition:
        try:
            edition = await self.editions.create(name, slug, active)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"Edition slug '{slug}' already exists")
        logger.info(f"Edition '{slug}' created")
        return edition

    async def update_edition(
        self, edition_id: EditionId, **fields: object,
    ) -> Edition:
        changes = {k: v for k, v in fields.items() if v is not None}
        try:
            edition = await self.editions.update(edition_id, **changes)
            if edition is None:
                raise NotFoundError("Edition", str(edition_id))
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(f"Edition slug '{changes.get('slug')}' already exists")
        return edition

    async def delete_edition(self, edition_id: EditionId) -> None:
        if not await self.editions.delete(edition_id):
            raise NotFoundError("Edition", str(edition_id))
        await self.db.commit()
        logger.info(f"Edition {edition_id} deleted")

    # ─── Statements ──────────────────────────────────────────────

    async def list_statements(
        self, edition_id: EditionId | None = None, include_deleted: bool = False,
    ) -> list[Statement]:
        return await self.statements.list_all(edition_id, include_deleted)

    async def create_statement(self, text: str, edition_id: EditionId) -> Statement:
        text = text.strip()
        if not text:
            raise ValidationError("Statement text cannot be empty", "text")
        if await self.editions.get(edition_id) is None:
            raise NotFoundError("Edition", str(edition_id))
        statement = await self.statements.create(text, edition_id)
        await self.db.commit()
        return statement

    async def update_statement(
        self, statement_id: StatementId, text: str,
    ) -> Statement:
        text = text.strip()
        if not text:
            raise ValidationError("Statement text cannot be empty", "text")
        statement = await self.statements.update_text(statement_id, text)
        if statement is None:
            raise NotFoundError("Statement", str(statement_id))
        await self.db.commit()
        return statement

    async def delete_statement(self, statement_id: StatementId) -> None:
        if not await self.statements.soft_delete(statement_id):
            raise NotFoundError("Statement", str(statement_id))
        await self.db.commit()
