"""Admin Routes — edition/statement management and the manual scheduler tick.

Invariants:
    - Every route gated by require_admin (X-Admin-Token == ADMIN_TOKEN)
    - POST /admin/scheduler/tick runs exactly one run_tick with fresh sessions per unit
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.api.dependencies import get_dispatcher, require_admin
from mirrio.config import Settings, get_settings
from mirrio.core.domain_types import EditionId, StatementId
from mirrio.infrastructure import database
from mirrio.infrastructure.database import get_db
from mirrio.infrastructure.notifications import NotificationDispatcher
from mirrio.schemas.admin import (
    EditionCreate, EditionResponse, EditionUpdate, StatementCreate,
    StatementResponse, StatementUpdate, TickResponse,
)
from mirrio.services.content_admin import ContentAdmin
from mirrio.services.scheduler import run_tick

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_admin)],
)


# ─── Editions ────────────────────────────────────────────────────

@router.get("/editions", response_model=list[EditionResponse])
async def list_editions(db: AsyncSession = Depends(get_db)):
    """Active editions first, then by name."""
    return await ContentAdmin(db).list_editions()


@router.post(
    "/editions", response_model=EditionResponse, status_code=status.HTTP_201_CREATED,
)
async def create_edition(body: EditionCreate, db: AsyncSession = Depends(get_db)):
    return await ContentAdmin(db).create_edition(body.name, body.slug, body.active)


@router.patch("/editions/{edition_id}", response_model=EditionResponse)
async def update_edition(
    edition_id: UUID, body: EditionUpdate, db: AsyncSession = Depends(get_db),
):
    return await ContentAdmin(db).update_edition(
        EditionId(edition_id), **body.model_dump(exclude_unset=True),
    )


@router.delete("/editions/{edition_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_edition(edition_id: UUID, db: AsyncSession = Depends(get_db)):
    await ContentAdmin(db).delete_edition(EditionId(edition_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Statements ──────────────────────────────────────────────────

@router.get("/statements", response_model=list[StatementResponse])
async def list_statements(
    edition_id: UUID | None = Query(None),
    include_deleted: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    return await ContentAdmin(db).list_statements(
        EditionId(edition_id) if edition_id else None, include_deleted,
    )


@router.post(
    "/statements",
    response_model=StatementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_statement(
    body: StatementCreate, db: AsyncSession = Depends(get_db),
):
    return await ContentAdmin(db).create_statement(
        body.text, EditionId(body.edition_id),
    )


@router.patch("/statements/{statement_id}", response_model=StatementResponse)
async def update_statement(
    statement_id: UUID, body: StatementUpdate, db: AsyncSession = Depends(get_db),
):
    return await ContentAdmin(db).update_statement(StatementId(statement_id), body.text)


@router.delete(
    "/statements/{statement_id}", status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_statement(statement_id: UUID, db: AsyncSession = Depends(get_db)):
    """Soft delete: issued rounds keep their statement."""
    await ContentAdmin(db).delete_statement(StatementId(statement_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── Scheduler ───────────────────────────────────────────────────

@router.post("/scheduler/tick", response_model=TickResponse)
async def trigger_tick(
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Run one scheduler tick now (cron-style trigger)."""
    report = await run_tick(
        database.get_db_manager().session, dispatcher, settings,
    )
    return TickResponse(**report.to_dict())
