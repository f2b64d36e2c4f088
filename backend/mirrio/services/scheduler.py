"""Round Scheduler — periodic tick that closes due rounds and opens new ones.

Invariants:
    - run_tick never raises: per-unit failures are logged, counted and skipped
    - ConflictError is a lost race with an overlapping tick: counted as skipped, not
      as an error. NoContentError stays an error (needs admin action)
    - One session per round/group so one failure cannot poison the rest of the tick
    - Stateless: every decision is re-derived from the store on each tick, so
      overlapping ticks (two workers, manual trigger) are safe through the store
      constraints
    - Rounds closed in a tick are not reopened in the same tick (cooldown restarts
      at closed_at)

Design Decisions:
    - session_factory is any zero-arg callable returning an async context manager
      yielding an AsyncSession (DatabaseSessionManager.session or async_sessionmaker)
    - Background loop modelled as a module-level worker task started from the
      FastAPI lifespan; the admin tick endpoint calls run_tick directly
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import AsyncContextManager, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from mirrio.config import Settings
from mirrio.core.domain_types import ensure_utc, utc_now
from mirrio.core.errors import ConflictError, MirrioError
from mirrio.core.round_rules import should_open
from mirrio.infrastructure.notifications import NotificationDispatcher
from mirrio.infrastructure.repositories import SqlRoundRepository
from mirrio.services.round_controller import RoundController

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

_scheduler_running = False
_scheduler_task: asyncio.Task | None = None


@dataclass
class TickReport:
    rounds_closed: int = 0
    rounds_created: int = 0
    notifications_sent: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


async def run_tick(
    session_factory: SessionFactory,
    dispatcher: NotificationDispatcher,
    settings: Settings,
    now: datetime | None = None,
) -> TickReport:
    now = ensure_utc(now or utc_now())
    report = TickReport()

    # Phase 1: close expired or fully voted rounds
    try:
        async with session_factory() as db:
            open_round_ids = [r.id for r in await SqlRoundRepository(db).list_open()]
    except Exception as e:
        logger.error(f"Scheduler could not load open rounds: {e}", exc_info=True)
        report.errors += 1
        open_round_ids = []

    for round_id in open_round_ids:
        try:
            async with session_factory() as db:
                controller = RoundController(db, dispatcher, settings)
                outcome = await controller.close_if_due(round_id, now)
        except ConflictError as e:
            logger.info(
                f"Scheduler lost a race on round: {e.message}",
                extra={"round_id": round_id},
            )
            report.skipped += 1
            continue
        except MirrioError as e:
            logger.warning(
                f"Scheduler skipped round: {e.message}",
                extra={"round_id": round_id, "error_code": e.code},
            )
            report.errors += 1
            continue
        except Exception as e:
            logger.error(
                f"Scheduler failed closing round: {e}",
                exc_info=True,
                extra={"round_id": round_id},
            )
            report.errors += 1
            continue
        if outcome is not None and outcome.closed_now:
            report.rounds_closed += 1
            report.notifications_sent += int(outcome.notified)

    # Phase 2: open rounds for idle groups past their cooldown
    try:
        async with session_factory() as db:
            idle = await SqlRoundRepository(db).idle_groups()
    except Exception as e:
        logger.error(f"Scheduler could not load idle groups: {e}", exc_info=True)
        report.errors += 1
        idle = []

    for group_id, last_closed_at in idle:
        if not should_open(False, last_closed_at, now, settings.cooldown):
            continue
        try:
            async with session_factory() as db:
                controller = RoundController(db, dispatcher, settings)
                opened = await controller.open_round(group_id, now)
        except ConflictError as e:
            logger.info(
                f"Scheduler lost a race on group: {e.message}",
                extra={"group_id": group_id},
            )
            report.skipped += 1
            continue
        except MirrioError as e:
            logger.warning(
                f"Scheduler skipped group: {e.message}",
                extra={"group_id": group_id, "error_code": e.code},
            )
            report.errors += 1
            continue
        except Exception as e:
            logger.error(
                f"Scheduler failed opening round: {e}",
                exc_info=True,
                extra={"group_id": group_id},
            )
            report.errors += 1
            continue
        report.rounds_created += 1
        report.notifications_sent += int(opened.notified)

    logger.info("Scheduler tick complete", extra=report.to_dict())
    return report


async def scheduler_loop(
    session_factory: SessionFactory,
    dispatcher: NotificationDispatcher,
    settings: Settings,
    interval_seconds: int = 300,
):
    """Run ticks until stop_scheduler() is called."""
    logger.info(f"Round scheduler started (ticking every {interval_seconds}s)")

    while _scheduler_running:
        try:
            await run_tick(session_factory, dispatcher, settings)
        except Exception as e:
            logger.error(f"Error in scheduler loop: {e}", exc_info=True)

        await asyncio.sleep(interval_seconds)

    logger.info("Round scheduler stopped")


def start_scheduler(
    session_factory: SessionFactory,
    dispatcher: NotificationDispatcher,
    settings: Settings,
) -> None:
    global _scheduler_running, _scheduler_task

    if _scheduler_running:
        logger.warning("Scheduler already running")
        return

    _scheduler_running = True
    _scheduler_task = asyncio.create_task(scheduler_loop(
        session_factory, dispatcher, settings, settings.scheduler_interval_seconds,
    ))


async def stop_scheduler() -> None:
    global _scheduler_running, _scheduler_task

    _scheduler_running = False
    if _scheduler_task is not None:
        _scheduler_task.cancel()
        try:
            await _scheduler_task
        except asyncio.CancelledError:
            pass
        _scheduler_task = None


def is_scheduler_running() -> bool:
    return _scheduler_running
