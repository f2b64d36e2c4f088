"""One-off scheduler tick for cron-style deployments.

Usage: python -m mirrio.tick   (or the mirrio-tick console script)

Exit status is 1 when any round or group failed during the tick, so the cron
runner can alert. Races lost to an overlapping tick are skipped, not failures;
the tick itself never raises.
"""

import asyncio
import logging
import sys

from mirrio.config import get_settings
from mirrio.db.session import create_session_factory
from mirrio.infrastructure.notifications import build_dispatcher
from mirrio.infrastructure.observability import setup_logging
from mirrio.services.scheduler import run_tick

logger = logging.getLogger(__name__)


async def run_once() -> int:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    engine, factory = create_session_factory(settings.database_url)
    try:
        report = await run_tick(factory, build_dispatcher(settings), settings)
    finally:
        await engine.dispose()
    return 1 if report.errors else 0


def main() -> None:
    sys.exit(asyncio.run(run_once()))


if __name__ == "__main__":
    main()
