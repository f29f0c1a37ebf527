# asset_ledger/core/scheduler.py

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from asset_ledger.core.config import Settings
from asset_ledger.core.db import Database
from asset_ledger.services.assets.identity_service import list_unfinalized_masters

logger = logging.getLogger(__name__)


async def report_unfinalized_masters(database: Database, settings: Settings) -> int:
    async with database.session() as db:
        pending = await list_unfinalized_masters(db, settings=settings)

    if pending:
        logger.warning(
            "%s asset master(s) still under a placeholder code: %s",
            len(pending),
            ", ".join(m.management_code for m in pending),
        )
    return len(pending)


def build_scheduler(database: Database, settings: Settings) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()

    scheduler.add_job(
        report_unfinalized_masters,
        "interval",
        minutes=settings.unfinalized_scan_minutes,
        args=[database, settings],
        id="unfinalized_masters_scan",
        coalesce=True,
        max_instances=1,
    )

    return scheduler
