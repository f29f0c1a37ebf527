# asset_ledger/utils/store_errors.py

import logging
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from asset_ledger.core.exceptions import AppException, InternalError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def translate_store_errors(
    db: AsyncSession,
    *,
    on_integrity: AppException,
):
    """Roll back and re-raise as the ledger taxonomy; raw store errors never escape."""
    try:
        yield

    except AppException:
        await db.rollback()
        raise

    except IntegrityError as exc:
        await db.rollback()
        logger.info("Integrity violation mapped to %s: %s", on_integrity.error_code.value, exc.orig)
        raise on_integrity from exc

    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store failure inside ledger transaction")
        raise InternalError() from exc


@asynccontextmanager
async def translate_read_errors(db: AsyncSession):
    """Read-side counterpart: lookup errors pass through, store failures become Internal."""
    try:
        yield

    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Store failure while reading the ledger")
        raise InternalError() from exc
