from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func


class TimestampMixin:
    # assigned by the store, never by the application clock
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now()
    )

    # fetch server-side values on flush instead of lazy-loading them later
    __mapper_args__ = {"eager_defaults": True}


class LedgerEntryMixin:
    # optional client dedup token; each table declares its own unique constraint
    request_token = Column(String(64), nullable=True)

    __mapper_args__ = {"eager_defaults": True}
