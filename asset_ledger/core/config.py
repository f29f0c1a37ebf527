# asset_ledger/core/config.py

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

DEFAULT_SQLITE_URL = "sqlite+aiosqlite:///./asset_ledger.db"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings(BaseModel):
    # =====================================================
    # APPLICATION
    # =====================================================
    app_env: str
    app_version: str = "1.0.0"
    cors_origins: list[str] = Field(default_factory=list)

    # =====================================================
    # DATABASE
    # =====================================================
    db_type: str
    database_url: Optional[str] = None

    # ---- Pool tuning (safe defaults) ----
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_pool: bool = False

    # ---- SSL ----
    # MUST be true in production
    db_ssl_verify: bool = True

    # seconds a connection waits on the sqlite write lock
    sqlite_busy_timeout: float = 30.0

    # =====================================================
    # LEDGER
    # =====================================================
    management_code_pad_width: int = Field(default=5, ge=1, le=12)
    placeholder_code_prefix: str = "TMP-"
    ledger_tx_timeout_seconds: float = Field(default=10.0, gt=0)

    # =====================================================
    # SCHEDULER
    # =====================================================
    enable_scheduler: bool = False
    unfinalized_scan_minutes: int = Field(default=30, ge=1)

    @model_validator(mode="after")
    def _validate(self) -> "Settings":
        if self.app_env not in {"development", "staging", "production"}:
            raise ValueError("APP_ENV must be development | staging | production")

        if self.db_type not in {"postgres", "sqlite"}:
            raise ValueError("DB_TYPE must be postgres | sqlite")

        if self.db_type == "postgres" and not self.database_url:
            raise ValueError("DATABASE_URL is required for Postgres")

        if self.db_type == "sqlite":
            if self.is_production:
                raise ValueError("SQLite is NOT allowed in production")
            if not self.database_url:
                self.database_url = DEFAULT_SQLITE_URL

        if not self.placeholder_code_prefix:
            raise ValueError("PLACEHOLDER_CODE_PREFIX must not be empty")

        return self

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()

        origins = os.getenv("CORS_ORIGINS", "").split(",")

        return cls(
            app_env=os.getenv("APP_ENV", ""),
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            cors_origins=[o.strip() for o in origins if o.strip()],
            db_type=os.getenv("DB_TYPE", ""),
            database_url=os.getenv("DATABASE_URL") or None,
            db_pool_size=int(os.getenv("DB_POOL_SIZE", 10)),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 20)),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", 30)),
            db_echo_pool=_env_bool("DB_ECHO_POOL", "false"),
            db_ssl_verify=_env_bool("DB_SSL_VERIFY", "true"),
            sqlite_busy_timeout=float(os.getenv("SQLITE_BUSY_TIMEOUT", 30)),
            management_code_pad_width=int(
                os.getenv("MANAGEMENT_CODE_PAD_WIDTH", 5)
            ),
            placeholder_code_prefix=os.getenv("PLACEHOLDER_CODE_PREFIX", "TMP-"),
            ledger_tx_timeout_seconds=float(
                os.getenv("LEDGER_TX_TIMEOUT_SECONDS", 10)
            ),
            enable_scheduler=_env_bool("ENABLE_SCHEDULER", "false"),
            unfinalized_scan_minutes=int(
                os.getenv("UNFINALIZED_SCAN_MINUTES", 30)
            ),
        )
