# =============================================================================
# Runtime settings, read from the process environment.
# =============================================================================

from __future__ import annotations

import os
from pathlib import Path as OSPath
from typing import Optional

from pydantic import BaseModel

_ROOT = OSPath(__file__).resolve().parent.parent


class Settings(BaseModel):
    store: str = "memory"                      # "memory" or "sql"
    database_url: Optional[str] = None
    cloud_sql_connection_name: Optional[str] = None
    db_user: str = "postgres"
    db_password: str = ""
    db_name: str = "fitness"
    sqlite_path: Optional[str] = None
    rate_limit_requests: int = 300
    rate_limit_window: int = 60                # seconds
    frontend_url: str = "http://localhost:5173"
    weight_unit: str = "kg"
    log_level: str = "INFO"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000

    def resolve_database_url(self) -> str:
        """Pick the SQL backend URL.

        Priority:
          1) DATABASE_URL as given
          2) Cloud SQL (PostgreSQL over the unix socket) if CLOUD_SQL_CONNECTION_NAME is set
          3) FITNESS_DB (path to a SQLite file)
          4) ./data/fitness.db if it exists, else ./fitness.db
        """
        if self.database_url:
            return self.database_url
        if self.cloud_sql_connection_name:
            socket_path = f"/cloudsql/{self.cloud_sql_connection_name}"
            return (
                f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
                f"@/{self.db_name}?host={socket_path}"
            )
        if self.sqlite_path:
            return f"sqlite+aiosqlite:///{self.sqlite_path}"
        data_db = _ROOT / "data" / "fitness.db"
        path = data_db if data_db.exists() else _ROOT / "fitness.db"
        return f"sqlite+aiosqlite:///{path.resolve()}"

    def describe_backend(self) -> str:
        """Safe description of the storage backend (no credentials)."""
        if self.store != "sql":
            return "in-memory"
        if self.database_url:
            return self.database_url.split("://", 1)[0]
        if self.cloud_sql_connection_name:
            return f"Cloud SQL PostgreSQL ({self.cloud_sql_connection_name})"
        return "SQLite"


def load_settings() -> Settings:
    return Settings(
        store=os.getenv("FITNESS_STORE", "memory").strip().lower(),
        database_url=os.getenv("DATABASE_URL") or None,
        cloud_sql_connection_name=os.getenv("CLOUD_SQL_CONNECTION_NAME") or None,
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", ""),
        db_name=os.getenv("DB_NAME", "fitness"),
        sqlite_path=os.getenv("FITNESS_DB") or None,
        rate_limit_requests=int(os.getenv("RATE_LIMIT_REQUESTS", "300")),
        rate_limit_window=int(os.getenv("RATE_LIMIT_WINDOW", "60")),
        frontend_url=os.getenv("FRONTEND_URL", "http://localhost:5173"),
        weight_unit=os.getenv("WEIGHT_UNIT", "kg"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        environment=os.getenv("ENVIRONMENT", "development"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
