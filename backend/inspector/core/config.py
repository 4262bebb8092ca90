"""Application configuration via pydantic-settings.

All config is sourced from environment variables. Never use os.getenv() directly.
"""

from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BackendName = Literal["postgres", "mysql", "sqlite", "mssql", "mongodb"]

DEFAULT_PORTS: dict[str, int] = {
    "postgres": 5432,
    "mysql": 3306,
    "mssql": 1433,
    "mongodb": 27017,
}


class BackendSettings(BaseSettings):
    """Connection parameters for the single inspected backend (read-only)."""

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    db_backend: BackendName = "sqlite"
    db_host: str = "localhost"
    db_port: int | None = None
    db_user: str = ""
    db_password: str = ""
    db_name: str = ""
    # PostgreSQL schema whose tables are discovered.
    db_schema: str = "public"
    # SQLite database file, opened read-only.
    db_file: str = "test.db"
    # Full MongoDB connection string; overrides host/port/credentials when set.
    db_uri: str | None = None
    # Upper bound on concurrent backend connections.
    db_pool_size: int = 10

    # Comma-separated operator allow-list. Unset means every discovered relation.
    allowed_tables: str | None = None

    @field_validator("db_pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        return v

    @field_validator("db_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
            # Accept the common spellings used in connection strings.
            v = {"postgresql": "postgres", "mongo": "mongodb", "sqlserver": "mssql"}.get(v, v)
        return v

    @property
    def port(self) -> int | None:
        """Configured port, or the backend's well-known default."""
        if self.db_port is not None:
            return self.db_port
        return DEFAULT_PORTS.get(self.db_backend)


class Settings(BaseSettings):
    """Inspector application settings.

    Environment variables are the single source of truth.
    Defaults are development-safe values only.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "development"

    # Nested settings groups
    backend: BackendSettings = BackendSettings()

    # Observability
    log_level: str = "INFO"
    # JSON log lines; unset means JSON outside development
    log_json: bool | None = None
    metrics_enabled: bool = True

    # Served on the landing page as the example base URL
    public_base_url: str = "http://localhost:8000"


settings = Settings()
