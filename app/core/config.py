"""
Application configuration.
All settings are loaded from environment variables (or .env).
Use env.example as a reference for available variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every field has a local default so the API starts with an SQLite file;
    production deployments set DATABASE_URL to PostgreSQL.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # CORS: comma-separated (e.g. https://game.example.com,http://localhost:3000). Empty = default list in code.
    cors_origins: str = ""

    # ===========================================
    # STORAGE
    # ===========================================
    # sql = SQLAlchemy tables (persistent), memory = process-local maps (dev/tests only, reset on restart)
    storage_backend: str = "sql"
    database_url: str = "sqlite:///./token_service.db"
    # Create tables on startup (no migrations in this service)
    db_auto_create: bool = True
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_connect_timeout: int = 5

    # ===========================================
    # TOKEN LIFECYCLE
    # ===========================================
    token_ttl_days: int = 30
    # NOWPayments terminal states that count as paid
    paid_statuses: str = "confirmed,finished"
    # Fresh token values tried when a generated value collides with an existing one
    token_issue_attempts: int = 3

    # ===========================================
    # ADMIN API
    # ===========================================
    admin_api_key: str | None = None  # Optional, but recommended outside local

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("paid_statuses")
    @classmethod
    def normalize_paid_statuses(cls, v: str) -> str:
        """Store lower-cased, comma-separated; parse when needed."""
        return v.lower().strip()

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in ("sql", "memory"):
            raise ValueError("storage_backend must be 'sql' or 'memory'")
        return v

    @property
    def paid_statuses_set(self) -> frozenset[str]:
        """Get paid statuses as a set."""
        return frozenset(s.strip() for s in self.paid_statuses.split(",") if s.strip())

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
