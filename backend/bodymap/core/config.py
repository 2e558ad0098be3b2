from typing import Any
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_list(v: Any, default: list[str]) -> list[str]:
    if isinstance(v, str):
        if v.startswith("[") and v.endswith("]"):
            import json

            try:
                return json.loads(v)
            except ValueError:
                pass
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, (list, tuple)):
        return list(v)
    return default


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    CORS_ORIGINS: Any = ["http://localhost:5173"]
    LOG_LEVEL: str = "INFO"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Any) -> list[str]:
        return _split_list(v, ["http://localhost:5173"])

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./bodymap.db"

    # Optional split configuration; when POSTGRES_HOST is set it wins over DATABASE_URL
    POSTGRES_HOST: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "bodymap"

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Synchronization engine guards
    SYNC_MAX_GENERATIONS: int = Field(default=10, ge=1)
    SYNC_MAX_FANOUT: int = Field(default=1000, ge=1)

    # Request boundary
    REQUEST_TIMEOUT_SECONDS: float = 10.0
    SYNC_PASSTHROUGH_ROUTES: Any = [
        "/PainLocationScoring/_getRegion",
        "/PainLocationScoring/_getRegionsForMap",
    ]

    @field_validator("SYNC_PASSTHROUGH_ROUTES", mode="before")
    @classmethod
    def assemble_passthrough_routes(cls, v: Any) -> list[str]:
        return _split_list(v, [])

    @property
    def effective_database_url(self) -> str:
        """Return the database URL to connect to.

        DATABASE_URL is used unless POSTGRES_HOST is set, in which case the
        URL is assembled from the POSTGRES_* parts.
        """
        if self.POSTGRES_HOST:
            return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        return self.DATABASE_URL


settings = Settings()
