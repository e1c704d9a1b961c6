import warnings
from datetime import time
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    Field,
    HttpUrl,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Alterations Scheduler"
    ENVIRONMENT: Literal["local", "test", "staging", "production"] = "local"
    FRONTEND_HOST: str = "http://localhost:5173"

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    SENTRY_DSN: HttpUrl | None = None
    DATABASE_URL: str = "sqlite:///./alterations.db"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        # Normalise Heroku/Supabase style URLs onto the psycopg 3 driver
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace(
                "postgresql://", "postgresql+psycopg://", 1
            )
        elif self.DATABASE_URL.startswith("postgres://"):
            return self.DATABASE_URL.replace("postgres://", "postgresql+psycopg://", 1)
        return self.DATABASE_URL

    # Logging and metrics
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"
    LOG_SQL: bool = False
    ENABLE_METRICS: bool = True

    # Shop calendar
    NON_WORKING_WEEKDAY: int = Field(default=3, ge=0, le=6)  # Thursday
    SCHEDULING_HORIZON_DAYS: int = Field(default=180, ge=1, le=3650)
    SHOP_OPEN_TIME: time = time(10, 0)

    # Daily capacity applied to lazily created work days
    DEFAULT_JACKET_CAPACITY: int = Field(default=5, ge=0)
    DEFAULT_PANTS_CAPACITY: int = Field(default=6, ge=0)

    # Staffing and workload
    DEFAULT_ESTIMATED_MINUTES: int = Field(default=60, ge=1)
    MAX_TAILOR_MINUTES_PER_DAY: int = Field(default=480, ge=1)
    MIN_TAILOR_PROFICIENCY: int = Field(default=3, ge=1, le=5)
    SCHEDULABLE_ROLES: list[str] = ["tailor"]

    # Reject DRESS/OTHER parts instead of counting them against jacket capacity
    STRICT_PART_TYPE_UNITS: bool = False

    @field_validator("SCHEDULABLE_ROLES", mode="before")
    @classmethod
    def _split_roles(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.startswith("["):
            return [role.strip().lower() for role in v.split(",") if role.strip()]
        return v

    @model_validator(mode="after")
    def _warn_on_sqlite_outside_local(self) -> Self:
        if self.ENVIRONMENT in ("staging", "production") and self.DATABASE_URL.startswith(
            "sqlite"
        ):
            warnings.warn(
                "SQLite does not take row locks; use PostgreSQL for concurrent deployments.",
                stacklevel=1,
            )
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
