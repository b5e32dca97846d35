"""Bingo server configuration via environment variables."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class StorageBackend(StrEnum):
    MEMORY = "memory"
    SQLITE = "sqlite"
    SQL = "sql"


class BingoServerSettings(BaseSettings):
    model_config = {"env_prefix": "BINGO_"}

    admin_secret: str = Field(min_length=1)
    host: str = "0.0.0.0"  # noqa: S104
    port: int = Field(default=3000, ge=1, le=65535)

    storage_backend: StorageBackend = StorageBackend.SQLITE
    database_path: str = Field(default="data/bingo-game.db", min_length=1)
    # SQLAlchemy URL, e.g. mysql+pymysql://root@localhost/bingo_db
    database_url: str | None = None

    reconcile_interval_seconds: float = Field(default=60.0, gt=0)
    # 0 deletes an empty room at once; the delayed variant uses 300.
    room_grace_seconds: float = Field(default=0.0, ge=0)
    lock_started_rooms: bool = False

    cors_origins: list[str] = ["http://localhost:3000"]
    log_dir: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v, allow_empty=True)

    @model_validator(mode="after")
    def _require_database_url(self) -> Self:
        if self.storage_backend is StorageBackend.SQL and not self.database_url:
            raise ValueError("BINGO_DATABASE_URL is required when BINGO_STORAGE_BACKEND=sql")
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
