"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from game.logic.rng import validate_seed_hex
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class ServerSettings(BaseSettings):
    model_config = {"env_prefix": "CHRONO_"}

    database_path: str = Field(default="backend/data/chronoline.db", min_length=1)
    use_memory_store: bool = False
    card_catalog_path: str | None = None  # None: the catalog bundled under backend/config
    log_dir: str | None = "backend/logs/game"
    cors_origins: list[str] = ["http://localhost:3002"]
    cleanup_interval_seconds: float = Field(default=3600, ge=1)
    inactive_game_hours: float = Field(default=24, gt=0)
    seed: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v: str | None) -> str | None:
        if v is not None:
            validate_seed_hex(v)
        return v

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
