"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import OriginListEnvSettingsSource, parse_origin_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class BombServerSettings(BaseSettings):
    model_config = {"env_prefix": "BOMB_"}

    token_secret: str = Field(min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]
    sweep_interval_seconds: float = Field(default=30, gt=0)
    cache_url: str | None = None  # no cache when unset
    cache_ttl_seconds: int = Field(default=6 * 3600, ge=60)
    max_games: int = Field(default=500, ge=1)
    abandoned_game_ttl_seconds: int = Field(default=300, ge=0)  # 0 disables the reaper
    log_dir: str | None = Field(default=None, min_length=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origin_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, OriginListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
