"""Arcade server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_origin_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class ArcadeServerSettings(BaseSettings):
    model_config = {"env_prefix": "ARCADE_"}

    database_path: str = Field(default="backend/data/arcade.db", min_length=1)
    log_dir: str = Field(default="backend/logs/arcade", min_length=1)
    content_dir: str | None = None  # None uses the datasets bundled with the package
    cors_origins: list[str] = ["http://localhost:8712"]
    leaderboard_size: int = Field(default=3, ge=1)
    leaderboard_max_size: int = Field(default=50, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origin_list(v)

    @model_validator(mode="after")
    def validate_leaderboard_sizes(self) -> Self:
        if self.leaderboard_size > self.leaderboard_max_size:
            raise ValueError("leaderboard_size must not exceed leaderboard_max_size")
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
