"""Game server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from booty.session.ai_turn import AIDelays
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "BOOTY_"}

    max_rooms: int = Field(default=500, ge=1)
    log_dir: str = Field(default="backend/logs/booty", min_length=1)
    cors_origins: list[str] = ["http://localhost:5173"]

    # seconds the AI pauses so humans can follow along
    ai_think_delay: float = Field(default=1.5, ge=0)
    ai_roll_delay: float = Field(default=0.8, ge=0)
    ai_target_delay: float = Field(default=0.5, ge=0)
    ai_end_turn_delay: float = Field(default=1.0, ge=0)

    # per-connection throttle
    rate_limit_per_second: float = Field(default=20.0, gt=0)
    rate_limit_burst: int = Field(default=40, ge=1)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @property
    def ai_delays(self) -> AIDelays:
        return AIDelays(
            think=self.ai_think_delay,
            roll=self.ai_roll_delay,
            target=self.ai_target_delay,
            end_turn=self.ai_end_turn_delay,
        )

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
