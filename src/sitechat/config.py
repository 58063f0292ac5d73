"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SITECHAT__SYNC__COOLDOWN_SECONDS=600)
  2. sitechat.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The bare ``PORT`` variable used by hosting platforms overrides
``server.port``. The config file is optional; all fields have sensible
defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


def _find_config_file() -> str | None:
    """Return the path of the first sitechat.yaml found, or None."""
    candidates = [
        Path("sitechat.yaml"),
        Path(platformdirs.user_config_dir("sitechat")) / "sitechat.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]


class SyncSettings(BaseModel):
    cooldown_seconds: int = 300
    per_page: int = 100
    min_body_chars: int = 40
    request_timeout_seconds: float = 20.0
    max_redirects: int = 3
    block_private_hosts: bool = True
    # Reference behaviour marks the cooldown only after a successful sync.
    mark_cooldown_on_failure: bool = False
    refresh_interval_minutes: int = 60


class RateLimitSettings(BaseModel):
    max_requests: int = 60
    window_seconds: int = 60


class ChatSettings(BaseModel):
    top_k: int = 3
    snippet_chars: int = 320
    log_capacity: int = 200
    wake_reply: str = "How can I help you?"


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SITECHAT__SERVER__HOST=127.0.0.1
        env_prefix="SITECHAT__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    sync: SyncSettings = SyncSettings()
    rate_limit: RateLimitSettings = RateLimitSettings()
    chat: ChatSettings = ChatSettings()
    logging: LoggingSettings = LoggingSettings()

    # Read from the un-prefixed PORT variable
    port: int | None = Field(default=None, validation_alias="PORT")

    @model_validator(mode="after")
    def _apply_port(self) -> Settings:
        if self.port is not None:
            self.server.port = self.port
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
