# brain/config.py

"""
Config module.

This module provides the configuration settings used to bootstrap the mediator
and the contexts wired to it.
"""

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from brain.constants import (
    BRAIN_BASE_DIR,
    BRAIN_CONFIG_DIR,
    BRAIN_CONFIG_ENV_FILE,
    BRAIN_CONFIG_TOML_FILE,
    BRAIN_DEV_MODE,
    BRAIN_LOG_LEVEL,
    BRAIN_MEDIATOR_ACK_TIMEOUT,
    BRAIN_MEDIATOR_REQUEST_TIMEOUT,
    BRAIN_MEDIATOR_SWEEP_INTERVAL,
    BRAIN_MEDIATOR_VALIDATE_MESSAGES,
    BRAIN_MEDIATOR_WARN_ON_OVERWRITE,
)


def _get_env_file_path() -> Path:
    """Get the environment file path from environment or default path."""
    return Path(os.environ.get("BRAIN_CONFIG_ENV_FILE", BRAIN_CONFIG_ENV_FILE)).resolve()


def _get_toml_file_path() -> Path:
    """Get the TOML file path from environment or default path."""
    return Path(
        os.environ.get("BRAIN_CONFIG_TOML_FILE", BRAIN_CONFIG_TOML_FILE)
    ).resolve()


class BrainBaseConfigModel(BaseModel):
    """Paths configuration settings."""

    dir: str | Path = BRAIN_CONFIG_DIR
    toml_file: str | Path = BRAIN_CONFIG_TOML_FILE
    env_file: str | Path = BRAIN_CONFIG_ENV_FILE

    @field_validator("dir", "toml_file", "env_file", mode="before")
    @classmethod
    def _validate_and_resolve_path(cls, v: str | Path) -> Path:
        """Parse the path from a string or path and normalize it to an absolute path."""
        return Path(v).resolve()


class MediatorConfigModel(BaseModel):
    """Mediator configuration settings."""

    request_timeout: float | None = Field(default=BRAIN_MEDIATOR_REQUEST_TIMEOUT, gt=0)
    ack_timeout: float | None = Field(default=BRAIN_MEDIATOR_ACK_TIMEOUT, gt=0)
    sweep_interval: float = Field(default=BRAIN_MEDIATOR_SWEEP_INTERVAL, gt=0)
    validate_messages: bool = BRAIN_MEDIATOR_VALIDATE_MESSAGES
    warn_on_overwrite: bool = BRAIN_MEDIATOR_WARN_ON_OVERWRITE


class BrainConfig(BaseSettings):
    """Main configuration settings."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=_get_env_file_path(),
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        env_nested_delimiter="_",
        env_nested_max_split=1,
        env_prefix="brain_",
        extra="ignore",
        toml_file=_get_toml_file_path(),
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # INIT > ENV > DOTENV > TOML > DEFAULTS
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    base_dir: Path = BRAIN_BASE_DIR
    dev_mode: bool = BRAIN_DEV_MODE
    log_level: str = BRAIN_LOG_LEVEL
    config: BrainBaseConfigModel = BrainBaseConfigModel()
    mediator: MediatorConfigModel = MediatorConfigModel()

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return str(v).upper()


brain_config = BrainConfig()
