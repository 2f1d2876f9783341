"""Application settings using Pydantic Settings."""

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from erlcheck.core.config.loader import ConfigLoader

DEFAULT_CONFIG_PATH = Path.home() / ".erlcheck" / "config.yaml"


class ToolSettings(BaseSettings):
    """External Erlang/OTP tool settings."""

    model_config = SettingsConfigDict(
        env_prefix="ERLCHECK_TOOLS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    erl: str = Field(
        default="erl",
        description="Erlang runtime executable",
    )
    erlc: str = Field(
        default="erlc",
        description="Erlang compiler executable",
    )
    escript: str = Field(
        default="escript",
        description="escript executable used to check escripts",
    )
    rebar3: str = Field(
        default="rebar3",
        description="rebar3 executable name looked up in the project and on PATH",
    )
    command_timeout: int = Field(
        default=300,
        ge=1,
        le=3600,
        description="Timeout in seconds for build tool and compiler commands",
    )
    rpc_timeout: int = Field(
        default=30,
        ge=1,
        le=600,
        description="Timeout in seconds for remote hot-reload calls",
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="ERLCHECK_LOGGING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(
        default="WARNING",
        description="Log level",
    )
    format: str = Field(
        default="%(message)s",
        description="Log format string",
    )
    file: Path | None = Field(
        default=None,
        description="Log file path",
    )
    use_rich: bool = Field(
        default=True,
        description="Use Rich console for output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("file", mode="before")
    @classmethod
    def validate_file(cls, v: str | None) -> Path | None:
        """Validate and convert file to Path."""
        if v is None or v == "":
            return None
        return Path(v)


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ERLCHECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    tools: ToolSettings = Field(default_factory=ToolSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            Settings instance with values from YAML.
        """
        loader = ConfigLoader(path)
        loader.load()

        return cls(
            tools=ToolSettings(**loader.get_section("tools")),
            logging=LoggingSettings(**loader.get_section("logging")),
        )

    @classmethod
    def load(cls) -> "Settings":
        """Load settings from default locations.

        Priority: Environment variables > .env > YAML file > defaults

        Returns:
            Settings instance.
        """
        env_path = os.environ.get("ERLCHECK_CONFIG")
        if env_path:
            return cls.from_yaml(Path(env_path))

        if DEFAULT_CONFIG_PATH.exists():
            return cls.from_yaml(DEFAULT_CONFIG_PATH)

        # Environment variables and .env are automatically loaded by pydantic-settings
        return cls()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings singleton.
    """
    return Settings.load()
