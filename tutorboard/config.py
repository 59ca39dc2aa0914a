"""
Configuration management using Pydantic models loaded from YAML.
"""

import logging
from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.conversion import parse_local_time, parse_weekday, weekday_name
from .domain.exceptions import InvalidTime, UnknownZone
from .domain.timezones import DEFAULT_REGISTRY

CONFIG_FILENAME = "tutorboard.yaml"


def _validate_zone(value: str) -> str:
    try:
        return DEFAULT_REGISTRY.validate(value)
    except UnknownZone:
        raise ValueError(
            f"Unknown timezone code {value!r}, expected one of {', '.join(DEFAULT_REGISTRY.all_codes())}"
        ) from None


class SlotDefaults(BaseModel):
    """Values offered when a new slot is entered."""
    weekday: str = "Monday"
    time: str = "09:00"

    @field_validator("weekday")
    @classmethod
    def validate_weekday(cls, value: str) -> str:
        """Normalise the weekday to its full name."""
        try:
            return weekday_name(parse_weekday(value))
        except InvalidTime as exc:
            raise ValueError(str(exc)) from None

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        """Ensure the default time is a 24-hour HH:MM time."""
        try:
            return parse_local_time(value).strftime("%H:%M")
        except InvalidTime as exc:
            raise ValueError(str(exc)) from None


class AppConfig(BaseModel):
    """Application configuration."""
    data_file: Path = Path("tutorboard_data.json")
    default_timezone: str = "EST"
    display_timezones: List[str] = Field(default_factory=lambda: list(DEFAULT_REGISTRY.all_codes()))
    log_level: str = "WARNING"
    defaults: SlotDefaults = Field(default_factory=SlotDefaults)

    @field_validator("default_timezone")
    @classmethod
    def validate_default_timezone(cls, value: str) -> str:
        return _validate_zone(value)

    @field_validator("display_timezones")
    @classmethod
    def validate_display_timezones(cls, value: List[str]) -> List[str]:
        """Ensure display zones are known and deduplicated."""
        if not value:
            raise ValueError("display_timezones must list at least one timezone")
        # Preserve order while removing duplicates
        deduped: List[str] = []
        for code in value:
            code = _validate_zone(code)
            if code not in deduped:
                deduped.append(code)
        return deduped

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"See {CONFIG_FILENAME.replace('.yaml', '.example.yaml')} for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative data files live next to the config file
        if not config.data_file.is_absolute():
            config = config.model_copy(update={"data_file": config_path.parent / config.data_file})

        return config

    @classmethod
    def load_or_default(cls, config_path: Path) -> "AppConfig":
        """Load ``config_path`` if it exists, otherwise use built-in defaults."""
        if config_path.exists():
            return cls.load_from_yaml(config_path)
        return cls()


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for tutorboard.yaml in current directory
    config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / CONFIG_FILENAME

    return config_path
