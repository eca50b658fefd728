"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import WorkingWindow
from .domain.scoring import DEFAULT_FALLBACK_DISTANCE_KM, AssignmentStrategy


class WorkingHoursConfig(BaseModel):
    """Daily service window offered to customers."""
    open_hour: int = 9
    close_hour: int = 17
    slot_interval_minutes: int = 60

    @field_validator("open_hour", "close_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 24."""
        if not 0 <= v <= 24:
            raise ValueError(f"Hour must be between 0 and 24, got {v}")
        return v

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("slot_interval_minutes must be greater than zero")
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "WorkingHoursConfig":
        """Ensure the configured window opens before it closes."""
        if self.close_hour <= self.open_hour:
            raise ValueError("close_hour must be later than open_hour")
        return self


class DurationConfig(BaseModel):
    """Bounds applied to requested job durations, in hours."""
    default_hours: float = 2
    min_hours: float = 1
    max_hours: float = 8

    @model_validator(mode="after")
    def validate_bounds(self) -> "DurationConfig":
        if self.min_hours <= 0:
            raise ValueError("min_hours must be greater than zero")
        if not self.min_hours <= self.default_hours <= self.max_hours:
            raise ValueError("default_hours must lie between min_hours and max_hours")
        return self


class AssignmentConfig(BaseModel):
    default_strategy: AssignmentStrategy = AssignmentStrategy.BALANCED
    fallback_distance_km: float = DEFAULT_FALLBACK_DISTANCE_KM

    @field_validator("default_strategy", mode="before")
    @classmethod
    def parse_strategy(cls, value):
        """Accept strategy names in any case."""
        return AssignmentStrategy.parse(value)

    @field_validator("fallback_distance_km")
    @classmethod
    def validate_fallback(cls, value: float) -> float:
        if value < 0:
            raise ValueError("fallback_distance_km cannot be negative")
        return value


class NotificationConfig(BaseModel):
    """Outbound webhooks; when unset, events are only logged."""
    webhook_url: Optional[str] = None
    audit_webhook_url: Optional[str] = None
    timeout_seconds: float = 10


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/New_York"
    working_hours: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    durations: DurationConfig = Field(default_factory=DurationConfig)
    assignment: AssignmentConfig = Field(default_factory=AssignmentConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    data_file: Optional[Path] = None

    def get_working_window(self) -> WorkingWindow:
        """Build the domain working window from the configured values."""
        return WorkingWindow(
            open_hour=self.working_hours.open_hour,
            close_hour=self.working_hours.close_hour,
            slot_interval_minutes=self.working_hours.slot_interval_minutes,
            min_duration_hours=self.durations.min_hours,
            max_duration_hours=self.durations.max_hours,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Relative ``data_file`` paths are resolved against the config file's
        directory.

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
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file

        return config


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
