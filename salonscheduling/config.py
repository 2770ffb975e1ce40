"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import BusinessHours


class BusinessHoursConfig(BaseModel):
    """Opening hours and slot settings."""
    start_hour: int = 9
    end_hour: int = 18
    slot_duration_minutes: int = 30
    buffer_minutes: int = 0
    alternative_interval_minutes: int = 15

    @field_validator("slot_duration_minutes", "alternative_interval_minutes")
    @classmethod
    def validate_duration(cls, value: int) -> int:
        """Ensure slot duration and alternative step are positive."""
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, value: int) -> int:
        if value < 0:
            raise ValueError("buffer_minutes must not be negative")
        return value

    @field_validator("start_hour", "end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "BusinessHoursConfig":
        """Ensure the salon opens before it closes."""
        if self.end_hour <= self.start_hour:
            raise ValueError("end_hour must be later than start_hour")
        return self


class Professional(BaseModel):
    """Professional configuration."""
    name: str  # Used as alias
    id: str


class ApiConfig(BaseModel):
    """Booking API connection settings."""
    base_url: str
    token: str = ""
    timeout_seconds: float = 30

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class AppConfig(BaseModel):
    """Application configuration."""
    salon_id: str
    timezone: str = "America/Sao_Paulo"
    business_hours: BusinessHoursConfig = Field(default_factory=BusinessHoursConfig)
    closed_days: List[int] = Field(default_factory=lambda: [6])  # Sunday
    professionals: List[Professional] = Field(default_factory=list)
    data_file: Optional[Path] = None
    api: Optional[ApiConfig] = None

    @field_validator("closed_days")
    @classmethod
    def validate_closed_days(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"closed_days must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @field_validator("professionals")
    @classmethod
    def validate_professionals(cls, value: List[Professional]) -> List[Professional]:
        """Ensure professional aliases and ids are unique."""
        seen_names: set[str] = set()
        seen_ids: set[str] = set()
        for professional in value:
            name_key = professional.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate professional name detected: {professional.name}")
            if professional.id in seen_ids:
                raise ValueError(f"Duplicate professional id detected: {professional.id}")
            seen_names.add(name_key)
            seen_ids.add(professional.id)
        return value

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

        # Relative data files are resolved next to the config file
        if config.data_file is not None and not config.data_file.is_absolute():
            config.data_file = config_path.parent / config.data_file

        return config

    def get_business_hours(self) -> BusinessHours:
        """Build the domain opening-hours model."""
        return BusinessHours(
            start_hour=self.business_hours.start_hour,
            end_hour=self.business_hours.end_hour,
            closed_weekdays=list(self.closed_days),
            timezone=self.timezone,
        )

    def find_professional_by_name(self, name: str) -> Professional | None:
        """Find a professional by their name (alias)."""
        for professional in self.professionals:
            if professional.name.lower() == name.lower():
                return professional
        return None

    def resolve_professional(self, identifier: str) -> str:
        """
        Resolve a professional alias or id to an id.

        Unknown identifiers are passed through as ids, so professionals that
        are not listed in the config can still be queried.
        """
        professional = self.find_professional_by_name(identifier)
        if professional:
            return professional.id
        return identifier


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
