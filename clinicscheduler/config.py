"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.slot_grid import SlotGrid


class ScheduleDefaults(BaseModel):
    """Working hours, slot size and search defaults."""
    work_start_hour: int = 9
    work_end_hour: int = 17
    slot_minutes: int = 30
    duration_minutes: int = 30
    lookahead_days: int = 1

    @field_validator("duration_minutes", "slot_minutes", "lookahead_days")
    @classmethod
    def validate_positive(cls, value: int, info) -> int:
        """Ensure sizes and counts are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return value

    @field_validator("work_start_hour", "work_end_hour")
    @classmethod
    def validate_hour(cls, v: int) -> int:
        """Validate hour is between 0 and 23."""
        if not 0 <= v <= 23:
            raise ValueError(f"Hour must be between 0 and 23, got {v}")
        return v

    @model_validator(mode="after")
    def validate_hours_order(self) -> "ScheduleDefaults":
        """Ensure the working day opens before it closes."""
        if self.work_end_hour <= self.work_start_hour:
            raise ValueError("work_end_hour must be later than work_start_hour")
        return self

    def to_slot_grid(self) -> SlotGrid:
        """Build the slot grid for these working hours."""
        return SlotGrid(
            work_start_hour=self.work_start_hour,
            work_end_hour=self.work_end_hour,
            slot_minutes=self.slot_minutes,
        )


class StoreConfig(BaseModel):
    """Connection settings for the hospital appointment backend."""
    base_url: str = "http://localhost:8080"
    api_token: Optional[str] = None
    timeout_seconds: int = 30
    cache_ttl_seconds: int = 60

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_ttl(cls, value: int) -> int:
        """Zero disables caching; negative values make no sense."""
        if value < 0:
            raise ValueError("cache_ttl_seconds must not be negative")
        return value


class Doctor(BaseModel):
    """Doctor configuration."""
    name: str  # Used as alias
    doctor_id: str  # Identifier the appointment store knows the doctor by

    def display_name(self) -> str:
        return self.doctor_id


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/London"
    schedule: ScheduleDefaults = Field(default_factory=ScheduleDefaults)
    store: StoreConfig = Field(default_factory=StoreConfig)
    doctors: List[Doctor] = Field(default_factory=list)
    closed_weekdays: List[int] = Field(default_factory=list)  # 0=Monday, 6=Sunday

    @field_validator("closed_weekdays")
    @classmethod
    def validate_closed_weekdays(cls, value: List[int]) -> List[int]:
        """Ensure weekdays are in valid range and deduplicated."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"closed_weekdays must be between 0 and 6, got {invalid_days}")
        # Preserve order while removing duplicates
        seen: set[int] = set()
        deduped: List[int] = []
        for day in value:
            if day not in seen:
                deduped.append(day)
                seen.add(day)
        return deduped

    @field_validator("doctors")
    @classmethod
    def validate_doctors(cls, value: List[Doctor]) -> List[Doctor]:
        """Ensure doctor aliases and ids are unique."""
        seen_names: set[str] = set()
        seen_ids: set[str] = set()
        for doctor in value:
            name_key = doctor.name.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate doctor name detected: {doctor.name}")
            if doctor.doctor_id in seen_ids:
                raise ValueError(f"Duplicate doctor id detected: {doctor.doctor_id}")
            seen_names.add(name_key)
            seen_ids.add(doctor.doctor_id)
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

        return cls(**data)

    def find_doctor_by_name(self, name: str) -> Doctor | None:
        """Find a doctor by their alias."""
        for doctor in self.doctors:
            if doctor.name.lower() == name.lower():
                return doctor
        return None

    def resolve_doctor(self, identifier: str) -> str:
        """
        Resolve a doctor alias to the store's doctor id.

        Unknown identifiers are passed through unchanged, since store ids
        are opaque and need not be configured.
        """
        doctor = self.find_doctor_by_name(identifier)
        if doctor:
            return doctor.doctor_id
        return identifier

    def resolve_doctors(self, identifiers: List[str]) -> List[str]:
        """Resolve several identifiers, keeping order and dropping duplicates."""
        resolved: List[str] = []
        for identifier in identifiers:
            doctor_id = self.resolve_doctor(identifier)
            if doctor_id not in resolved:
                resolved.append(doctor_id)
        return resolved


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
