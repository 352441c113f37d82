"""
detection/schemas.py

Pydantic data models for the activity detection engine.
- RawSample: one motion-activity reading supplied by the sample source
- EnablementConfig: per-activity switches, override names and durations
- EpisodeLogEntry: one confirmed activity episode as recorded in the log
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from detection.constants import (
    DEFAULT_MINIMUM_DURATION_MIN,
    DEFAULT_STOP_DURATION_MIN,
)


class ActivityType(str, Enum):
    """Canonical activity types an override can be attached to."""

    WALKING = "walking"
    RUNNING = "running"
    CYCLING = "cycling"
    OTHER = "other"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class MotionConfidence(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AuthorizationStatus(str, Enum):
    NOT_DETERMINED = "not_determined"
    AUTHORIZED = "authorized"
    DENIED = "denied"


class RawSample(BaseModel):
    """A single motion-activity reading from the user's device."""

    timestamp: datetime = Field(default_factory=datetime.now)
    walking: bool = False
    running: bool = False
    cycling: bool = False
    automotive: bool = False
    unknown: bool = False
    confidence: MotionConfidence = MotionConfidence.LOW

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        """Store timestamps as naive local time, matching the engine clock."""
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value


class EnablementConfig(BaseModel):
    """User-configured auto-apply settings, read-only to the engine."""

    walking_enabled: bool = False
    running_enabled: bool = False
    cycling_enabled: bool = False
    other_enabled: bool = False

    walking_override: str = ""
    running_override: str = ""
    cycling_override: str = ""
    other_override: str = ""

    minimum_duration_minutes: int = Field(DEFAULT_MINIMUM_DURATION_MIN, ge=0)
    stop_duration_minutes: int = Field(DEFAULT_STOP_DURATION_MIN, ge=0)

    def is_enabled(self, activity: ActivityType) -> bool:
        return getattr(self, f"{activity.value}_enabled")

    def override_name(self, activity: ActivityType) -> str:
        return getattr(self, f"{activity.value}_override")

    @classmethod
    def from_settings(cls, settings: Any) -> EnablementConfig:
        """Build a config snapshot from the auto_apply_* application settings."""
        prefix = "auto_apply_"
        return cls(
            **{
                name: getattr(settings, prefix + name)
                for name in cls.model_fields
            }
        )


class EpisodeLogEntry(BaseModel):
    """
    One confirmed activity episode.

    An entry without end_date is open: the activity was confirmed and has
    not been finalized yet. Entries are immutable; finalization replaces
    the entry with a copy carrying the end date.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    activity_type: ActivityType
    start_date: datetime
    end_date: Optional[datetime] = None
    override_name: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.end_date is None

    @property
    def duration(self) -> Optional[timedelta]:
        if self.end_date is None:
            return None
        return self.end_date - self.start_date
