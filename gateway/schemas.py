"""
gateway/schemas.py

Pydantic request/response models for the gateway layer.
- AuthorizationUpdate: permission outcome reported by the device
- AutoApplySettingsUpdate: partial update of the auto-apply settings
- EpisodeLogItem: one activity log entry as shown to the user
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from detection.schemas import ActivityType, AuthorizationStatus, EpisodeLogEntry


class AuthorizationUpdate(BaseModel):
    """Motion permission outcome reported by the user's device."""

    status: AuthorizationStatus


class AutoApplySettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""

    enabled: Optional[bool] = None

    walking_enabled: Optional[bool] = None
    running_enabled: Optional[bool] = None
    cycling_enabled: Optional[bool] = None
    other_enabled: Optional[bool] = None

    walking_override: Optional[str] = None
    running_override: Optional[str] = None
    cycling_override: Optional[str] = None
    other_override: Optional[str] = None

    minimum_duration_minutes: Optional[int] = Field(None, ge=0)
    stop_duration_minutes: Optional[int] = Field(None, ge=0)


class EpisodeLogItem(BaseModel):
    """Display form of an EpisodeLogEntry."""

    id: str
    activity_type: ActivityType
    display_name: str
    start_date: datetime
    end_date: Optional[datetime]
    override_name: Optional[str]
    duration_minutes: Optional[float]
    active: bool

    @classmethod
    def from_entry(cls, entry: EpisodeLogEntry) -> "EpisodeLogItem":
        duration = entry.duration
        return cls(
            id=str(entry.id),
            activity_type=entry.activity_type,
            display_name=entry.activity_type.display_name,
            start_date=entry.start_date,
            end_date=entry.end_date,
            override_name=entry.override_name,
            duration_minutes=(
                round(duration.total_seconds() / 60.0, 1) if duration else None
            ),
            active=entry.is_open,
        )
