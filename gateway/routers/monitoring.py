"""
gateway/routers/monitoring.py

Monitoring control, auto-apply settings and activity log endpoints.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Query, Request

from config import settings
from detection.constants import ACTIVITY_LOG_DISPLAY_LIMIT
from detection.schemas import EnablementConfig
from gateway.schemas import AutoApplySettingsUpdate, EpisodeLogItem

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/monitoring")
async def get_monitoring_status(request: Request) -> dict[str, Any]:
    return request.app.state.monitor.status()


@router.post("/monitoring/start")
async def start_monitoring(request: Request) -> dict[str, Any]:
    monitor = request.app.state.monitor
    await monitor.start()
    return monitor.status()


@router.post("/monitoring/stop")
async def stop_monitoring(request: Request) -> dict[str, Any]:
    monitor = request.app.state.monitor
    monitor.stop()
    return monitor.status()


def _auto_apply_settings() -> dict[str, Any]:
    return {
        "enabled": settings.auto_apply_override_enabled,
        **EnablementConfig.from_settings(settings).model_dump(),
    }


@router.get("/settings/auto-apply")
async def get_auto_apply_settings() -> dict[str, Any]:
    return _auto_apply_settings()


@router.put("/settings/auto-apply")
async def update_auto_apply_settings(
    update: AutoApplySettingsUpdate,
    request: Request,
) -> dict[str, Any]:
    """
    Update auto-apply settings.

    Changes apply from the next classified sample; timers already armed
    keep their original durations. Toggling enabled starts or stops
    monitoring.
    """
    changes = update.model_dump(exclude_none=True)
    enabled = changes.pop("enabled", None)

    for name, value in changes.items():
        setattr(settings, f"auto_apply_{name}", value)

    if enabled is not None:
        # Stays off when sensing is unavailable or permission is denied
        settings.auto_apply_override_enabled = (
            await request.app.state.monitor.set_enabled(enabled)
        )

    logger.info(
        "auto_apply_settings_updated",
        fields=sorted(changes) + (["enabled"] if enabled is not None else []),
    )
    return _auto_apply_settings()


@router.get("/activity-log")
async def get_activity_log(
    request: Request,
    limit: int = Query(ACTIVITY_LOG_DISPLAY_LIMIT, ge=1),
) -> list[EpisodeLogItem]:
    """Most recent activity episodes, newest first."""
    entries = request.app.state.episode_log.entries()[:limit]
    return [EpisodeLogItem.from_entry(entry) for entry in entries]


@router.delete("/activity-log")
async def clear_activity_log(request: Request) -> dict[str, str]:
    request.app.state.episode_log.clear()
    return {"status": "cleared"}
