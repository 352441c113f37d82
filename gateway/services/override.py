"""
gateway/services/override.py

Override applier notified by the detection engine.
Logs every confirmed or ended activity with its configured override preset
and, when override_webhook_url is set, forwards the event over HTTP.
Webhook failures are logged and never propagate into the engine.
"""

import asyncio
from datetime import datetime
from typing import Callable

import httpx
import structlog

from config import settings
from detection.schemas import ActivityType, EnablementConfig

logger = structlog.get_logger(__name__)

_WEBHOOK_TIMEOUT_S: float = 5.0


class OverrideNotifier:
    """ActivityListener that applies and removes override presets."""

    def __init__(self, config_provider: Callable[[], EnablementConfig]) -> None:
        self._config_provider = config_provider
        self._pending: set[asyncio.Task] = set()

    def on_activity_confirmed(self, activity: ActivityType) -> None:
        override_name = self._config_provider().override_name(activity)
        logger.info(
            "override_apply_requested",
            activity=activity.value,
            override_name=override_name,
        )
        self._forward("activity_confirmed", activity, override_name)

    def on_activity_ended(self, activity: ActivityType) -> None:
        override_name = self._config_provider().override_name(activity)
        logger.info(
            "override_remove_requested",
            activity=activity.value,
            override_name=override_name,
        )
        self._forward("activity_ended", activity, override_name)

    async def flush(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    def _forward(
        self, event_type: str, activity: ActivityType, override_name: str
    ) -> None:
        if not settings.override_webhook_url:
            return
        task = asyncio.get_running_loop().create_task(
            send_override_event(
                settings.override_webhook_url,
                {
                    "event": event_type,
                    "activity": activity.value,
                    "display_name": activity.display_name,
                    "override_name": override_name,
                    "sent_at": datetime.now().isoformat(),
                },
            )
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


async def send_override_event(url: str, payload: dict) -> bool:
    """POST an override event to the configured webhook. Returns success."""
    try:
        async with httpx.AsyncClient(timeout=_WEBHOOK_TIMEOUT_S) as client:
            response = await client.post(url, json=payload)
            response.raise_for_status()
            logger.info(
                "override_event_sent",
                event_type=payload.get("event"),
                activity=payload.get("activity"),
            )
            return True
    except httpx.TimeoutException:
        logger.warning("override_webhook_timeout", url=url)
        return False
    except httpx.HTTPStatusError as exc:
        logger.error(
            "override_webhook_http_error",
            url=url,
            status=exc.response.status_code,
        )
        return False
    except Exception as exc:
        logger.error("override_webhook_unexpected_error", url=url, error=str(exc))
        return False
