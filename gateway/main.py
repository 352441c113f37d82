"""
gateway/main.py

FastAPI application entry point for the activity override gateway.
Builds the detection engine during the lifespan, starts monitoring when
auto-apply is enabled, and stops it and flushes the activity log on shutdown.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI

from config import settings
from detection.episode_log import EpisodeLog
from detection.lifecycle import ActivityMonitor
from detection.schemas import EnablementConfig
from detection.sources import PushSampleSource
from detection.state_machine import ConfirmationStateMachine
from detection.stores import JsonFileLogStore
from gateway.routers.monitoring import router as monitoring_router
from gateway.routers.samples import router as samples_router
from gateway.services.override import OverrideNotifier

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.log_level.upper())
    ),
    logger_factory=structlog.PrintLoggerFactory(),
    context_class=dict,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def current_enablement() -> EnablementConfig:
    return EnablementConfig.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle: startup and shutdown."""
    source = PushSampleSource(
        available=settings.sensing_available,
        grant_on_request=settings.motion_permission_granted,
        history_max_len=settings.sample_history_max_len,
    )
    episode_log = EpisodeLog(JsonFileLogStore(settings.activity_log_path))
    machine = ConfirmationStateMachine(
        source=source,
        episode_log=episode_log,
        config_provider=current_enablement,
    )
    notifier = OverrideNotifier(current_enablement)
    machine.add_listener(notifier)
    monitor = ActivityMonitor(source, machine)

    app.state.source = source
    app.state.episode_log = episode_log
    app.state.machine = machine
    app.state.monitor = monitor
    app.state.notifier = notifier

    logger.info(
        "gateway_starting",
        auto_apply_enabled=settings.auto_apply_override_enabled,
        activity_log_path=settings.activity_log_path,
    )
    if settings.auto_apply_override_enabled:
        await monitor.start()

    yield

    logger.info("gateway_shutting_down")
    monitor.stop()
    await notifier.flush()
    await episode_log.flush()


app = FastAPI(
    title="Activity Override Gateway",
    description="Continuous activity detection and override auto-apply service",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(samples_router)
app.include_router(monitoring_router)
