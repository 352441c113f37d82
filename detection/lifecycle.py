"""
detection/lifecycle.py

Start/stop orchestration for activity monitoring.
Gates monitoring on sensor availability and authorization, and hands
every delivered sample back onto the owning event loop before it reaches
the state machine.
"""

import asyncio
from typing import Any, Optional

import structlog

from detection.interfaces import SampleSource
from detection.schemas import AuthorizationStatus, RawSample
from detection.state_machine import ConfirmationStateMachine

logger = structlog.get_logger(__name__)


class ActivityMonitor:
    def __init__(
        self,
        source: SampleSource,
        machine: ConfirmationStateMachine,
    ) -> None:
        self._source = source
        self._machine = machine
        self._is_monitoring = False
        self._starting = False
        self._stop_requested = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def is_monitoring(self) -> bool:
        return self._is_monitoring

    @property
    def is_activity_available(self) -> bool:
        return self._source.is_available()

    @property
    def authorization_status(self) -> AuthorizationStatus:
        return self._source.authorization_status()

    async def start(self) -> bool:
        """
        Begin monitoring if possible.

        No-op when already monitoring or when sensing is unavailable.
        Requests authorization first if it has not been granted.
        Returns whether monitoring is active afterwards.
        """
        if self._starting:
            # Latest call wins over a stop() issued during authorization
            self._stop_requested = False
            return False
        if self._is_monitoring:
            logger.debug("activity_monitoring_already_active")
            return True

        if not self._source.is_available():
            logger.warning("activity_sensing_unavailable")
            return False

        self._starting = True
        self._stop_requested = False
        try:
            granted = await self._ensure_authorized()
        finally:
            self._starting = False

        if self._stop_requested:
            logger.info("activity_monitoring_start_cancelled")
            return False

        if not granted:
            logger.warning(
                "activity_permission_not_granted",
                status=self._source.authorization_status().value,
            )
            return False

        self._loop = asyncio.get_running_loop()
        self._source.subscribe(self._on_sample_delivered)
        self._is_monitoring = True
        logger.info("activity_monitoring_started")
        return True

    async def _ensure_authorized(self) -> bool:
        if self._source.authorization_status() == AuthorizationStatus.AUTHORIZED:
            return True
        try:
            return await self._source.request_authorization()
        except Exception as exc:
            logger.error("activity_authorization_request_failed", error=str(exc))
            return False

    def stop(self) -> None:
        """Stop monitoring and finalize any open candidate; no-op if not running."""
        if self._starting:
            # start() is waiting on authorization; it must not subscribe
            self._stop_requested = True
            return
        if not self._is_monitoring:
            return

        self._is_monitoring = False
        self._source.unsubscribe(self._on_sample_delivered)
        self._machine.stop()
        logger.info("activity_monitoring_stopped")

    async def set_enabled(self, enabled: bool) -> bool:
        """Apply the auto-apply master switch."""
        if enabled:
            return await self.start()
        self.stop()
        return False

    def status(self) -> dict[str, Any]:
        candidate = self._machine.candidate
        return {
            "monitoring": self._is_monitoring,
            "activity_available": self.is_activity_available,
            "authorization_status": self.authorization_status.value,
            "state": self._machine.state.value,
            "current_activity": candidate.activity.value if candidate else None,
            "validation_count": candidate.validation_count if candidate else 0,
            "required_validations": self._machine.required_validations,
            "activity_start_time": (
                candidate.start_time.isoformat() if candidate else None
            ),
        }

    def _on_sample_delivered(self, sample: RawSample) -> None:
        # May be called from a source worker thread.
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._process_sample, sample)

    def _process_sample(self, sample: RawSample) -> None:
        if not self._is_monitoring:
            return
        self._machine.process_sample(sample)
