"""
detection/state_machine.py

Confirmation state machine for continuous activity detection.

A classified sample opens a candidate episode. The candidate is confirmed
once it has survived the minimum-duration timer with enough validations,
and finalized when no supporting samples arrive for the stop duration,
when a different activity supersedes it, or when monitoring stops.

All transitions run on the owning event loop. Timer callbacks and
historical query results carry the candidate generation they were armed
for and are discarded when that candidate is gone.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional

import structlog

from detection.classifier import classify
from detection.constants import (
    REQUIRED_VALIDATIONS,
    VALIDATION_INTERVAL_S,
    VALIDATION_LOOKBACK_S,
)
from detection.episode_log import EpisodeLog
from detection.interfaces import (
    ActivityListener,
    SampleSource,
    Scheduler,
    TimerHandle,
)
from detection.schemas import (
    ActivityType,
    EnablementConfig,
    EpisodeLogEntry,
    RawSample,
)

logger = structlog.get_logger(__name__)


class MonitorState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"
    STOPPING_GRACE = "stopping_grace"


@dataclass(slots=True)
class CandidateEpisode:
    activity: ActivityType
    start_time: datetime
    validation_count: int = 0


class ConfirmationStateMachine:
    """Decides when a tracked activity starts and ends."""

    def __init__(
        self,
        source: SampleSource,
        episode_log: EpisodeLog,
        config_provider: Callable[[], EnablementConfig],
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = datetime.now,
        required_validations: int = REQUIRED_VALIDATIONS,
        validation_interval_s: float = VALIDATION_INTERVAL_S,
        validation_lookback_s: float = VALIDATION_LOOKBACK_S,
    ) -> None:
        self._source = source
        self._log = episode_log
        self._config_provider = config_provider
        self._scheduler = scheduler
        self._clock = clock
        self.required_validations = required_validations
        self._validation_interval_s = validation_interval_s
        self._validation_lookback_s = validation_lookback_s

        self._listeners: list[ActivityListener] = []
        self._candidate: Optional[CandidateEpisode] = None
        self._generation = 0
        self._validation_timer: Optional[TimerHandle] = None
        self._confirmation_timer: Optional[TimerHandle] = None
        self._stop_timer: Optional[TimerHandle] = None
        self._validation_tasks: set[asyncio.Task] = set()

    # ── Observers ────────────────────────────────────────────

    def add_listener(self, listener: ActivityListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ActivityListener) -> None:
        self._listeners.remove(listener)

    # ── Introspection ────────────────────────────────────────

    @property
    def state(self) -> MonitorState:
        if self._candidate is None:
            return MonitorState.IDLE
        if self._stop_timer is not None:
            return MonitorState.STOPPING_GRACE
        return MonitorState.TRACKING

    @property
    def candidate(self) -> Optional[CandidateEpisode]:
        return self._candidate

    # ── Sample-driven transitions ────────────────────────────

    def process_sample(self, sample: RawSample) -> None:
        """Classify a raw sample against the live config and handle it."""
        self.handle_sample(classify(sample, self._config_provider()))

    def handle_sample(self, activity: Optional[ActivityType]) -> None:
        if activity is None:
            self._handle_no_activity()
            return

        candidate = self._candidate
        if candidate is not None and candidate.activity == activity:
            candidate.validation_count += 1
            self._cancel_stop_timer()
            logger.debug(
                "activity_continuing",
                activity=activity.value,
                validation_count=candidate.validation_count,
            )
            return

        if candidate is not None:
            self._finalize(candidate.activity)

        self._begin_tracking(activity)

    def _begin_tracking(self, activity: ActivityType) -> None:
        self._cancel_all_timers()
        self._generation += 1
        self._candidate = CandidateEpisode(
            activity=activity,
            start_time=self._clock(),
            validation_count=1,
        )

        minimum_s = self._config_provider().minimum_duration_minutes * 60
        self._arm_validation_timer()
        self._confirmation_timer = self._get_scheduler().call_later(
            minimum_s,
            self._on_confirmation_timer,
            activity,
            self._generation,
        )
        logger.info(
            "activity_detected",
            activity=activity.value,
            validation_count=1,
            required=self.required_validations,
            confirm_after_s=minimum_s,
        )

    def _handle_no_activity(self) -> None:
        if self._candidate is None:
            return

        self._cancel_stop_timer()
        stop_s = self._config_provider().stop_duration_minutes * 60
        self._stop_timer = self._get_scheduler().call_later(
            stop_s,
            self._on_stop_timer,
            self._generation,
        )
        logger.debug(
            "activity_stop_grace_armed",
            activity=self._candidate.activity.value,
            stop_after_s=stop_s,
        )

    # ── Timer-driven transitions ─────────────────────────────

    def _arm_validation_timer(self) -> None:
        self._validation_timer = self._get_scheduler().call_later(
            self._validation_interval_s,
            self._on_validation_timer,
            self._generation,
        )

    def _on_validation_timer(self, generation: int) -> None:
        if self._candidate is None or generation != self._generation:
            return

        self._arm_validation_timer()
        task = asyncio.get_running_loop().create_task(
            self.validate_continuous_activity()
        )
        self._validation_tasks.add(task)
        task.add_done_callback(self._validation_tasks.discard)

    async def validate_continuous_activity(self) -> None:
        """Re-query recent samples to check the candidate is still happening."""
        if self._candidate is None:
            return

        generation = self._generation
        activity = self._candidate.activity
        now = self._clock()
        start = now - timedelta(seconds=self._validation_lookback_s)

        try:
            samples = await self._source.query(start, now)
        except Exception as exc:
            logger.warning(
                "activity_validation_query_failed",
                activity=activity.value,
                error=str(exc),
            )
            samples = []

        if self._candidate is None or generation != self._generation:
            logger.debug("activity_validation_discarded", activity=activity.value)
            return

        detected = (
            classify(samples[-1], self._config_provider()) if samples else None
        )
        if detected == activity:
            self._candidate.validation_count += 1
            logger.info(
                "activity_validated",
                activity=activity.value,
                validation_count=self._candidate.validation_count,
                required=self.required_validations,
            )
        else:
            logger.info(
                "activity_validation_failed",
                activity=activity.value,
                detected=detected.value if detected else None,
            )
            self._handle_no_activity()

    def _on_confirmation_timer(self, activity: ActivityType, generation: int) -> None:
        self._confirmation_timer = None
        candidate = self._candidate
        if (
            candidate is None
            or generation != self._generation
            or candidate.activity != activity
        ):
            return

        if candidate.validation_count < self.required_validations:
            logger.info(
                "activity_validations_insufficient",
                activity=activity.value,
                validation_count=candidate.validation_count,
                required=self.required_validations,
            )
            return

        override_name = self._config_provider().override_name(activity)
        if not override_name:
            logger.info("activity_override_not_configured", activity=activity.value)
            return

        logger.info(
            "activity_confirmed",
            activity=activity.value,
            override_name=override_name,
            validation_count=candidate.validation_count,
        )
        self._notify("on_activity_confirmed", activity)
        self._log.append(
            EpisodeLogEntry(
                activity_type=activity,
                start_date=candidate.start_time,
                override_name=override_name,
            )
        )

    def _on_stop_timer(self, generation: int) -> None:
        self._stop_timer = None
        if self._candidate is None or generation != self._generation:
            return
        self._finalize(self._candidate.activity)

    # ── Stop / finalization ──────────────────────────────────

    def stop(self) -> None:
        """Cancel every timer and finalize the open candidate, if any."""
        self._cancel_all_timers()
        if self._candidate is not None:
            self._finalize(self._candidate.activity)

    def _finalize(self, activity: ActivityType) -> None:
        self._cancel_all_timers()
        self._generation += 1
        self._log.finalize(activity, self._clock())
        self._candidate = None

        logger.info("activity_stopped", activity=activity.value)
        self._notify("on_activity_ended", activity)

    # ── Helpers ──────────────────────────────────────────────

    def _notify(self, method: str, activity: ActivityType) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, method)(activity)
            except Exception as exc:
                logger.error(
                    "activity_listener_failed",
                    listener=type(listener).__name__,
                    callback=method,
                    activity=activity.value,
                    error=str(exc),
                )

    def _get_scheduler(self) -> Scheduler:
        if self._scheduler is None:
            self._scheduler = asyncio.get_running_loop()
        return self._scheduler

    def _cancel_stop_timer(self) -> None:
        if self._stop_timer is not None:
            self._stop_timer.cancel()
            self._stop_timer = None

    def _cancel_all_timers(self) -> None:
        for timer in (
            self._validation_timer,
            self._confirmation_timer,
            self._stop_timer,
        ):
            if timer is not None:
                timer.cancel()
        self._validation_timer = None
        self._confirmation_timer = None
        self._stop_timer = None
