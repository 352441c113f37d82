"""
tests/fixtures.py

Shared test data and helper functions for the detection engine tests.
All tests must use these builders instead of hardcoding test values.
"""

from datetime import datetime, timedelta
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock

from detection.episode_log import EpisodeLog
from detection.schemas import (
    ActivityType,
    AuthorizationStatus,
    EnablementConfig,
    EpisodeLogEntry,
    MotionConfidence,
    RawSample,
)
from detection.state_machine import ConfirmationStateMachine
from detection.stores import InMemoryLogStore

BASE_TIME: datetime = datetime(2024, 6, 15, 13, 30, 0)

TEST_MINIMUM_DURATION_MIN: int = 10
TEST_STOP_DURATION_MIN: int = 5
MINIMUM_DURATION_S: float = TEST_MINIMUM_DURATION_MIN * 60
STOP_DURATION_S: float = TEST_STOP_DURATION_MIN * 60

# Long enough that periodic validation never fires unless a test asks for it
QUIET_VALIDATION_INTERVAL_S: float = 24 * 60 * 60.0


def build_sample(
    walking: bool = False,
    running: bool = False,
    cycling: bool = False,
    automotive: bool = False,
    unknown: bool = False,
    confidence: MotionConfidence = MotionConfidence.MEDIUM,
    timestamp: datetime | None = None,
) -> RawSample:
    """Build a RawSample; confidence defaults to the accepted level."""
    return RawSample(
        timestamp=timestamp or BASE_TIME,
        walking=walking,
        running=running,
        cycling=cycling,
        automotive=automotive,
        unknown=unknown,
        confidence=confidence,
    )


def build_config(**overrides: Any) -> EnablementConfig:
    """Build an EnablementConfig with every activity enabled and named."""
    values: dict[str, Any] = {
        "walking_enabled": True,
        "running_enabled": True,
        "cycling_enabled": True,
        "other_enabled": True,
        "walking_override": "Walk",
        "running_override": "Run",
        "cycling_override": "Bike",
        "other_override": "Other",
        "minimum_duration_minutes": TEST_MINIMUM_DURATION_MIN,
        "stop_duration_minutes": TEST_STOP_DURATION_MIN,
    }
    values.update(overrides)
    return EnablementConfig(**values)


def build_log_entry(
    activity: ActivityType = ActivityType.RUNNING,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    override_name: str | None = "Run",
) -> EpisodeLogEntry:
    return EpisodeLogEntry(
        activity_type=activity,
        start_date=start_date or BASE_TIME,
        end_date=end_date,
        override_name=override_name,
    )


class FakeTimerHandle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic stand-in for loop.call_later; time only moves on advance()."""

    def __init__(self) -> None:
        self.elapsed: float = 0.0
        self._handles: list[FakeTimerHandle] = []

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> FakeTimerHandle:
        handle = FakeTimerHandle(self.elapsed + delay, callback, args)
        self._handles.append(handle)
        return handle

    def now(self) -> datetime:
        return BASE_TIME + timedelta(seconds=self.elapsed)

    def pending(self) -> list[FakeTimerHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Fire every live timer due within the next `seconds`, in order."""
        target = self.elapsed + seconds
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.elapsed = handle.when
            handle.callback(*handle.args)
        self.elapsed = target


def build_listener() -> MagicMock:
    """Mock ActivityListener recording confirmed/ended calls."""
    return MagicMock(spec=["on_activity_confirmed", "on_activity_ended"])


def build_source(
    samples: Optional[list[RawSample]] = None,
    available: bool = True,
    status: AuthorizationStatus = AuthorizationStatus.AUTHORIZED,
) -> MagicMock:
    """Mock SampleSource whose query returns `samples`."""
    source = MagicMock()
    source.is_available.return_value = available
    source.authorization_status.return_value = status
    source.request_authorization = AsyncMock(return_value=True)
    source.query = AsyncMock(return_value=samples or [])
    return source


def build_machine(
    config: EnablementConfig | None = None,
    source: MagicMock | None = None,
    store: InMemoryLogStore | None = None,
    validation_interval_s: float = QUIET_VALIDATION_INTERVAL_S,
) -> tuple[ConfirmationStateMachine, FakeScheduler, MagicMock, EpisodeLog]:
    """Build a state machine wired to a fake scheduler, mock listener and in-memory log."""
    scheduler = FakeScheduler()
    if config is None:
        config = build_config()
    episode_log = EpisodeLog(store or InMemoryLogStore())
    machine = ConfirmationStateMachine(
        source=source or build_source(),
        episode_log=episode_log,
        config_provider=lambda: config,
        scheduler=scheduler,
        clock=scheduler.now,
        validation_interval_s=validation_interval_s,
    )
    listener = build_listener()
    machine.add_listener(listener)
    return machine, scheduler, listener, episode_log

