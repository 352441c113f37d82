"""
detection/interfaces.py

Collaborator protocols for the activity detection engine.
The engine only talks to the outside world through these seams.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Protocol, Sequence

from detection.schemas import (
    ActivityType,
    AuthorizationStatus,
    EpisodeLogEntry,
    RawSample,
)

SampleCallback = Callable[[RawSample], None]


class SampleSource(Protocol):
    """Provider of live motion samples and historical sample queries."""

    def is_available(self) -> bool: ...

    def authorization_status(self) -> AuthorizationStatus: ...

    async def request_authorization(self) -> bool: ...

    def subscribe(self, callback: SampleCallback) -> None: ...

    def unsubscribe(self, callback: SampleCallback) -> None: ...

    async def query(self, start: datetime, end: datetime) -> Sequence[RawSample]: ...


class ActivityListener(Protocol):
    """Override applier notified when an episode is confirmed or ends."""

    def on_activity_confirmed(self, activity: ActivityType) -> None: ...

    def on_activity_ended(self, activity: ActivityType) -> None: ...


class LogStore(Protocol):
    """Persistence for the episode log; always loads and saves in full."""

    def load(self) -> list[EpisodeLogEntry]: ...

    async def save(self, entries: Sequence[EpisodeLogEntry]) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run a callback later; asyncio event loops qualify."""

    def call_later(
        self, delay: float, callback: Callable[..., Any], *args: Any
    ) -> TimerHandle: ...
