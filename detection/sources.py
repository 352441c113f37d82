"""
detection/sources.py

In-process sample source fed by the gateway.
Devices push raw motion samples over HTTP; the source fans them out to
subscribers and keeps a sliding window of recent samples so the engine
can run historical queries against it.
"""

import collections
from datetime import datetime

import structlog

from detection.constants import SAMPLE_HISTORY_MAX_LEN
from detection.interfaces import SampleCallback
from detection.schemas import AuthorizationStatus, RawSample

logger = structlog.get_logger(__name__)


class PushSampleSource:
    def __init__(
        self,
        available: bool = True,
        grant_on_request: bool = True,
        history_max_len: int = SAMPLE_HISTORY_MAX_LEN,
    ) -> None:
        self._available = available
        self._grant_on_request = grant_on_request
        self._status = AuthorizationStatus.NOT_DETERMINED
        self._history: collections.deque[RawSample] = collections.deque(
            maxlen=history_max_len
        )
        self._subscribers: list[SampleCallback] = []

    def is_available(self) -> bool:
        return self._available

    def authorization_status(self) -> AuthorizationStatus:
        return self._status

    def set_authorization(self, status: AuthorizationStatus) -> None:
        """Record the permission outcome reported by the device."""
        self._status = status
        logger.info("sample_source_authorization_set", status=status.value)

    async def request_authorization(self) -> bool:
        if self._status == AuthorizationStatus.NOT_DETERMINED:
            self._status = (
                AuthorizationStatus.AUTHORIZED
                if self._grant_on_request
                else AuthorizationStatus.DENIED
            )
        return self._status == AuthorizationStatus.AUTHORIZED

    def subscribe(self, callback: SampleCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: SampleCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, sample: RawSample) -> None:
        self._history.append(sample)
        for callback in list(self._subscribers):
            callback(sample)

    async def query(self, start: datetime, end: datetime) -> list[RawSample]:
        """Samples with start <= timestamp <= end, oldest first."""
        return sorted(
            (s for s in self._history if start <= s.timestamp <= end),
            key=lambda s: s.timestamp,
        )
