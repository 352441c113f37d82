"""
detection/episode_log.py

Append-only record of confirmed activity episodes.
Held in memory, loaded once from the log store, and written back in full
after every mutation. Saves are fire-and-forget: a failed save is logged
and the next mutation writes a fresh snapshot.
"""

import asyncio
from datetime import datetime
from typing import Optional

import structlog

from detection.interfaces import LogStore
from detection.schemas import ActivityType, EpisodeLogEntry

logger = structlog.get_logger(__name__)


class EpisodeLog:
    def __init__(self, store: LogStore) -> None:
        self._store = store
        self._entries: list[EpisodeLogEntry] = self._load()
        self._pending_saves: set[asyncio.Task] = set()

    def _load(self) -> list[EpisodeLogEntry]:
        try:
            entries = list(self._store.load())
        except Exception as exc:
            logger.error("activity_log_load_failed", error=str(exc))
            return []
        logger.info("activity_log_loaded", entries=len(entries))
        return entries

    def append(self, entry: EpisodeLogEntry) -> None:
        self._entries.append(entry)
        logger.info(
            "activity_log_entry_opened",
            activity=entry.activity_type.value,
            start_date=entry.start_date.isoformat(),
            override_name=entry.override_name,
        )
        self._schedule_save()

    def finalize(self, activity: ActivityType, now: datetime) -> bool:
        """
        Set end_date on the most recently opened open entry for activity.

        Returns False when no open entry matches, e.g. for an activity that
        was tracked but never confirmed.
        """
        for index in range(len(self._entries) - 1, -1, -1):
            entry = self._entries[index]
            if entry.activity_type == activity and entry.is_open:
                self._entries[index] = entry.model_copy(update={"end_date": now})
                logger.info(
                    "activity_log_entry_closed",
                    activity=activity.value,
                    entry_id=str(entry.id),
                    end_date=now.isoformat(),
                )
                self._schedule_save()
                return True
        return False

    def open_entry(self, activity: ActivityType) -> Optional[EpisodeLogEntry]:
        for entry in reversed(self._entries):
            if entry.activity_type == activity and entry.is_open:
                return entry
        return None

    def entries(self) -> list[EpisodeLogEntry]:
        """All entries, newest start date first."""
        return sorted(self._entries, key=lambda e: e.start_date, reverse=True)

    def clear(self) -> None:
        self._entries.clear()
        logger.info("activity_log_cleared")
        self._schedule_save()

    async def flush(self) -> None:
        """Wait for every save started so far to finish."""
        if self._pending_saves:
            await asyncio.gather(*self._pending_saves, return_exceptions=True)

    def _schedule_save(self) -> None:
        snapshot = list(self._entries)
        task = asyncio.get_running_loop().create_task(self._save(snapshot))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save(self, snapshot: list[EpisodeLogEntry]) -> None:
        try:
            await self._store.save(snapshot)
        except Exception as exc:
            logger.error(
                "activity_log_save_failed",
                entries=len(snapshot),
                error=str(exc),
            )
