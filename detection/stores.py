"""
detection/stores.py

Log store implementations for the episode log.
- JsonFileLogStore: full-snapshot JSON file, written off the event loop
- InMemoryLogStore: keeps the last saved snapshot in memory
"""

import asyncio
import os
from pathlib import Path
from typing import Sequence

import structlog
from pydantic import TypeAdapter

from detection.schemas import EpisodeLogEntry

logger = structlog.get_logger(__name__)

_ENTRIES_ADAPTER = TypeAdapter(list[EpisodeLogEntry])


class JsonFileLogStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._write_lock = asyncio.Lock()

    def load(self) -> list[EpisodeLogEntry]:
        if not self.path.exists():
            return []
        return _ENTRIES_ADAPTER.validate_json(self.path.read_bytes())

    async def save(self, entries: Sequence[EpisodeLogEntry]) -> None:
        payload = _ENTRIES_ADAPTER.dump_json(list(entries), indent=2)
        # Saves are written in the order they were requested.
        async with self._write_lock:
            await asyncio.to_thread(self._write, payload)
        logger.debug("activity_log_saved", path=str(self.path), entries=len(entries))

    def _write(self, payload: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_bytes(payload)
        os.replace(tmp_path, self.path)


class InMemoryLogStore:
    def __init__(self, entries: Sequence[EpisodeLogEntry] = ()) -> None:
        self.saved: list[EpisodeLogEntry] = list(entries)
        self.save_count = 0

    def load(self) -> list[EpisodeLogEntry]:
        return list(self.saved)

    async def save(self, entries: Sequence[EpisodeLogEntry]) -> None:
        self.saved = list(entries)
        self.save_count += 1
