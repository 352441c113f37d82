"""
tests/test_episode_log.py

Unit tests for detection/episode_log.py and detection/stores.py.
Covers ordering, finalization targeting, clearing and degraded persistence.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from detection.episode_log import EpisodeLog
from detection.schemas import ActivityType
from detection.stores import InMemoryLogStore, JsonFileLogStore
from tests.fixtures import BASE_TIME, build_log_entry


@pytest.mark.asyncio
async def test_entries_are_newest_first() -> None:
    episode_log = EpisodeLog(InMemoryLogStore())
    older = build_log_entry(start_date=BASE_TIME)
    newer = build_log_entry(
        activity=ActivityType.WALKING, start_date=BASE_TIME + timedelta(hours=1)
    )

    episode_log.append(older)
    episode_log.append(newer)

    assert episode_log.entries() == [newer, older]


@pytest.mark.asyncio
async def test_finalize_targets_most_recent_open_entry_of_activity() -> None:
    store = InMemoryLogStore(
        [
            build_log_entry(start_date=BASE_TIME),
            build_log_entry(start_date=BASE_TIME + timedelta(minutes=30)),
            build_log_entry(
                activity=ActivityType.WALKING,
                start_date=BASE_TIME + timedelta(minutes=40),
            ),
        ]
    )
    episode_log = EpisodeLog(store)
    end = BASE_TIME + timedelta(hours=1)

    assert episode_log.finalize(ActivityType.RUNNING, end) is True

    walking, newer_running, older_running = episode_log.entries()
    assert newer_running.end_date == end
    assert older_running.is_open
    assert walking.is_open
    assert episode_log.open_entry(ActivityType.RUNNING) == older_running

    await episode_log.flush()
    assert store.saved[1].end_date == end


@pytest.mark.asyncio
async def test_finalize_without_open_entry_returns_false() -> None:
    store = InMemoryLogStore([build_log_entry(end_date=BASE_TIME + timedelta(hours=1))])
    episode_log = EpisodeLog(store)

    assert episode_log.finalize(ActivityType.RUNNING, BASE_TIME) is False
    assert episode_log.finalize(ActivityType.CYCLING, BASE_TIME) is False

    await episode_log.flush()
    assert store.save_count == 0


@pytest.mark.asyncio
async def test_clear_empties_and_persists_empty_log() -> None:
    store = InMemoryLogStore([build_log_entry(), build_log_entry()])
    episode_log = EpisodeLog(store)

    episode_log.clear()
    await episode_log.flush()

    assert episode_log.entries() == []
    assert store.saved == []
    assert store.save_count == 1


@pytest.mark.asyncio
async def test_save_failure_keeps_memory_and_retries_next_mutation() -> None:
    store = MagicMock()
    store.load.return_value = []
    store.save = AsyncMock(side_effect=OSError("disk full"))
    episode_log = EpisodeLog(store)

    with patch("detection.episode_log.logger") as mock_logger:
        episode_log.append(build_log_entry())
        await episode_log.flush()

    mock_logger.error.assert_called_once_with(
        "activity_log_save_failed", entries=1, error="disk full"
    )
    assert len(episode_log.entries()) == 1

    episode_log.finalize(ActivityType.RUNNING, BASE_TIME + timedelta(minutes=20))
    await episode_log.flush()

    assert store.save.await_count == 2
    # Every save carries the full current snapshot
    assert store.save.await_args.args[0][0].end_date is not None


def test_load_failure_starts_with_empty_log() -> None:
    store = MagicMock()
    store.load.side_effect = ValueError("corrupt")

    assert EpisodeLog(store).entries() == []


@pytest.mark.asyncio
async def test_json_file_store_persists_full_snapshot(tmp_path) -> None:
    path = tmp_path / "logs" / "activity_log.json"
    store = JsonFileLogStore(path)
    assert store.load() == []

    entries = [
        build_log_entry(end_date=BASE_TIME + timedelta(minutes=45)),
        build_log_entry(activity=ActivityType.CYCLING, override_name=None),
    ]
    await store.save(entries)

    assert JsonFileLogStore(path).load() == entries

    await store.save([])
    assert JsonFileLogStore(path).load() == []
