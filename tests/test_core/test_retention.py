"""
Tests for the retention sweeper (commit_ledger/core/retention.py).

Sweeps are triggered directly with an explicit ``now`` so no test waits on
the wall clock; the background loop is only checked for start/stop.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from commit_ledger.core.retention import RetentionSweeper
from commit_ledger.core.types import Commit
from commit_ledger.db import commits_repo
from commit_ledger.db.errors import DatabaseOperationContext, DatabaseWriteError

NOW = datetime(2025, 1, 1, tzinfo=UTC)
WINDOW = timedelta(days=365)


def _store(signature: str, created_at: datetime) -> Commit:
    commit = Commit(
        signature=signature,
        public_key="pk-" + signature,
        address="0xaddr",
        type="note",
        data={"n": signature},
        nonce=0,
    )
    return commits_repo.insert_commit(commit, now=created_at)


# ============================================================================
# CONSTRUCTION
# ============================================================================


@pytest.mark.unit
@pytest.mark.parametrize(
    ("window", "interval", "column"),
    [
        (timedelta(0), timedelta(hours=1), "createdAt"),
        (timedelta(days=1), timedelta(0), "createdAt"),
        (timedelta(days=1), timedelta(hours=1), "commitAt"),
    ],
)
def test_invalid_sweeper_settings_rejected(window, interval, column):
    with pytest.raises(ValueError):
        RetentionSweeper(window, interval, column=column)


@pytest.mark.unit
def test_cutoff_is_now_minus_window():
    sweeper = RetentionSweeper(WINDOW)

    assert sweeper.cutoff(NOW) == NOW - WINDOW


# ============================================================================
# SWEEP
# ============================================================================


@pytest.mark.db
def test_sweep_deletes_only_rows_before_cutoff(test_db):
    cutoff = NOW - WINDOW
    _store("old", cutoff - timedelta(microseconds=1))
    _store("boundary", cutoff)
    _store("fresh", NOW - timedelta(days=1))

    deleted = RetentionSweeper(WINDOW).sweep(NOW)

    assert deleted == 1
    assert commits_repo.get_commit("old") is None
    assert commits_repo.get_commit("boundary") is not None
    assert commits_repo.get_commit("fresh") is not None


@pytest.mark.db
def test_sweep_on_empty_store(test_db):
    assert RetentionSweeper(WINDOW).sweep(NOW) == 0


@pytest.mark.db
def test_sweep_on_updated_at_column(test_db):
    _store("old", NOW - WINDOW - timedelta(days=1))

    deleted = RetentionSweeper(WINDOW, column="updatedAt").sweep(NOW)

    assert deleted == 1
    assert commits_repo.count_commits() == 0


@pytest.mark.unit
def test_run_once_logs_and_swallows_storage_failure(caplog):
    error = DatabaseWriteError(context=DatabaseOperationContext(operation="commits.delete"))
    sweeper = RetentionSweeper(WINDOW)

    with patch.object(commits_repo, "delete_older_than", side_effect=error):
        assert sweeper.run_once(NOW) == 0

    assert "Retention sweep failed" in caplog.text


@pytest.mark.unit
def test_sweep_propagates_storage_failure():
    error = DatabaseWriteError(context=DatabaseOperationContext(operation="commits.delete"))

    with patch.object(commits_repo, "delete_older_than", side_effect=error):
        with pytest.raises(DatabaseWriteError):
            RetentionSweeper(WINDOW).sweep(NOW)


# ============================================================================
# LIFECYCLE
# ============================================================================


@pytest.mark.asyncio
async def test_start_and_stop_background_job():
    sweeper = RetentionSweeper(WINDOW, timedelta(hours=1))

    sweeper.start()
    assert sweeper.running
    sweeper.start()  # second start is a no-op

    await sweeper.stop()
    assert not sweeper.running


@pytest.mark.asyncio
async def test_stop_without_start_is_noop():
    sweeper = RetentionSweeper(WINDOW)

    await sweeper.stop()

    assert not sweeper.running


@pytest.mark.asyncio
async def test_loop_sweeps_each_interval():
    sweeper = RetentionSweeper(WINDOW, timedelta(milliseconds=10))

    with patch.object(sweeper, "run_once", return_value=0) as run_once:
        sweeper.start()
        for _ in range(100):
            if run_once.call_count >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

    assert run_once.call_count >= 2
