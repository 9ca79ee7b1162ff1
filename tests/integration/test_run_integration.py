"""
End-to-end runs against real encrypted database files.

These verify that every unit is accounted for (successes + failures equal the
configured counts), that handle routing follows the pool-size policy, and that
cleanup empties the scratch table.
"""

from __future__ import annotations

from typing import Any, List

import pytest

from cipherbench import orchestrator
from cipherbench.errors import KeyRejectedError
from cipherbench.infrastructure import context as context_module
from cipherbench.infrastructure.connection import Handle, open_db
from cipherbench.infrastructure.context import RunContext
from cipherbench.orchestrator import run_once, run_pool_sizes
from cipherbench.workloads import writes as writes_module
from tests.conftest import SEEDED_ROWS, TEST_KDF_ITERATIONS, TEST_KEY

SINGLE_POOL_WRITES = 10
SINGLE_POOL_READS = 50
DEDICATED_POOL_SIZE = 4
DEDICATED_WRITES = 5
DEDICATED_READS = 20
MAX_ROWS = 20


@pytest.fixture
def opened_handles(monkeypatch) -> List[Handle]:
    """Record every handle the run context opens."""
    opened: List[Handle] = []
    real_open = context_module.open_db

    def _recording_open(*args: Any, **kwargs: Any) -> Handle:
        handle = real_open(*args, **kwargs)
        opened.append(handle)
        return handle

    monkeypatch.setattr(context_module, "open_db", _recording_open)
    return opened


@pytest.fixture
def captured_contexts(monkeypatch) -> List[RunContext]:
    contexts: List[RunContext] = []
    real_build = orchestrator.build_run_context

    def _capturing_build(config):
        ctx = real_build(config)
        contexts.append(ctx)
        return ctx

    monkeypatch.setattr(orchestrator, "build_run_context", _capturing_build)
    return contexts


def test_single_handle_run(seeded_db, config_factory, count_rows, opened_handles):
    config = config_factory(
        seeded_db,
        pool_size=1,
        writes=SINGLE_POOL_WRITES,
        reads=SINGLE_POOL_READS,
        max_rows=MAX_ROWS,
    )

    metrics = run_once(config)

    assert len(opened_handles) == 1
    assert metrics.handles_opened == 1
    assert metrics.failed_writes == 0
    assert metrics.failed_reads == 0
    assert metrics.successful_writes == SINGLE_POOL_WRITES
    assert metrics.successful_reads == SINGLE_POOL_READS
    assert metrics.rows_scanned == SINGLE_POOL_READS * min(MAX_ROWS, SEEDED_ROWS)
    assert metrics.queries_per_second > 0
    assert metrics.rows_deleted == SINGLE_POOL_WRITES
    assert metrics.cleanup_error is None
    assert all(h.closed for h in opened_handles)
    assert count_rows(seeded_db, "test_long_write") == 0


def test_dedicated_write_channel_run(
    seeded_db, config_factory, opened_handles, captured_contexts, monkeypatch
):
    write_connections: list[Any] = []
    real_insert = writes_module.insert_payload

    def _recording_insert(conn, payload):
        write_connections.append(conn)
        real_insert(conn, payload)

    monkeypatch.setattr(writes_module, "insert_payload", _recording_insert)

    config = config_factory(
        seeded_db,
        pool_size=DEDICATED_POOL_SIZE,
        write_on_dedicated_channel=True,
        writes=DEDICATED_WRITES,
        reads=DEDICATED_READS,
    )

    metrics = run_once(config)

    (ctx,) = captured_contexts
    assert len(opened_handles) == DEDICATED_POOL_SIZE
    assert ctx.pool.capacity == DEDICATED_POOL_SIZE - 1
    assert ctx.shared is not None
    assert ctx.pool.peak_in_use <= DEDICATED_POOL_SIZE - 1
    assert len(write_connections) == DEDICATED_WRITES
    assert all(conn is ctx.shared.connection for conn in write_connections)
    assert metrics.failed_writes + metrics.failed_reads == 0
    assert metrics.successful_reads == DEDICATED_READS


def test_pooled_run_without_dedicated_channel(
    seeded_db, config_factory, count_rows, opened_handles, captured_contexts
):
    config = config_factory(seeded_db, pool_size=3, writes=6, reads=12)

    metrics = run_once(config)

    (ctx,) = captured_contexts
    assert len(opened_handles) == 3
    assert ctx.shared is None
    assert ctx.pool.peak_in_use <= 3
    assert metrics.successful_writes + metrics.failed_writes == 6
    assert metrics.successful_reads + metrics.failed_reads == 12
    assert count_rows(seeded_db, "test_long_write") == 0


def test_failed_reads_are_counted_not_raised(writes_only_db, config_factory):
    config = config_factory(writes_only_db, pool_size=2, writes=4, reads=9)

    metrics = run_once(config)

    assert metrics.failed_reads == 9
    assert metrics.successful_reads == 0
    assert metrics.successful_writes + metrics.failed_writes == 4
    assert metrics.failed_writes == 0


def test_cleanup_failure_is_logged_not_raised(db_path, config_factory):
    # A keyed database with neither benchmark table.
    open_db(db_path, TEST_KEY, TEST_KDF_ITERATIONS).close()
    config = config_factory(db_path, pool_size=1, writes=3, reads=3)

    metrics = run_once(config)

    assert metrics.failed_writes == 3
    assert metrics.failed_reads == 3
    assert metrics.cleanup_error is not None
    assert metrics.rows_deleted is None


def test_open_failure_aborts_run_and_closes_opened_handles(
    seeded_db, config_factory, opened_handles, monkeypatch
):
    real_open = context_module.open_db
    calls = {"n": 0}

    def _fail_on_third(*args: Any, **kwargs: Any) -> Handle:
        calls["n"] += 1
        if calls["n"] == 3:
            raise KeyRejectedError("key not accepted")
        return real_open(*args, **kwargs)

    monkeypatch.setattr(context_module, "open_db", _fail_on_third)
    config = config_factory(seeded_db, pool_size=4)

    with pytest.raises(KeyRejectedError):
        run_once(config)
    assert len(opened_handles) == 2
    assert all(h.closed for h in opened_handles)


def test_wrong_key_run_is_recorded_in_tolerant_mode(seeded_db, config_factory, tmp_path):
    template = config_factory(seeded_db, db_key="wrong-key", writes=1, reads=1)

    results = run_pool_sizes([1, 2], template, results_dir=tmp_path, persist=False)

    assert [r.pool_size for r in results] == [1, 2]
    assert all(r.error for r in results)


def test_sequential_runs_use_fresh_state(seeded_db, config_factory, captured_contexts, tmp_path):
    template = config_factory(seeded_db, writes=3, reads=4)

    results = run_pool_sizes([1, 2, 3], template, results_dir=tmp_path, persist=True)

    assert [r.pool_size for r in results] == [1, 2, 3]
    assert len({id(ctx.counters) for ctx in captured_contexts}) == 3
    assert len({ctx.payload for ctx in captured_contexts}) == 3
    for r in results:
        assert r.successful_writes + r.failed_writes == 3
        assert r.successful_reads + r.failed_reads == 4
        assert r.handles_opened == r.pool_size
    assert (tmp_path / "latest.json").exists()
