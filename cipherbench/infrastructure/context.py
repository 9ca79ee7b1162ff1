"""
Per-run state shared by every workload unit.

A `RunContext` owns the pool, the optional shared handle, the failure counters
and the write payload for exactly one run. It is built fresh for each pool
size and closed when the run ends, so nothing outlives a run.
"""

from __future__ import annotations

import secrets
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generator, List, Optional

import sqlcipher3

from cipherbench.domain.models import RunConfig
from cipherbench.infrastructure.connection import Handle, open_db
from cipherbench.infrastructure.pool import ConnectionPool
from cipherbench.utils.logging import get_logger

log = get_logger(__name__)


class FailureCounters:
    """Failed-write and failed-read counters; increment only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failed_writes = 0
        self._failed_reads = 0

    def record_failed_write(self) -> int:
        with self._lock:
            self._failed_writes += 1
            return self._failed_writes

    def record_failed_read(self) -> int:
        with self._lock:
            self._failed_reads += 1
            return self._failed_reads

    @property
    def failed_writes(self) -> int:
        with self._lock:
            return self._failed_writes

    @property
    def failed_reads(self) -> int:
        with self._lock:
            return self._failed_reads


@dataclass
class RunContext:
    config: RunConfig
    pool: ConnectionPool
    shared: Optional[Handle] = None
    payload: bytes = b""
    counters: FailureCounters = field(default_factory=FailureCounters)
    open_seconds: float = 0.0

    @property
    def handles_opened(self) -> int:
        return self.pool.size + (1 if self.shared is not None else 0)

    @contextmanager
    def _acquire(self, use_shared: bool) -> Generator[sqlcipher3.Connection, None, None]:
        if use_shared:
            if self.shared is None:
                raise RuntimeError("run context has no shared handle")
            with self.shared.serialized() as conn:
                yield conn
            return
        with self.pool.connection(timeout=self.config.checkout_timeout) as handle:
            with handle.serialized() as conn:
                yield conn

    def acquire_for_write(self):
        """Connection for an insert or delete: the shared handle or a pooled one."""
        return self._acquire(self.config.writes_on_shared_handle)

    def acquire_for_read(self):
        """Connection for a select: pooled when the pool holds more than one handle."""
        return self._acquire(self.config.reads_on_shared_handle)

    def close(self) -> None:
        self.pool.close()
        if self.shared is not None:
            self.shared.close()


def _open(config: RunConfig) -> Handle:
    return open_db(
        config.db_path,
        config.db_key,
        config.kdf_iterations,
        dns_args=config.dns_args,
        busy_timeout=config.busy_timeout_seconds,
    )


def build_run_context(config: RunConfig) -> RunContext:
    """
    Open every handle the run needs and generate the write payload.

    If any open fails, the handles opened so far are closed and the
    `OpenError` propagates; the run does not start with a broken handle.
    """
    pool = ConnectionPool(capacity=config.pooled_handle_count)
    opened: List[Handle] = []
    shared: Optional[Handle] = None

    start = time.perf_counter()
    try:
        if config.opens_shared_handle:
            shared = _open(config)
            opened.append(shared)
        for _ in range(config.pooled_handle_count):
            handle = _open(config)
            opened.append(handle)
            pool.add(handle)
    except BaseException:
        log.error(
            "Opening handles failed; closing the ones already open",
            extra={"pool_size": config.pool_size, "opened": len(opened)},
        )
        for handle in opened:
            handle.close()
        raise
    open_seconds = time.perf_counter() - start

    return RunContext(
        config=config,
        pool=pool,
        shared=shared,
        payload=secrets.token_bytes(config.payload_bytes),
        open_seconds=open_seconds,
    )


__all__ = ["FailureCounters", "RunContext", "build_run_context"]
