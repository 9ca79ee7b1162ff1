"""
Bounded connection pool for the benchmark.

Handles are opened up front and added to the pool; workload units borrow them
with `checkout` and give them back with `checkin`. Checkout blocks until a
handle is idle. A timeout can be passed to bound the wait, but the benchmark
default is to wait indefinitely.
"""

from __future__ import annotations

import queue
import threading
from contextlib import contextmanager
from typing import Generator, List, Optional, Set

from cipherbench.errors import PoolError, PoolTimeoutError
from cipherbench.infrastructure.connection import Handle
from cipherbench.utils.logging import get_logger

log = get_logger(__name__)


class ConnectionPool:
    """
    Fixed-capacity store of handles with checkout/checkin discipline.

    A handle owned by the pool is either idle or held by exactly one caller.
    Checking in a foreign handle, or one that is not checked out, raises
    `PoolError`.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"Pool capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self._idle: "queue.Queue[Handle]" = queue.Queue()
        self._lock = threading.Lock()
        self._handles: List[Handle] = []
        self._checked_out: Set[Handle] = set()
        self._peak_in_use = 0

    def add(self, handle: Handle) -> None:
        """Hand a freshly opened handle to the pool."""
        with self._lock:
            if len(self._handles) >= self.capacity:
                raise PoolError(f"pool is full (capacity={self.capacity})")
            if handle in self._handles:
                raise PoolError(f"{handle!r} already belongs to the pool")
            self._handles.append(handle)
        self._idle.put_nowait(handle)

    def checkout(self, timeout: Optional[float] = None) -> Handle:
        try:
            handle = self._idle.get(timeout=timeout)
        except queue.Empty:
            raise PoolTimeoutError(f"no handle available after {timeout}s") from None
        with self._lock:
            self._checked_out.add(handle)
            self._peak_in_use = max(self._peak_in_use, len(self._checked_out))
        return handle

    def checkin(self, handle: Handle) -> None:
        with self._lock:
            if handle not in self._handles:
                raise PoolError(f"{handle!r} was not obtained from this pool")
            if handle not in self._checked_out:
                raise PoolError(f"{handle!r} is not checked out")
            self._checked_out.discard(handle)
        self._idle.put_nowait(handle)

    @contextmanager
    def connection(self, timeout: Optional[float] = None) -> Generator[Handle, None, None]:
        """
        Borrow a handle for the duration of the block.

        Example
        -------
            with pool.connection() as handle:
                with handle.serialized() as conn:
                    conn.execute("SELECT 1")
        """
        handle = self.checkout(timeout=timeout)
        try:
            yield handle
        finally:
            self.checkin(handle)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._handles)

    @property
    def in_use(self) -> int:
        with self._lock:
            return len(self._checked_out)

    @property
    def available(self) -> int:
        return self._idle.qsize()

    @property
    def peak_in_use(self) -> int:
        with self._lock:
            return self._peak_in_use

    def close(self) -> None:
        """Close every handle owned by the pool."""
        with self._lock:
            handles, self._handles = self._handles, []
            if self._checked_out:
                log.warning(
                    "Closing pool with handles still checked out",
                    extra={"in_use": len(self._checked_out)},
                )
            self._checked_out.clear()
        while True:
            try:
                self._idle.get_nowait()
            except queue.Empty:
                break
        for handle in handles:
            handle.close()


__all__ = ["ConnectionPool"]
