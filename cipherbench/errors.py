"""
Error taxonomy for the SQLCipher pool benchmark.

Connection-factory errors (`OpenError` and subclasses) propagate to whoever
requested the handle. Workload errors (`WriteError`, `ReadError`) never leave
the unit that raised them: the unit records a failure and ends. `CleanupError`
is logged by the orchestrator and swallowed.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for every error raised by the benchmark."""


class OpenError(BenchmarkError):
    """A database handle could not be created or configured."""


class KeyRejectedError(OpenError):
    """The encryption key pragma failed or the key does not decrypt the file."""


class PragmaError(OpenError):
    """A configuration pragma could not be executed."""


class ModeMismatchError(OpenError):
    """Write-ahead-log journaling could not be enabled."""

    def __init__(self, path: str, mode: str) -> None:
        super().__init__(f"unable to set journal_mode to WAL for {path}. actual mode {mode}")
        self.path = path
        self.mode = mode


class PoolError(BenchmarkError):
    """Misuse of the connection pool (over-capacity, foreign or double checkin)."""


class PoolTimeoutError(PoolError):
    """No handle became available within the checkout timeout."""


class WriteError(BenchmarkError):
    """Begin, insert or commit failed inside a write unit."""


class ReadError(BenchmarkError):
    """Query or row scan failed inside a read unit."""


class CleanupError(BenchmarkError):
    """Deleting the scratch write table failed."""


__all__ = [
    "BenchmarkError",
    "OpenError",
    "KeyRejectedError",
    "PragmaError",
    "ModeMismatchError",
    "PoolError",
    "PoolTimeoutError",
    "WriteError",
    "ReadError",
    "CleanupError",
]
