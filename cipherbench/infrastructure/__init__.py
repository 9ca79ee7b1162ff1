"""
Infrastructure package for the SQLCipher pool benchmark.

Centralizes database connectivity concerns (connection factory, pooling and
per-run resource ownership). Keep this layer focused on I/O and resource
management, decoupled from workload/orchestrator logic.
"""

from cipherbench.infrastructure.connection import Handle, open_db
from cipherbench.infrastructure.context import FailureCounters, RunContext, build_run_context
from cipherbench.infrastructure.pool import ConnectionPool

__all__ = [
    "ConnectionPool",
    "FailureCounters",
    "Handle",
    "RunContext",
    "build_run_context",
    "open_db",
]
