"""
SQLCipher Pool Bench - concurrency benchmark for encrypted SQLite databases.

Measures throughput and failure rates of concurrent inserts and bounded selects
against a SQLCipher database in WAL mode while varying the number of pooled
connections:

- A connection factory that keys the database and forces WAL journaling
- A bounded checkout/checkin pool of handles
- Write and read workloads fanned out as independent concurrent units
- A run orchestrator reporting elapsed time, queries per second and failures

Global state is avoided: each run owns its pool, counters and payload.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from cipherbench.config import Settings, get_settings
from cipherbench.domain.models import RunConfig, RunMetrics, parse_pool_sizes
from cipherbench.infrastructure.connection import Handle, open_db
from cipherbench.infrastructure.pool import ConnectionPool
from cipherbench.orchestrator import run_once, run_pool_sizes
from cipherbench.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "RunConfig",
    "RunMetrics",
    "parse_pool_sizes",
    # Infrastructure
    "ConnectionPool",
    "Handle",
    "open_db",
    # Orchestration
    "run_once",
    "run_pool_sizes",
    # Logging
    "configure_logging",
    "get_logger",
]
