"""
Domain package for the SQLCipher pool benchmark.

Exports the run configuration and metrics models used by the orchestrator,
workloads and reporter. Keep this package focused on data definitions and
validation concerns.
"""

from cipherbench.domain.models import RunConfig, RunMetrics, parse_pool_sizes

__all__ = [
    "RunConfig",
    "RunMetrics",
    "parse_pool_sizes",
]
