"""
Workloads package for the SQLCipher pool benchmark.

This module re-exports the workload interface, the concrete read and write
workloads and the cleanup operation so downstream code can import from
`cipherbench.workloads` directly.
"""

from cipherbench.workloads.abstract import UnitResult, Workload
from cipherbench.workloads.cleanup import delete_all
from cipherbench.workloads.reads import ReadWorkload
from cipherbench.workloads.writes import WriteWorkload

__all__ = [
    # Abstracts
    "UnitResult",
    "Workload",
    # Concrete workloads
    "ReadWorkload",
    "WriteWorkload",
    # Cleanup
    "delete_all",
]
