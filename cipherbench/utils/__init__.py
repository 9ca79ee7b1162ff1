"""
Utilities package for the SQLCipher pool benchmark.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of domain-specific logic.
"""

from cipherbench.utils.logging import configure_logging, get_logger
from cipherbench.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
