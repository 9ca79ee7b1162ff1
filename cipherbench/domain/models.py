"""
Domain models for the SQLCipher pool benchmark.

`RunConfig` is the immutable configuration of one run (one pool size) and
derives the handle-routing policy from it. `RunMetrics` is what a run reports
back to the orchestrator, the reporter and the persisted JSON.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from cipherbench.config import Settings


class RunConfig(BaseModel):
    """
    Configuration of a single benchmark run.
    """

    pool_size: int = Field(..., ge=1, description="Number of handles opened for the run.")
    writes: int = Field(100, ge=0, description="Insert units to fan out.")
    reads: int = Field(100, ge=0, description="Select units to fan out.")
    max_rows: int = Field(100, ge=0, description="LIMIT applied to every select.")
    write_on_dedicated_channel: bool = Field(
        False, description="Route every write through one shared handle."
    )
    dns_args: str = Field("", description="Connection-string parameters appended to the path.")

    db_path: str = Field(..., description="Database file path, file: URI or :memory:.")
    db_key: str = Field(..., description="SQLCipher passphrase.")
    kdf_iterations: int = Field(256_000, ge=1, description="SQLCipher kdf_iter.")
    busy_timeout_seconds: float = Field(5.0, ge=0)
    payload_bytes: int = Field(512 * 1024, ge=0, description="Size of the insert blob.")
    max_workers: int = Field(64, ge=1, description="Threads executing workload units.")
    checkout_timeout: Optional[float] = Field(
        None, gt=0, description="Pool checkout bound in seconds; None blocks indefinitely."
    )

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @property
    def writes_on_shared_handle(self) -> bool:
        return self.pool_size == 1 or self.write_on_dedicated_channel

    @property
    def reads_on_shared_handle(self) -> bool:
        return self.pool_size == 1

    @property
    def opens_shared_handle(self) -> bool:
        return self.writes_on_shared_handle

    @property
    def pooled_handle_count(self) -> int:
        if self.pool_size == 1:
            return 0
        return self.pool_size - int(self.write_on_dedicated_channel)

    @classmethod
    def from_settings(cls, settings: Settings, pool_size: int, **overrides) -> "RunConfig":
        """Build a run configuration from settings, with keyword overrides."""
        values = {
            "pool_size": pool_size,
            "writes": settings.benchmark_writes,
            "reads": settings.benchmark_reads,
            "max_rows": settings.benchmark_max_rows,
            "write_on_dedicated_channel": settings.benchmark_write_on_dedicated_channel,
            "dns_args": settings.db_dns_args,
            "db_path": settings.db_path,
            "db_key": settings.db_key,
            "kdf_iterations": settings.db_kdf_iterations,
            "busy_timeout_seconds": settings.db_busy_timeout_seconds,
            "payload_bytes": settings.benchmark_payload_bytes,
            "max_workers": settings.benchmark_max_workers,
            "checkout_timeout": settings.benchmark_checkout_timeout,
        }
        values.update(overrides)
        return cls(**values)


class RunMetrics(BaseModel):
    """
    Outcome of a single run. Numeric fields default to zero so a run that
    failed during setup can still be reported with `error` set.
    """

    pool_size: int
    writes: int = 0
    reads: int = 0
    max_rows: int = 0
    write_on_dedicated_channel: bool = False
    dns_args: str = ""

    handles_opened: int = 0
    open_seconds: float = 0.0
    elapsed_seconds: float = 0.0
    queries_per_second: float = 0.0

    failed_writes: int = 0
    failed_reads: int = 0
    successful_writes: int = 0
    successful_reads: int = 0
    rows_scanned: int = 0

    rows_deleted: Optional[int] = None
    cleanup_error: Optional[str] = None
    peak_rss_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None
    error: Optional[str] = None


def parse_pool_sizes(raw: str) -> list[int]:
    """
    Parse a comma-separated list of positive pool sizes, e.g. ``"1,2, 4"``.
    """
    sizes: list[int] = []
    for part in raw.split(","):
        token = part.strip()
        if not token:
            raise ValueError(f"Empty pool size in '{raw}'")
        try:
            size = int(token)
        except ValueError:
            raise ValueError(f"Pool size '{token}' is not an integer") from None
        if size < 1:
            raise ValueError(f"Pool size must be positive, got {size}")
        sizes.append(size)
    return sizes


__all__ = ["RunConfig", "RunMetrics", "parse_pool_sizes"]
