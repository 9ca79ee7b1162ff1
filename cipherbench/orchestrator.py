"""
Orchestrator for benchmark runs: builds per-run state, fans out the read and
write workloads concurrently, measures throughput and persists results.

Usage (example from CLI):
    from cipherbench.orchestrator import run_pool_sizes

    results = run_pool_sizes([1, 2, 4], template_config)
    print(results)

Outputs are saved to `results/` by default:
- `results/latest.json` (last invocation)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Literal

from cipherbench.domain.models import RunConfig, RunMetrics
from cipherbench.errors import CleanupError, OpenError
from cipherbench.infrastructure.context import RunContext, build_run_context
from cipherbench.utils.logging import get_logger
from cipherbench.utils.profiler import profile_block
from cipherbench.workloads.abstract import UnitResult, Workload
from cipherbench.workloads.cleanup import delete_all
from cipherbench.workloads.reads import ReadWorkload
from cipherbench.workloads.writes import WriteWorkload

log = get_logger(__name__)

FailurePolicy = Literal["tolerant", "strict"]


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _workloads() -> List[Workload]:
    """Workloads fanned out by every run, writes first."""
    return [WriteWorkload(), ReadWorkload()]


def _fan_out(executor: Executor, workload: Workload, ctx: RunContext) -> List[UnitResult]:
    """Submit every unit of one workload and wait for all of them."""
    count = workload.iterations(ctx)
    futures = [executor.submit(workload.run_unit, ctx, index) for index in range(count)]
    return [future.result() for future in futures]


def run_queries(ctx: RunContext) -> Dict[str, List[UnitResult]]:
    """
    Run all workloads concurrently and return their unit results by name.

    One coordinator per workload submits its units to a shared executor, so
    writes and reads interleave freely.
    """
    workloads = _workloads()
    with ThreadPoolExecutor(
        max_workers=ctx.config.max_workers, thread_name_prefix="unit"
    ) as units, ThreadPoolExecutor(
        max_workers=len(workloads), thread_name_prefix="coordinator"
    ) as coordinators:
        jobs = {w.name: coordinators.submit(_fan_out, units, w, ctx) for w in workloads}
        return {name: job.result() for name, job in jobs.items()}


def _tally(results: List[UnitResult]) -> tuple[int, int]:
    """Return (successful units, rows touched by successful units)."""
    ok = [r for r in results if r.get("ok")]
    return len(ok), sum(r.get("rows", 0) for r in ok)


def _base_metrics(config: RunConfig) -> dict:
    return {
        "pool_size": config.pool_size,
        "writes": config.writes,
        "reads": config.reads,
        "max_rows": config.max_rows,
        "write_on_dedicated_channel": config.write_on_dedicated_channel,
        "dns_args": config.dns_args,
    }


def run_once(config: RunConfig) -> RunMetrics:
    """
    Execute one run for a single pool size.

    Raises
    ------
    OpenError
        A handle could not be opened; no unit was started.
    """
    log.info(
        f"Starting pool size: {config.pool_size}, writes: {config.writes}, "
        f"reads: {config.reads}, Max rows to select: {config.max_rows}, "
        f"Writing on dedicated channel: {int(config.write_on_dedicated_channel)}, "
        f"dbDNSArgs: {config.dns_args}",
        extra=_base_metrics(config),
    )

    ctx = build_run_context(config)
    try:
        log.info(
            f"Open connections took {ctx.open_seconds:.4f} seconds",
            extra={"handles_opened": ctx.handles_opened, "open_seconds": ctx.open_seconds},
        )

        with profile_block(f"pool-{config.pool_size}") as stats:
            results = run_queries(ctx)

        successful_writes, _ = _tally(results[WriteWorkload.name])
        successful_reads, rows_scanned = _tally(results[ReadWorkload.name])
        elapsed = stats.duration_seconds
        qps = (config.reads + config.writes) / elapsed if elapsed > 0 else 0.0

        metrics = RunMetrics(
            **_base_metrics(config),
            handles_opened=ctx.handles_opened,
            open_seconds=_round_float(ctx.open_seconds, 4),
            elapsed_seconds=_round_float(elapsed, 4),
            queries_per_second=_round_float(qps),
            failed_writes=ctx.counters.failed_writes,
            failed_reads=ctx.counters.failed_reads,
            successful_writes=successful_writes,
            successful_reads=successful_reads,
            rows_scanned=rows_scanned,
            peak_rss_bytes=stats.peak_rss_bytes,
            cpu_percent=_round_float(stats.cpu_percent, 1) if stats.cpu_percent else None,
        )

        log.info(
            f"Failed writes: {metrics.failed_writes}, Failed reads: {metrics.failed_reads}",
            extra={"failed_writes": metrics.failed_writes, "failed_reads": metrics.failed_reads},
        )
        log.info(
            f"RunQueries took {elapsed:.4f} seconds. Queries per second: {qps:.2f}",
            extra={"elapsed_seconds": elapsed, "queries_per_second": qps},
        )

        try:
            metrics.rows_deleted = delete_all(ctx)
        except CleanupError as exc:
            log.error(f"Delete failed: {exc}", extra={"pool_size": config.pool_size})
            metrics.cleanup_error = str(exc)
    finally:
        ctx.close()

    return metrics


def _config_for(template: RunConfig, pool_size: int) -> RunConfig:
    """Copy `template` with a new pool size, re-running field validation."""
    return RunConfig.model_validate({**template.model_dump(), "pool_size": pool_size})


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    with latest_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    with archive_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def run_pool_sizes(
    pool_sizes: Iterable[int],
    template: RunConfig,
    results_dir: Path | str = "results",
    persist: bool = True,
    failure_policy: FailurePolicy = "tolerant",
) -> List[RunMetrics]:
    """
    Run the benchmark once per pool size, sequentially and with fresh state.

    Parameters
    ----------
    pool_sizes : iterable[int]
        Pool sizes to measure, in order.
    template : RunConfig
        Configuration shared by every run; only `pool_size` is replaced.
    results_dir : Path | str
        Directory to store JSON artifacts.
    persist : bool
        Whether to write results to disk.
    failure_policy : "tolerant" | "strict"
        On a setup failure, "tolerant" records the error and moves on to the
        next pool size; "strict" re-raises.

    Returns
    -------
    List[RunMetrics]
        One entry per pool size.

    Raises
    ------
    pydantic.ValidationError
        A pool size is below 1; raised before any run starts.
    """
    sizes = list(pool_sizes)
    # Validated up front: a bad size must not leave a run waiting on an empty pool.
    configs = [_config_for(template, size) for size in sizes]
    results: List[RunMetrics] = []
    for number, (size, config) in enumerate(zip(sizes, configs), start=1):
        log.info(f"{'=' * 60}")
        log.info(f"[RUN {number}/{len(sizes)}] POOL SIZE {size}", extra={"pool_size": size})
        log.info(f"{'=' * 60}")

        try:
            metrics = run_once(config)
        except OpenError as exc:
            if failure_policy == "strict":
                raise
            log.exception(f"[RUN FAILED] pool size {size}", extra={"pool_size": size})
            metrics = RunMetrics(**_base_metrics(config), error=str(exc))
        results.append(metrics)

    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pool_sizes": sizes,
        "results": [m.model_dump() for m in results],
    }
    if persist:
        _persist_results(payload, Path(results_dir))

    log.info(
        f"[ORCHESTRATOR COMPLETE] {len(sizes)} run(s) executed",
        extra={"pool_sizes": sizes},
    )
    return results


__all__ = [
    "run_once",
    "run_pool_sizes",
    "run_queries",
]
