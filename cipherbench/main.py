from __future__ import annotations

import json
import sys
from typing import List, Optional

import typer

from cipherbench.config import get_settings
from cipherbench.domain.models import RunConfig, parse_pool_sizes
from cipherbench.errors import CleanupError, OpenError
from cipherbench.infrastructure.context import build_run_context
from cipherbench.orchestrator import run_pool_sizes
from cipherbench.reporter import print_results
from cipherbench.utils.logging import configure_logging
from cipherbench.workloads.cleanup import delete_all

app = typer.Typer(help="SQLCipher connection pool benchmark CLI.")


def _pool_sizes_callback(value: str) -> List[int]:
    try:
        return parse_pool_sizes(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_path}{settings.db_dns_args} kdf_iter={settings.db_kdf_iterations} | "
        f"pool_sizes={settings.benchmark_pool_sizes} writes={settings.benchmark_writes} "
        f"reads={settings.benchmark_reads} max_rows={settings.benchmark_max_rows} "
        f"dedicated={int(settings.benchmark_write_on_dedicated_channel)} "
        f"workers={settings.benchmark_max_workers}"
    )


@app.command()
def run(
    pool_size: Optional[str] = typer.Option(
        None,
        "--pool-size",
        "--poolSize",
        "-p",
        help="Comma-separated pool sizes, one run each. Ex: 1,2,3,4,5",
    ),
    writes: Optional[int] = typer.Option(None, "--writes", "-w", min=0, help="Insert units per run."),
    reads: Optional[int] = typer.Option(None, "--reads", "-r", min=0, help="Select units per run."),
    write_on_dedicated_channel: Optional[int] = typer.Option(
        None,
        "--write-on-dedicated-channel",
        "--writeOnDedicatedChannel",
        min=0,
        max=1,
        help="1 to do all writing on a single, dedicated handle.",
    ),
    db_dns_args: Optional[str] = typer.Option(
        None,
        "--db-dns-args",
        "--dbDNSArgs",
        help="Connection-string args appended to the path. Ex: ?mode=rwc&cache=private",
    ),
    max_rows: Optional[int] = typer.Option(
        None, "--max-rows", "--maxRows", min=0, help="Max rows to select."
    ),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write results JSON."),
    strict: bool = typer.Option(False, "--strict", help="Abort on the first run that fails to open."),
) -> None:
    """
    Run the benchmark once per pool size and print a summary.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    sizes = _pool_sizes_callback(pool_size or settings.benchmark_pool_sizes)
    overrides = {
        "writes": writes,
        "reads": reads,
        "max_rows": max_rows,
        "dns_args": db_dns_args,
        "write_on_dedicated_channel": (
            None if write_on_dedicated_channel is None else bool(write_on_dedicated_channel)
        ),
    }
    template = RunConfig.from_settings(
        settings,
        pool_size=sizes[0],
        **{key: value for key, value in overrides.items() if value is not None},
    )

    try:
        results = run_pool_sizes(
            sizes,
            template,
            results_dir=settings.results_dir,
            persist=persist,
            failure_policy="strict" if strict else "tolerant",
        )
    except OpenError as exc:
        typer.echo(f"Run aborted: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    print_results(results)
    typer.echo(json.dumps([r.model_dump() for r in results], indent=2))


@app.command()
def clean() -> None:
    """
    Delete every row of the scratch write table.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    ctx = build_run_context(RunConfig.from_settings(settings, pool_size=1, payload_bytes=0))
    try:
        deleted = delete_all(ctx)
    except CleanupError as exc:
        typer.echo(f"Cleanup failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    finally:
        ctx.close()
    typer.echo(f"Deleted {deleted} row(s) from test_long_write.")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
