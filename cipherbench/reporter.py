from __future__ import annotations

from typing import List

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cipherbench.domain.models import RunMetrics


def _format_mb(value: int | None) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f}"


def print_results(results: List[RunMetrics], console: Console | None = None) -> None:
    """
    Render run metrics as a rich table, one row per pool size in run order.

    Failed runs get a placeholder row; their errors, and any cleanup errors,
    are printed below the table.
    """
    console = console or Console()

    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    first = results[0]
    title = (
        "SQLCipher Pool Bench Results\n"
        f"[dim]writes={first.writes} reads={first.reads} max_rows={first.max_rows} "
        f"dedicated_write_channel={int(first.write_on_dedicated_channel)}[/dim]"
    )
    table = Table(title=title, box=box.ROUNDED)

    table.add_column("Pool", justify="right", style="cyan", no_wrap=True)
    table.add_column("Handles", justify="right", style="blue")
    table.add_column("Open (s)", justify="right", style="green")
    table.add_column("Elapsed (s)", justify="right", style="green")
    table.add_column("Queries/s", justify="right", style="bold green")
    table.add_column("Failed W", justify="right", style="red")
    table.add_column("Failed R", justify="right", style="red")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("CPU %", justify="right", style="magenta")

    for res in results:
        if res.error:
            table.add_row(str(res.pool_size), "[red]failed[/red]", *["-"] * 7)
            continue
        cpu = f"{res.cpu_percent:.1f}" if res.cpu_percent is not None else "N/A"
        table.add_row(
            str(res.pool_size),
            str(res.handles_opened),
            f"{res.open_seconds:.3f}",
            f"{res.elapsed_seconds:.3f}",
            f"{res.queries_per_second:,.2f}",
            str(res.failed_writes),
            str(res.failed_reads),
            _format_mb(res.peak_rss_bytes),
            cpu,
        )

    console.print(table)

    for res in results:
        if res.error:
            console.print(f"[red]pool={res.pool_size}: run failed: {escape(res.error)}[/red]")
        if res.cleanup_error:
            console.print(
                f"[yellow]pool={res.pool_size}: cleanup failed: {escape(res.cleanup_error)}[/yellow]"
            )
