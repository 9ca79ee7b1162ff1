"""
Fixture database generator for the SQLCipher pool benchmark.

Creates an encrypted database holding the two tables the benchmark expects,
`test_long_write(data BLOB)` and `user_messages(id, mentions)`, and seeds
`user_messages` with deterministic pseudo-random rows. The benchmark itself
never creates schema; point it at a database produced here or by the
application that owns the real data.
"""

from __future__ import annotations

import json
import random
import sys
import time
from typing import Iterator

import typer

from cipherbench.config import get_settings
from cipherbench.infrastructure.connection import Handle, open_db

app = typer.Typer(help="Create and seed an encrypted database for the benchmark.")

SCHEMA = """
CREATE TABLE IF NOT EXISTS test_long_write (data BLOB);
CREATE TABLE IF NOT EXISTS user_messages (
    id TEXT PRIMARY KEY,
    mentions BLOB
);
"""


def _create_schema(handle: Handle) -> None:
    with handle.serialized() as conn:
        conn.executescript(SCHEMA)


def _generate_messages(rows: int, seed: int) -> Iterator[tuple[str, bytes]]:
    rng = random.Random(seed)
    for i in range(rows):
        mentions = [f"0x{rng.getrandbits(64):016x}" for _ in range(rng.randint(0, 4))]
        yield f"msg-{seed}-{i:08d}", json.dumps(mentions).encode("utf-8")


def _seed_messages(handle: Handle, rows: int, batch_size: int, seed: int) -> int:
    inserted = 0
    batch: list[tuple[str, bytes]] = []
    with handle.serialized() as conn:
        for message in _generate_messages(rows, seed):
            batch.append(message)
            if len(batch) >= batch_size:
                inserted += _insert_batch(conn, batch)
                batch.clear()
        if batch:
            inserted += _insert_batch(conn, batch)
    return inserted


def _insert_batch(conn, batch: list[tuple[str, bytes]]) -> int:
    conn.execute("BEGIN")
    conn.executemany(
        "INSERT OR REPLACE INTO user_messages (id, mentions) VALUES (?, ?)", batch
    )
    conn.execute("COMMIT")
    return len(batch)


def build_fixture_db(
    path: str,
    key: str,
    rows: int,
    batch_size: int = 1000,
    seed: int = 42,
    kdf_iterations: int | None = None,
) -> int:
    """Create both tables in the database at `path` and seed `rows` messages."""
    handle = open_db(path, key, kdf_iterations or get_settings().db_kdf_iterations)
    try:
        _create_schema(handle)
        return _seed_messages(handle, rows=rows, batch_size=batch_size, seed=seed)
    finally:
        handle.close()


@app.command()
def main(
    rows: int = typer.Option(
        10_000,
        "--rows",
        "-r",
        help="Number of user_messages rows to generate.",
    ),
    batch_size: int = typer.Option(
        1_000,
        "--batch-size",
        "-b",
        help="Rows per insert transaction.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    path: str | None = typer.Option(
        None,
        "--path",
        help="Database path override (defaults to DB_PATH).",
    ),
) -> None:
    """
    Create the benchmark tables and seed user_messages.
    """
    settings = get_settings()
    target = path or settings.db_path
    start = time.perf_counter()
    typer.echo(f"Seeding {rows:,} rows -> {target} (batch={batch_size}, seed={seed})")
    inserted = build_fixture_db(
        target,
        settings.db_key,
        rows=rows,
        batch_size=batch_size,
        seed=seed,
        kdf_iterations=settings.db_kdf_iterations,
    )
    duration = time.perf_counter() - start
    typer.echo(f"Seeded {inserted:,} rows in {duration:.2f}s")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
