"""
Pytest configuration for the SQLCipher pool benchmark.

Provides fixtures for:
- Encrypted fixture databases in a temporary directory
- Run configuration factories pointed at those databases
- Row counting helpers for post-run assertions

SQLCipher is embedded, so integration tests need no external service; they
run against real encrypted files under `tmp_path`.
"""

from __future__ import annotations

from typing import Callable

import pytest

from cipherbench.domain.models import RunConfig
from cipherbench.infrastructure.connection import REDUCED_KDF_ITERATIONS, open_db

TEST_KEY = "test-passphrase"
TEST_KDF_ITERATIONS = REDUCED_KDF_ITERATIONS
SEEDED_ROWS = 30


@pytest.fixture
def db_path(tmp_path) -> str:
    """Path of a not-yet-created database file."""
    return str(tmp_path / "bench.db")


@pytest.fixture
def seeded_db(db_path: str) -> str:
    """
    Encrypted database with both benchmark tables and SEEDED_ROWS messages.
    """
    from scripts.generate_data import build_fixture_db

    build_fixture_db(
        db_path,
        TEST_KEY,
        rows=SEEDED_ROWS,
        batch_size=10,
        seed=42,
        kdf_iterations=TEST_KDF_ITERATIONS,
    )
    return db_path


@pytest.fixture
def writes_only_db(db_path: str) -> str:
    """Encrypted database holding `test_long_write` but no `user_messages`."""
    handle = open_db(db_path, TEST_KEY, TEST_KDF_ITERATIONS)
    try:
        with handle.serialized() as conn:
            conn.execute("CREATE TABLE test_long_write (data BLOB)")
    finally:
        handle.close()
    return db_path


@pytest.fixture
def config_factory() -> Callable[..., RunConfig]:
    """
    Build a small RunConfig; pass `db_path` and any overrides.
    """

    def _make(db_path: str, **overrides) -> RunConfig:
        values = {
            "pool_size": 1,
            "writes": 10,
            "reads": 50,
            "max_rows": 20,
            "db_path": db_path,
            "db_key": TEST_KEY,
            "kdf_iterations": TEST_KDF_ITERATIONS,
            "payload_bytes": 4096,
            "max_workers": 16,
            "checkout_timeout": 30.0,
        }
        values.update(overrides)
        return RunConfig(**values)

    return _make


@pytest.fixture
def count_rows() -> Callable[[str, str], int]:
    """Count rows of a table in an encrypted test database."""

    def _count(path: str, table: str) -> int:
        handle = open_db(path, TEST_KEY, TEST_KDF_ITERATIONS)
        try:
            with handle.serialized() as conn:
                return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
        finally:
            handle.close()

    return _count
