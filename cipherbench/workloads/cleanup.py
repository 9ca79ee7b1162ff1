"""
Post-run cleanup of the scratch write table.
"""

from __future__ import annotations

import sqlcipher3

from cipherbench.errors import CleanupError, PoolError
from cipherbench.infrastructure.context import RunContext
from cipherbench.utils.logging import get_logger
from cipherbench.workloads.writes import rollback_quietly

log = get_logger(__name__)

DELETE_SQL = "DELETE FROM test_long_write"


def delete_rows(conn: sqlcipher3.Connection) -> int:
    """Delete every row of `test_long_write` in one transaction; return the count."""
    try:
        conn.execute("BEGIN")
        cursor = conn.execute(DELETE_SQL)
        deleted = cursor.rowcount
        cursor.close()
        conn.execute("COMMIT")
    except sqlcipher3.Error as exc:
        rollback_quietly(conn)
        raise CleanupError(f"delete failed: {exc}") from exc
    return max(deleted, 0)


def delete_all(ctx: RunContext) -> int:
    """
    Empty the scratch write table using the run's write handle policy.

    Safe to call repeatedly; a second call deletes zero rows.
    """
    log.info("Deleting data..")
    try:
        with ctx.acquire_for_write() as conn:
            deleted = delete_rows(conn)
    except PoolError as exc:
        raise CleanupError(f"no handle for cleanup: {exc}") from exc
    log.info("Deleted rows", extra={"rows_deleted": deleted})
    return deleted


__all__ = ["DELETE_SQL", "delete_all", "delete_rows"]
