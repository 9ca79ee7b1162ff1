"""
Write workload: one transaction inserting the run's payload blob per unit.
"""

from __future__ import annotations

import sqlcipher3

from cipherbench.errors import PoolError, WriteError
from cipherbench.infrastructure.context import RunContext
from cipherbench.utils.logging import get_logger
from cipherbench.workloads.abstract import UnitResult, Workload

log = get_logger(__name__)

INSERT_SQL = "INSERT INTO test_long_write (data) VALUES (?)"


def rollback_quietly(conn: sqlcipher3.Connection) -> None:
    """Roll back an open transaction, logging rather than raising on failure."""
    if not conn.in_transaction:
        return
    try:
        conn.execute("ROLLBACK")
    except sqlcipher3.Error as exc:
        log.debug("Rollback failed", extra={"error": str(exc)})


def insert_payload(conn: sqlcipher3.Connection, payload: bytes) -> None:
    """
    BEGIN, insert one row holding `payload`, COMMIT.

    Raises
    ------
    WriteError
        Naming the stage (begin, exec, commit) that failed. An open
        transaction is rolled back before raising.
    """
    stage = "begin"
    try:
        conn.execute("BEGIN")
        stage = "exec"
        cursor = conn.cursor()
        try:
            cursor.execute(INSERT_SQL, (payload,))
        finally:
            cursor.close()
        stage = "commit"
        conn.execute("COMMIT")
    except sqlcipher3.Error as exc:
        rollback_quietly(conn)
        raise WriteError(f"{stage} failed: {exc}") from exc


class WriteWorkload(Workload):
    """
    Insert the fixed payload into `test_long_write`, one row per unit.
    """

    name: str = "writes"
    description: str = "BEGIN / INSERT blob / COMMIT on the shared or a pooled handle."

    def iterations(self, ctx: RunContext) -> int:
        return ctx.config.writes

    def run_unit(self, ctx: RunContext, index: int) -> UnitResult:
        try:
            with ctx.acquire_for_write() as conn:
                insert_payload(conn, ctx.payload)
        except (WriteError, PoolError) as exc:
            failed = ctx.counters.record_failed_write()
            log.error(
                f"Writing {index} failed: {exc}",
                extra={"unit": index, "failed_writes": failed},
            )
            return UnitResult(kind=self.name, index=index, ok=False, rows=0, error=str(exc))
        return UnitResult(kind=self.name, index=index, ok=True, rows=1, error=None)


__all__ = ["INSERT_SQL", "WriteWorkload", "insert_payload", "rollback_quietly"]
