"""
Read workload: a bounded select over `user_messages`, scanning every row.

The decoded values are discarded; the unit exists to exercise I/O and
decryption cost, not to validate content.
"""

from __future__ import annotations

import sqlcipher3

from cipherbench.errors import PoolError, ReadError
from cipherbench.infrastructure.context import RunContext
from cipherbench.utils.logging import get_logger
from cipherbench.workloads.abstract import UnitResult, Workload

log = get_logger(__name__)

SELECT_SQL = "SELECT id, mentions FROM user_messages LIMIT ?"


def scan_messages(conn: sqlcipher3.Connection, max_rows: int) -> int:
    """
    Run the bounded select and unpack both columns of every row.

    Returns the number of rows scanned.
    """
    try:
        cursor = conn.execute(SELECT_SQL, (max_rows,))
    except sqlcipher3.Error as exc:
        raise ReadError(f"query failed: {exc}") from exc

    count = 0
    try:
        for row in cursor:
            _message_id, _serialized_mentions = row
            count += 1
    except (sqlcipher3.Error, ValueError) as exc:
        raise ReadError(f"scan failed after {count} rows: {exc}") from exc
    finally:
        cursor.close()
    return count


class ReadWorkload(Workload):
    """
    Select up to `max_rows` rows from `user_messages` per unit.
    """

    name: str = "reads"
    description: str = "SELECT id, mentions ... LIMIT max_rows with a full row scan."

    def iterations(self, ctx: RunContext) -> int:
        return ctx.config.reads

    def run_unit(self, ctx: RunContext, index: int) -> UnitResult:
        try:
            with ctx.acquire_for_read() as conn:
                rows = scan_messages(conn, ctx.config.max_rows)
        except (ReadError, PoolError) as exc:
            failed = ctx.counters.record_failed_read()
            log.error(
                f"Querying {index} failed: {exc}",
                extra={"unit": index, "failed_reads": failed},
            )
            return UnitResult(kind=self.name, index=index, ok=False, rows=0, error=str(exc))
        return UnitResult(kind=self.name, index=index, ok=True, rows=rows, error=None)


__all__ = ["ReadWorkload", "SELECT_SQL", "scan_messages"]
