"""
Connection factory for encrypted SQLCipher databases.

`open_db` opens one handle, applies the encryption key and key-derivation
iteration count, and forces write-ahead-log journaling. Every failure is
raised as a subclass of `OpenError`; nothing is retried.

Usage:
    from cipherbench.infrastructure.connection import open_db

    handle = open_db("file:bench.db", "secret", kdf_iterations=3200)
    with handle.serialized() as conn:
        conn.execute("SELECT 1")
    handle.close()
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Generator

import sqlcipher3

from cipherbench.errors import KeyRejectedError, ModeMismatchError, OpenError, PragmaError
from cipherbench.utils.logging import get_logger

log = get_logger(__name__)

# Reduced number of kdf iterations used as the factory default. Faster opens
# in exchange for a smaller security margin than SQLCipher's 256000.
REDUCED_KDF_ITERATIONS = 3200

WAL_MODE = "wal"
IN_MEMORY_PATH = ":memory:"


class Handle:
    """
    An open, configured connection used by one operation at a time.

    The driver does not support concurrent use of a single connection, so all
    access goes through `serialized()`.
    """

    def __init__(self, connection: sqlcipher3.Connection, path: str) -> None:
        self.connection = connection
        self.path = path
        self.closed = False
        self._lock = threading.Lock()

    @contextmanager
    def serialized(self) -> Generator[sqlcipher3.Connection, None, None]:
        with self._lock:
            yield self.connection

    def close(self) -> None:
        if self.closed:
            return
        self.connection.close()
        self.closed = True

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Handle {self.path!r} {state}>"


def build_target(path: str, dns_args: str = "") -> str:
    """Append connection-string parameters, turning the path into a URI when needed."""
    if not dns_args:
        return path
    if not path.startswith("file:"):
        path = f"file:{path}"
    return f"{path}{dns_args}"


def is_in_memory(target: str) -> bool:
    return (
        target == IN_MEMORY_PATH
        or target.startswith("file::memory:")
        or "mode=memory" in target
    )


def quote_literal(value: str) -> str:
    """Render a string as a SQL literal; pragma values cannot be bound."""
    return "'" + value.replace("'", "''") + "'"


def _exec_pragma(conn: sqlcipher3.Connection, statement: str) -> None:
    try:
        conn.execute(statement).fetchall()
    except sqlcipher3.Error as exc:
        raise PragmaError(f"{statement} failed: {exc}") from exc


def _configure(conn: sqlcipher3.Connection, target: str, key: str, kdf_iterations: int) -> None:
    _exec_pragma(conn, "PRAGMA foreign_keys=ON")

    try:
        conn.execute(f"PRAGMA key = {quote_literal(key)}").fetchall()
    except sqlcipher3.Error as exc:
        raise KeyRejectedError("failed to set key pragma") from exc

    _exec_pragma(conn, f"PRAGMA kdf_iter = {int(kdf_iterations)}")

    # SQLCipher accepts any key; a wrong one only surfaces on first read, as a
    # DatabaseError. OperationalError (locked, I/O) says nothing about the key.
    try:
        conn.execute("SELECT count(*) FROM sqlite_master").fetchone()
    except sqlcipher3.OperationalError as exc:
        raise OpenError(f"unable to read schema of {target}: {exc}") from exc
    except sqlcipher3.DatabaseError as exc:
        raise KeyRejectedError(f"key not accepted for {target}: {exc}") from exc

    # Must be set after the database is keyed.
    try:
        row = conn.execute("PRAGMA journal_mode=WAL").fetchone()
    except sqlcipher3.Error as exc:
        raise PragmaError(f"PRAGMA journal_mode=WAL failed: {exc}") from exc
    mode = str(row[0]).lower() if row else ""
    if mode != WAL_MODE and not is_in_memory(target):
        raise ModeMismatchError(target, mode)


def open_db(
    path: str,
    key: str,
    kdf_iterations: int = REDUCED_KDF_ITERATIONS,
    *,
    dns_args: str = "",
    busy_timeout: float = 5.0,
) -> Handle:
    """
    Open and configure a handle to an encrypted database.

    Parameters
    ----------
    path : str
        File path, ``file:`` URI, or ``:memory:``.
    key : str
        SQLCipher passphrase.
    kdf_iterations : int
        Key-derivation work factor; lower opens faster.
    dns_args : str
        Extra connection-string parameters appended verbatim to the path.
    busy_timeout : float
        Seconds the engine waits on a locked database before failing.

    Raises
    ------
    OpenError
        The connection could not be opened or its schema could not be read.
    KeyRejectedError
        The key pragma failed or the key does not decrypt the file.
    PragmaError
        A configuration pragma failed.
    ModeMismatchError
        WAL journaling could not be enabled on an on-disk database.
    """
    target = build_target(path, dns_args)
    try:
        conn = sqlcipher3.connect(
            target,
            uri=target.startswith("file:"),
            check_same_thread=False,
            isolation_level=None,
            timeout=busy_timeout,
        )
    except sqlcipher3.Error as exc:
        raise OpenError(f"unable to open database {target}: {exc}") from exc

    try:
        _configure(conn, target, key, kdf_iterations)
    except BaseException:
        conn.close()
        raise

    log.debug("Opened database handle", extra={"path": target, "kdf_iterations": kdf_iterations})
    return Handle(conn, target)


__all__ = [
    "Handle",
    "IN_MEMORY_PATH",
    "REDUCED_KDF_ITERATIONS",
    "WAL_MODE",
    "build_target",
    "is_in_memory",
    "open_db",
    "quote_literal",
]
