"""SQLite backend: stdlib ``sqlite3`` driven from anyio worker threads.

Each statement runs start to finish in one worker call (execute, read
the rows, read the counters) so a cursor never crosses threads.

Connections are opened with ``autocommit=True`` (every statement commits
on its own) and ``check_same_thread=False`` (consecutive calls may land
on different pool threads; ``Database`` serializes them with its lock).
"""

import sqlite3
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import anyio


@dataclass(frozen=True, slots=True)
class Outcome:
    """Rows and counters of one executed statement."""

    rows: list[dict[str, Any]]
    rowcount: int
    lastrowid: int | None


def _execute(
    conn: sqlite3.Connection, sql: str, params: Sequence[Any] | Mapping[str, Any]
) -> Outcome:
    cursor = conn.execute(sql, params)
    rows: list[dict[str, Any]] = []
    if cursor.description is not None:
        columns = [desc[0] for desc in cursor.description]
        rows = [dict(zip(columns, row, strict=True)) for row in cursor.fetchall()]
    return Outcome(rows, cursor.rowcount, cursor.lastrowid)


class SQLiteSession:
    """One open SQLite database."""

    __slots__ = ("_conn", "path")

    def __init__(self, conn: sqlite3.Connection, path: str) -> None:
        self._conn = conn
        self.path = path

    async def run(self, sql: str, params: Sequence[Any] | Mapping[str, Any] = ()) -> Outcome:
        return await anyio.to_thread.run_sync(_execute, self._conn, sql, params)

    async def script(self, sql: str) -> None:
        """Run several statements; ``executescript`` ignores autocommit mode."""
        await anyio.to_thread.run_sync(self._conn.executescript, sql)

    async def close(self) -> None:
        await anyio.to_thread.run_sync(self._conn.close)


def _open(path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(path, autocommit=True, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


async def open_session(path: str) -> SQLiteSession:
    """Open *path* (``":memory:"`` works too) with foreign keys enforced."""
    conn = await anyio.to_thread.run_sync(_open, path)
    return SQLiteSession(conn, path)
