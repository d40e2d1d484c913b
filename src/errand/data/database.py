"""Connection-bound SQL execution and table helpers.

Supports SQLite (via stdlib ``sqlite3`` + ``anyio``) and PostgreSQL (via ``asyncpg``).
One ``Database`` owns exactly one connection; there is no pool.

Configuration is a mapping, usually the ``db`` option::

    {"driver": "postgresql", "host": "localhost", "dbname": "shop",
     "user": "shop", "pass": "s3cr3t"}

    {"driver": "sqlite", "host": "localhost", "dbname": "/tmp/shop.db",
     "user": "", "pass": ""}

``host``, ``dbname``, ``user`` and ``pass`` are always required. SQLite
reads ``dbname`` as the file path and ignores the rest.
"""

import logging
import time
from collections.abc import Iterator, Mapping, Sequence
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import anyio

from errand.data._sql import (
    ALL,
    Statement,
    build_insert,
    build_select,
    build_update,
    quote,
    shift_columns,
    to_positional,
)
from errand.data.errors import (
    ConnectionError,
    DataError,
    DriverNotInstalledError,
    NotConnectedError,
    QueryError,
)
from errand.errors import ConfigurationError

logger = logging.getLogger("errand.data")

REQUIRED_OPTIONS = ("host", "dbname", "user", "pass")
DRIVERS = ("sqlite", "postgresql")

# App-level database accessor (set by App around each dispatch).
_db_var: ContextVar["Database"] = ContextVar("errand_db")


def get_db() -> "Database":
    """Return the database of the request being dispatched.

    Available when the ``App`` was given a database::

        app = App(db=Database({"driver": "sqlite", ...}))

        class UserController(Controller):
            async def listGET(self):
                rows = await get_db().fetch_all("users")

    Raises ``LookupError`` outside a dispatch or when no database is set.
    """
    return _db_var.get()


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Validated connection settings."""

    driver: str
    host: str
    dbname: str
    user: str
    password: str = field(repr=False)
    port: int | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> "DatabaseConfig":
        """Build from a ``db`` option mapping.

        Raises ``ConfigurationError`` if a required option is missing.
        """
        if options is None:
            msg = "No database options given and no 'db' option is set."
            raise ConfigurationError(msg)
        for name in REQUIRED_OPTIONS:
            if options.get(name) is None:
                msg = f'Required option "{name}" is not set.'
                raise ConfigurationError(msg)

        driver = options.get("driver", "postgresql")
        if driver == "postgres":
            driver = "postgresql"
        if driver not in DRIVERS:
            msg = f"Unsupported database driver: {driver!r}. Supported: {', '.join(DRIVERS)}"
            raise ConfigurationError(msg)

        port = options.get("port")
        return cls(
            driver=driver,
            host=str(options["host"]),
            dbname=str(options["dbname"]),
            user=str(options["user"]),
            password=str(options["pass"]),
            port=int(port) if port is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Result:
    """Outcome of one executed statement.

    ``params`` is what was actually bound, after scalar wrapping.
    """

    sql: str
    params: Sequence[Any] | Mapping[str, Any]
    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = -1
    lastrowid: Any = None

    def fetch(self) -> dict[str, Any] | None:
        """First row, or ``None``."""
        return self.rows[0] if self.rows else None

    def fetch_all(self) -> list[dict[str, Any]]:
        return list(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)


def _bind_params(params: Any) -> Sequence[Any] | Mapping[str, Any]:
    if isinstance(params, Mapping):
        return dict(params)
    if isinstance(params, (list, tuple)):
        return list(params)
    return [params]


class Database:
    """Single-connection database facade.

    Usage::

        db = Database({"driver": "sqlite", "host": "", "dbname": "app.db",
                       "user": "", "pass": ""})
        await db.connect()

        user_id = await db.insert("users", {"name": "Alice", "email": "a@b.c"})
        await db.update("users", {"name": "Alicia"}, "id", user_id)
        row = await db.fetch("users", "id", user_id)       # 2-argument form
        rows = await db.fetch_all("users", ["id", "name"])  # every row

        result = await db.query("SELECT * FROM users WHERE name = ?", "Alicia")
        count = await db.exec("DELETE FROM users")

    When *options* is omitted, ``connect()`` reads the ``db`` option of
    the request being dispatched.
    """

    __slots__ = ("_async_lock", "_config", "_conn", "_echo", "_last_insert_id", "_options")

    def __init__(self, options: Mapping[str, Any] | None = None, *, echo: bool = False) -> None:
        self._options = options
        self._echo = echo
        self._config: DatabaseConfig | None = None
        self._conn: Any = None
        self._async_lock: anyio.Lock | None = None  # Created lazily on first use
        self._last_insert_id: Any = None

    # -- Connection management --

    @property
    def connected(self) -> bool:
        return self._conn is not None

    @property
    def driver(self) -> str | None:
        return self._config.driver if self._config else None

    @property
    def last_insert_id(self) -> Any:
        """Identity generated by the most recent ``insert()``."""
        return self._last_insert_id

    @property
    def connection(self) -> Any:
        """The open ``SQLiteSession`` or asyncpg connection."""
        self._sanity_check()
        return self._conn

    async def connect(self, options: Mapping[str, Any] | None = None) -> "Database":
        """Validate the settings and open the connection.

        Raises ``ConfigurationError`` for missing settings and
        ``ConnectionError`` when the backend refuses.
        """
        if self._conn is not None:
            return self

        if options is None:
            options = self._options
        if options is None:
            from errand.context import options_var

            current = options_var.get(None)
            options = current.get("db") if current is not None else None

        config = DatabaseConfig.from_options(options)
        # Concurrent first requests all land here; only one may open.
        async with self._lock():
            if self._conn is not None:
                return self
            try:
                conn = await _open(config)
            except DriverNotInstalledError:
                raise
            except Exception as exc:
                msg = "Could not connect to database"
                raise ConnectionError(msg) from exc
            self._conn = conn
            self._config = config
        logger.debug("Connected to %s database %r", config.driver, config.dbname)
        return self

    async def disconnect(self) -> None:
        """Close the connection. Safe to call twice."""
        if self._conn is None:
            return
        conn, self._conn = self._conn, None
        await conn.close()

    async def __aenter__(self) -> "Database":
        return await self.connect()

    async def __aexit__(self, *_: Any) -> None:
        await self.disconnect()

    def _sanity_check(self) -> None:
        if self._conn is None:
            msg = "No connection to database has been made yet"
            raise NotConnectedError(msg)

    def _lock(self) -> anyio.Lock:
        # Lazy-init: can't create in __init__ before an event loop exists.
        if self._async_lock is None:
            self._async_lock = anyio.Lock()
        return self._async_lock

    # -- Echo / query logging --

    def _log_query(self, sql: str, params: Any, elapsed: float) -> None:
        if not self._echo:
            return
        ms = elapsed * 1000
        param_str = f"  params={params!r}" if params else ""
        logger.info("%6.1fms  %s%s", ms, sql, param_str)

    async def _run(self, sql: str, params: Sequence[Any] | Mapping[str, Any]) -> Result:
        self._sanity_check()
        assert self._config is not None
        t0 = time.perf_counter()
        async with self._lock():
            try:
                return await _execute(self._config.driver, self._conn, sql, params)
            except DataError:
                raise
            except Exception as exc:
                raise _query_error(exc) from exc
            finally:
                self._log_query(sql, params, time.perf_counter() - t0)

    # -- Raw access --

    async def query(self, sql: str, params: Any = ()) -> Result:
        """Run *sql* with bound *params* and return the ``Result``.

        A scalar is wrapped into a one-element list. Lists bind
        positionally in the driver's own placeholder style (``?`` for
        SQLite, ``$1`` for PostgreSQL); mappings bind ``:name`` placeholders.
        """
        return await self._run(sql, _bind_params(params))

    async def exec(self, sql: str) -> int:  # noqa: A003 — mirrors the SQL verb
        """Execute *sql* without parameters and return the affected-row count."""
        result = await self._run(sql, [])
        return result.rowcount

    async def execute_script(self, sql: str) -> None:
        """Execute several ``;``-separated statements, e.g. schema setup."""
        self._sanity_check()
        assert self._config is not None
        t0 = time.perf_counter()
        async with self._lock():
            try:
                if self._config.driver == "sqlite":
                    await self._conn.script(sql)
                else:
                    # PostgreSQL handles multi-statement SQL natively
                    await self._conn.execute(sql)
            except Exception as exc:
                raise _query_error(exc) from exc
            finally:
                self._log_query(sql, (), time.perf_counter() - t0)

    # -- Table helpers --

    async def insert(self, table: str, data: Mapping[str, Any], *, primary_key: str | None = "id") -> Any:
        """Insert one row, columns in *data* order. Returns the generated key.

        SQLite reports the new ``rowid``. PostgreSQL has no last-insert-id,
        so the statement gets ``RETURNING <primary_key>``.
        """
        self._sanity_check()
        stmt = build_insert(table, data)
        if self.driver == "postgresql" and primary_key is not None:
            stmt = Statement(f"{stmt.sql} RETURNING {quote(primary_key)}", stmt.params)

        result = await self._run(stmt.sql, stmt.params)
        if self.driver == "postgresql":
            row = result.fetch()
            self._last_insert_id = next(iter(row.values())) if row else None
        else:
            self._last_insert_id = result.lastrowid
        return self._last_insert_id

    async def update(self, table: str, data: Mapping[str, Any], key: str, value: Any) -> int:
        """Update the first row where *key* equals *value*. Returns 0 or 1.

        *data* may not contain *key* itself; that raises ``ContractError``.
        """
        self._sanity_check()
        assert self._config is not None
        stmt = build_update(table, data, key, value, driver=self._config.driver)
        result = await self._run(stmt.sql, stmt.params)
        return result.rowcount

    async def fetch(
        self,
        table: str,
        columns: Sequence[str] | str = ("*",),
        key: Any = ALL,
        value: Any = ALL,
    ) -> dict[str, Any] | None:
        """Fetch the first row of *table*, optionally where *key* = *value*.

        ``fetch(table, "id", 7)`` is shorthand for
        ``fetch(table, "*", "id", 7)``. Returns ``None`` when nothing matches.
        """
        self._sanity_check()
        columns, key, value = shift_columns(columns, key, value)
        stmt = build_select(table, columns, key, value)
        result = await self._run(stmt.sql, stmt.params)
        return result.fetch()

    async def fetch_all(
        self,
        table: str,
        columns: Sequence[str] | str = ("*",),
        key: Any = ALL,
        value: Any = ALL,
    ) -> list[dict[str, Any]]:
        """Like ``fetch()``, returning every matching row in order."""
        self._sanity_check()
        columns, key, value = shift_columns(columns, key, value)
        stmt = build_select(table, columns, key, value)
        result = await self._run(stmt.sql, stmt.params)
        return result.fetch_all()

    def __repr__(self) -> str:
        state = "connected" if self.connected else "disconnected"
        return f"<Database {self.driver or '?'} {state}>"


# =============================================================================
# Driver dispatch
# =============================================================================
# Functions below branch on ``DatabaseConfig.driver``: "sqlite" or "postgresql".


def _query_error(exc: Exception) -> QueryError:
    """Wrap a driver exception, keeping its native code."""
    code = (
        getattr(exc, "sqlstate", None)
        or getattr(exc, "sqlite_errorname", None)
        or getattr(exc, "sqlite_errorcode", None)
    )
    return QueryError(str(exc), code)


async def _open(config: DatabaseConfig) -> Any:
    if config.driver == "sqlite":
        from errand.data._sqlite import open_session

        return await open_session(config.dbname)

    try:
        import asyncpg
    except ImportError:
        msg = (
            "errand.data requires 'asyncpg' for PostgreSQL databases. "
            "Install it with: pip install errand[pg]"
        )
        raise DriverNotInstalledError(msg) from None

    return await asyncpg.connect(
        host=config.host,
        port=config.port,
        database=config.dbname,
        user=config.user,
        password=config.password,
    )


async def _execute(
    driver: str, conn: Any, sql: str, params: Sequence[Any] | Mapping[str, Any]
) -> Result:
    if driver == "sqlite":
        outcome = await conn.run(sql, params)
        return Result(sql, params, outcome.rows, outcome.rowcount, outcome.lastrowid)

    # PostgreSQL — named placeholders become $n
    if isinstance(params, Mapping):
        pg_sql, args = to_positional(sql, params)
    else:
        pg_sql, args = sql, list(params)
    stmt = await conn.prepare(pg_sql)
    records = await stmt.fetch(*args)
    # Status messages look like "UPDATE 1" or "INSERT 0 1"
    parts = (stmt.get_statusmsg() or "").split()
    rowcount = int(parts[-1]) if parts and parts[-1].isdigit() else len(records)
    return Result(sql, params, [dict(r) for r in records], rowcount)
