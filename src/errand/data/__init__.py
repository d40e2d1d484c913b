"""Data access for errand: a SQL facade and active-record wrappers.

Basic usage::

    from errand.data import Database, Record, Relation

    db = Database({"driver": "sqlite", "host": "", "dbname": "app.db",
                   "user": "", "pass": ""})
    await db.connect()

    new_id = await db.insert("users", {"name": "Alice"})
    row = await db.fetch("users", "id", new_id)

    class User(Record):
        table = "users"

    user = await User.load("id", new_id, db=db)

SQLite works out of the box. PostgreSQL needs ``asyncpg``::

    pip install errand[pg]
"""

from errand.data._sql import ALL
from errand.data.database import Database, DatabaseConfig, Result, get_db
from errand.data.errors import (
    ConnectionError,
    ContractError,
    DataError,
    DriverNotInstalledError,
    NotConnectedError,
    QueryError,
    RecordNotFound,
)
from errand.data.record import Record, Relation, resolve_model

__all__ = [
    "ALL",
    "ConnectionError",
    "ContractError",
    "DataError",
    "Database",
    "DatabaseConfig",
    "DriverNotInstalledError",
    "NotConnectedError",
    "QueryError",
    "Record",
    "RecordNotFound",
    "Relation",
    "Result",
    "get_db",
    "resolve_model",
]
