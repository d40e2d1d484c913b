"""Data layer error hierarchy."""

from typing import Any

from errand.errors import ErrandError, NotFound


class DataError(ErrandError):
    """Base for all errand.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class ConnectionError(DataError):  # noqa: A001 — intentional shadow of builtin
    """Raised when a database connection cannot be established."""


class NotConnectedError(DataError):
    """Raised when a data method runs before a successful ``connect()``."""


class ContractError(DataError, ValueError):
    """Raised when a data method is called with arguments it cannot honor.

    Invalid identifiers, or an ``update()`` whose data repeats the
    predicate column.
    """


class QueryError(DataError):
    """Raised when the backend rejects a statement.

    ``code`` is the driver's native error code (SQLite error name or
    PostgreSQL SQLSTATE) when one is available.
    """

    def __init__(self, message: str, code: str | int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code is not None:
            return f"[{self.code}] {self.message}"
        return self.message


class RecordNotFound(NotFound):
    """404 — a Record lookup matched no row.

    Carries the table and the key/value pair that was attempted.
    """

    def __init__(self, table: str, key: str, value: Any) -> None:
        super().__init__(
            f"Table {table!r} could not be loaded because key ({key}) / "
            f"value ({value!r}) pair could not be found"
        )
        object.__setattr__(self, "table", table)
        object.__setattr__(self, "key", key)
        object.__setattr__(self, "value", value)
