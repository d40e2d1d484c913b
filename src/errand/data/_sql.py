"""SQL statement building for the table helpers.

Turns ``(table, {column: value})`` calls into parameterized SQL with
named placeholders (``:column``). Identifiers are validated and quoted;
values are never interpolated.

PostgreSQL speaks ``$1``-style placeholders, so ``to_positional`` rewrites
named statements for asyncpg.
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Final

from errand.data.errors import ContractError

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# ``:name`` but not ``::cast`` and not inside an identifier.
_NAMED_PARAM = re.compile(r"(?<![:\w]):([A-Za-z_][A-Za-z0-9_]*)")


class _All:
    """No-filter sentinel for ``fetch``/``fetch_all``."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "ALL"


ALL: Final = _All()
"""Pass as ``key`` to select every row. The default for ``fetch``/``fetch_all``."""


@dataclass(frozen=True, slots=True)
class Statement:
    """SQL text plus the named parameters it binds."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


def quote(name: str) -> str:
    """Validate and double-quote a table or column name."""
    if not isinstance(name, str) or not _IDENT.match(name):
        msg = f"Invalid SQL identifier: {name!r}"
        raise ContractError(msg)
    return f'"{name}"'


def _column_list(columns: Sequence[str]) -> str:
    if not columns or list(columns) == ["*"]:
        return "*"
    return ", ".join(quote(c) for c in columns)


def shift_columns(columns: Any, key: Any, value: Any) -> tuple[Sequence[str], Any, Any]:
    """Apply the two-argument calling convention of ``fetch``.

    ``fetch(table, "id", 7)`` means ``fetch(table, ["*"], "id", 7)``: a
    single column name that is not ``"*"`` is really the filter key. The
    bare string ``"*"`` is the full column list.
    """
    if isinstance(columns, str):
        if columns == "*":
            return ("*",), key, value
        return ("*",), columns, key
    return tuple(columns), key, value


def build_insert(table: str, data: Mapping[str, Any]) -> Statement:
    if not data:
        return Statement(f"INSERT INTO {quote(table)} DEFAULT VALUES")
    cols = ", ".join(quote(c) for c in data)
    placeholders = ", ".join(f":{c}" for c in data)
    return Statement(
        f"INSERT INTO {quote(table)} ({cols}) VALUES ({placeholders})",
        dict(data),
    )


def build_update(
    table: str, data: Mapping[str, Any], key: str, value: Any, *, driver: str
) -> Statement:
    """``UPDATE`` at most one row where ``key`` equals ``value``.

    SQLite and PostgreSQL lack ``UPDATE ... LIMIT``, so the single row is
    picked by physical row id (``rowid`` / ``ctid``) in a subquery.
    """
    if not data:
        msg = f"update() on {table!r} needs at least one column to set"
        raise ContractError(msg)
    if key in data:
        msg = (
            f"update() on {table!r}: data contains the predicate column {key!r}; "
            "its value would be ambiguous"
        )
        raise ContractError(msg)

    t = quote(table)
    assignments = ", ".join(f"{quote(c)} = :{c}" for c in data)
    rowid = "rowid" if driver == "sqlite" else "ctid"
    sql = (
        f"UPDATE {t} SET {assignments} "
        f"WHERE {rowid} IN (SELECT {rowid} FROM {t} WHERE {quote(key)} = :{key} LIMIT 1)"
    )
    return Statement(sql, {**data, key: value})


def build_select(table: str, columns: Sequence[str], key: Any, value: Any) -> Statement:
    sql = f"SELECT {_column_list(columns)} FROM {quote(table)}"
    if key is ALL:
        return Statement(sql)
    if value is ALL:
        msg = f"fetch on {table!r} filters on {key!r} but no value was given"
        raise ContractError(msg)
    return Statement(f"{sql} WHERE {quote(key)} = :value", {"value": value})


def to_positional(sql: str, params: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """Rewrite ``:name`` placeholders to ``$n`` and order the values.

    A name used twice binds the same ``$n``.
    """
    order: dict[str, int] = {}

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in params:
            msg = f"No value bound for parameter :{name}"
            raise ContractError(msg)
        if name not in order:
            order[name] = len(order) + 1
        return f"${order[name]}"

    converted = _NAMED_PARAM.sub(_sub, sql)
    return converted, [params[name] for name in order]
