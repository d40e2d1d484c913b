"""Active-record style table wrappers.

A ``Record`` subclass is bound to one table. Instances hold one row's
columns plus any declared relations, loaded eagerly::

    class User(Record):
        table = "users"

        id: int
        name: str


    class Post(Record):
        table = "posts"
        relations = (Relation("author", User, key="id", attribute="user_id"),)

        id: int
        title: str
        user_id: int


    post = await Post.load("id", 7)
    post.title           # column
    post.author.name     # related User, loaded with WHERE id = post.user_id
    post.missing         # None, never AttributeError

Class annotations document the columns a type expects; they are not
enforced. Any column the query returns is readable by name. Columns that
collide with a ``Record`` method or class attribute (``table``,
``fetch``...) are still available as ``record["fetch"]``.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from errand.data._sql import ALL
from errand.data.database import Database, Result, _db_var
from errand.data.errors import RecordNotFound
from errand.errors import ConfigurationError

logger = logging.getLogger("errand.data")

# Every Record subclass by class name, so relations can name their model
# as a string before that class is defined.
_models: dict[str, type["Record"]] = {}


def resolve_model(model: "type[Record] | str") -> "type[Record]":
    """Return the Record class for *model* (a class or a class name).

    Raises ``ConfigurationError`` if no such Record subclass exists.
    """
    if isinstance(model, type):
        if not issubclass(model, Record):
            msg = f"{model.__name__} is not a Record subclass"
            raise ConfigurationError(msg)
        return model
    try:
        return _models[model]
    except KeyError:
        msg = f'Failed to require class "{model}"!'
        raise ConfigurationError(msg) from None


@dataclass(frozen=True, slots=True)
class Relation:
    """A link to another Record, resolved right after a load.

    The related record is loaded with ``model.load(key, <this record's
    attribute>)`` and stored under ``name``.
    """

    name: str
    model: "type[Record] | str"
    key: str
    attribute: str


class Record:
    """A row of ``table`` with its related records.

    Two ways to get one:

    - ``Record(attributes)`` wraps a mapping you already have. No I/O.
    - ``await Record.load(key, value)`` selects the row and its relations;
      no match raises ``RecordNotFound``.

    Subclasses may define a synchronous ``init()`` hook. It runs after
    construction, and after relations are loaded when using ``load``.
    """

    table: ClassVar[str | None] = None
    primary_key: ClassVar[str] = "id"
    relations: ClassVar[tuple[Relation, ...]] = ()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        _models[cls.__name__] = cls

    def __init__(self, attributes: Mapping[str, Any] | None = None, *, db: Database | None = None) -> None:
        self._data: dict[str, Any] = dict(attributes or {})
        self._db = db
        self._run_init()

    def _run_init(self) -> None:
        init = getattr(type(self), "init", None)
        if callable(init):
            init(self)

    # -- Loading --

    @classmethod
    async def load(cls, key: str, value: Any, *, db: Database | None = None) -> "Record":
        """Select the row of ``table`` where *key* = *value*, then its relations.

        Raises ``RecordNotFound`` if no row matches, ``ConfigurationError``
        if there is no table or no database.
        """
        database = cls._database(db)
        assert cls.table is not None
        row = await database.fetch(cls.table, "*", key, value)
        if not row:
            raise RecordNotFound(cls.table, key, value)

        record = cls.__new__(cls)
        record._data = row
        record._db = database
        for relation in cls.relations:
            await record.load_relation(relation)
        record._run_init()
        return record

    async def load_relation(self, relation: Relation) -> "Record":
        """Load *relation* using this record's attribute and store it by name."""
        model = resolve_model(relation.model)
        related = await model.load(relation.key, self.get(relation.attribute), db=self._db)
        self._data[relation.name] = related
        logger.debug(
            "Loaded relation %s.%s -> %s", type(self).__name__, relation.name, model.__name__
        )
        return related

    # -- Attribute access --

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails: columns and relations.
        if name.startswith("_"):
            raise AttributeError(name)
        return self._data.get(name)

    def __getitem__(self, name: str) -> Any:
        return self._data.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def get(self, name: str, default: Any = None) -> Any:
        return self._data.get(name, default)

    def to_dict(self) -> dict[str, Any]:
        """Snapshot of columns and relations (relations stay Records)."""
        return dict(self._data)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._data!r}>"

    # -- Table helpers --

    @classmethod
    def _database(cls, db: Database | None = None, *, needs_table: bool = True) -> Database:
        database = db if db is not None else _db_var.get(None)
        if database is None:
            msg = "Table-like method was requested, but no database was set"
            raise ConfigurationError(msg)
        if needs_table and cls.table is None:
            msg = f"Table-like method was requested on {cls.__name__}, but no table was set"
            raise ConfigurationError(msg)
        return database

    @classmethod
    async def query(cls, sql: str, params: Any = (), *, db: Database | None = None) -> Result:
        return await cls._database(db, needs_table=False).query(sql, params)

    @classmethod
    async def exec(cls, sql: str, *, db: Database | None = None) -> int:  # noqa: A003
        return await cls._database(db, needs_table=False).exec(sql)

    @classmethod
    async def insert(cls, data: Mapping[str, Any], *, db: Database | None = None) -> Any:
        """Insert into ``table``; returns the generated primary key."""
        database = cls._database(db)
        return await database.insert(cls.table, data, primary_key=cls.primary_key)  # type: ignore[arg-type]

    @classmethod
    async def update(
        cls, data: Mapping[str, Any], key: str, value: Any, *, db: Database | None = None
    ) -> int:
        database = cls._database(db)
        return await database.update(cls.table, data, key, value)  # type: ignore[arg-type]

    @classmethod
    async def fetch(
        cls,
        columns: Sequence[str] | str = ("*",),
        key: Any = ALL,
        value: Any = ALL,
        *,
        db: Database | None = None,
    ) -> dict[str, Any] | None:
        database = cls._database(db)
        return await database.fetch(cls.table, columns, key, value)  # type: ignore[arg-type]

    @classmethod
    async def fetch_all(
        cls,
        columns: Sequence[str] | str = ("*",),
        key: Any = ALL,
        value: Any = ALL,
        *,
        db: Database | None = None,
    ) -> list[dict[str, Any]]:
        database = cls._database(db)
        return await database.fetch_all(cls.table, columns, key, value)  # type: ignore[arg-type]
