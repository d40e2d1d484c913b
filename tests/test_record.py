"""Tests for errand.data.Record — active-record rows and relations."""

import pytest

from errand.data import (
    NotConnectedError,
    Record,
    RecordNotFound,
    Relation,
    resolve_model,
)
from errand.data.database import Database, _db_var
from errand.errors import ConfigurationError, NotFound


class Member(Record):
    table = "users"

    id: int
    name: str
    email: str


class Article(Record):
    table = "posts"
    relations = (Relation("author", Member, key="id", attribute="user_id"),)

    id: int
    title: str
    user_id: int


class NamedArticle(Record):
    table = "posts"
    relations = (Relation("author", "Member", key="id", attribute="user_id"),)


class BrokenArticle(Record):
    table = "posts"
    relations = (Relation("author", "NoSuchModel", key="id", attribute="user_id"),)


class Tableless(Record):
    pass


class Greeting(Record):
    table = "users"

    def init(self) -> None:
        self["greeting"] = f"Hi {self.name}"


# =============================================================================
# Construction
# =============================================================================


class TestInMemory:
    def test_wraps_attributes_without_io(self) -> None:
        member = Member({"id": 1, "name": "Alice"})
        assert member.id == 1
        assert member.name == "Alice"

    def test_unknown_attribute_is_none(self) -> None:
        member = Member({"id": 1})
        assert member.nickname is None
        assert member["nickname"] is None
        assert member.get("nickname", "n/a") == "n/a"

    def test_private_names_still_raise(self) -> None:
        with pytest.raises(AttributeError):
            _ = Member({})._missing

    def test_init_hook_runs(self) -> None:
        assert Greeting({"name": "Bob"}).greeting == "Hi Bob"

    def test_to_dict(self) -> None:
        assert Member({"id": 1}).to_dict() == {"id": 1}


class TestLoad:
    async def test_loads_row(self, seeded_db) -> None:
        member = await Member.load("id", 2, db=seeded_db)
        assert isinstance(member, Member)
        assert member.to_dict() == {"id": 2, "name": "Bob", "email": "bob@test.com"}

    async def test_zero_rows_raises_not_found(self, seeded_db) -> None:
        with pytest.raises(RecordNotFound) as exc_info:
            await Member.load("id", 999, db=seeded_db)
        err = exc_info.value
        assert isinstance(err, NotFound)
        assert err.status == 404
        assert (err.table, err.key, err.value) == ("users", "id", 999)
        assert "(id)" in str(err)

    async def test_loads_relations(self, seeded_db) -> None:
        article = await Article.load("id", 1, db=seeded_db)
        assert article.title == "Hello"
        assert isinstance(article.author, Member)
        assert article.author.name == "Alice"
        assert article["author"] is article.author

    async def test_relation_by_model_name(self, seeded_db) -> None:
        article = await NamedArticle.load("id", 1, db=seeded_db)
        assert article.author.email == "alice@test.com"

    async def test_missing_related_row_fails_the_load(self, seeded_db) -> None:
        with pytest.raises(RecordNotFound) as exc_info:
            await Article.load("id", 2, db=seeded_db)
        assert exc_info.value.table == "users"
        assert exc_info.value.value == 99

    async def test_unknown_relation_model(self, seeded_db) -> None:
        with pytest.raises(ConfigurationError, match="NoSuchModel"):
            await BrokenArticle.load("id", 1, db=seeded_db)

    async def test_init_runs_after_load(self, seeded_db) -> None:
        greeting = await Greeting.load("id", 3, db=seeded_db)
        assert greeting.greeting == "Hi Carol"

    async def test_uses_context_database(self, seeded_db) -> None:
        token = _db_var.set(seeded_db)
        try:
            member = await Member.load("name", "Carol")
        finally:
            _db_var.reset(token)
        assert member.id == 3


# =============================================================================
# Table helpers
# =============================================================================


class TestTableHelpers:
    async def test_insert_and_fetch(self, db) -> None:
        new_id = await Member.insert({"name": "Dan", "email": "dan@test.com"}, db=db)
        assert await Member.fetch("id", new_id, db=db) == {
            "id": new_id,
            "name": "Dan",
            "email": "dan@test.com",
        }

    async def test_update(self, seeded_db) -> None:
        assert await Member.update({"name": "Al"}, "id", 1, db=seeded_db) == 1
        assert (await Member.load("id", 1, db=seeded_db)).name == "Al"

    async def test_fetch_all(self, seeded_db) -> None:
        rows = await Member.fetch_all(["name"], db=seeded_db)
        assert [r["name"] for r in rows] == ["Alice", "Bob", "Carol"]

    async def test_query_and_exec(self, seeded_db) -> None:
        result = await Member.query("SELECT COUNT(*) AS n FROM users", db=seeded_db)
        assert result.fetch() == {"n": 3}
        assert await Member.exec("DELETE FROM posts", db=seeded_db) == 2

    async def test_no_table_is_configuration_error(self, db) -> None:
        with pytest.raises(ConfigurationError, match="no table was set"):
            await Tableless.fetch_all(db=db)

    async def test_no_database_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="no database was set"):
            await Member.fetch_all()

    async def test_disconnected_database(self, db_options) -> None:
        with pytest.raises(NotConnectedError):
            await Member.load("id", 1, db=Database(db_options))


class TestResolveModel:
    def test_by_class(self) -> None:
        assert resolve_model(Member) is Member

    def test_by_name(self) -> None:
        assert resolve_model("Article") is Article

    def test_non_record_class(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_model(dict)  # type: ignore[arg-type]
