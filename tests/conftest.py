"""Shared fixtures: SQLite-backed databases and a view directory."""

from pathlib import Path

import pytest

from errand.data import Database

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL
);
CREATE TABLE posts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    user_id INTEGER
);
"""


@pytest.fixture
def db_options(tmp_path: Path) -> dict[str, str]:
    return {
        "driver": "sqlite",
        "host": "localhost",
        "dbname": str(tmp_path / "test.db"),
        "user": "",
        "pass": "",
    }


@pytest.fixture
async def db(db_options):
    """A connected database with empty users/posts tables."""
    database = Database(db_options)
    await database.connect()
    await database.execute_script(SCHEMA)
    yield database
    await database.disconnect()


@pytest.fixture
async def seeded_db(db):
    await db.insert("users", {"name": "Alice", "email": "alice@test.com"})
    await db.insert("users", {"name": "Bob", "email": "bob@test.com"})
    await db.insert("users", {"name": "Carol", "email": "carol@test.com"})
    await db.insert("posts", {"title": "Hello", "user_id": 1})
    await db.insert("posts", {"title": "Orphan", "user_id": 99})
    return db


@pytest.fixture
def views(tmp_path: Path) -> Path:
    """A view root with a few templates."""
    root = tmp_path / "views"
    (root / "index").mkdir(parents=True)
    (root / "index" / "index.html").write_text("Home: {{ title }}")
    (root / "user").mkdir()
    (root / "user" / "show.html").write_text("User {{ name }}")
    (root / "user" / "user-list.html").write_text("Users: {{ count }}")
    return root
