"""End-to-end tests for errand.App — dispatch, context, ASGI adapter."""

from pathlib import Path
from typing import Any

import anyio
import pytest

from errand import App, AppConfig, Controller, get_options, get_route
from errand.data import _sqlite
from errand.data import Record, RecordNotFound, get_db
from errand.errors import ActionNotFound, ConfigurationError


class Person(Record):
    table = "users"

    id: int
    name: str
    email: str


seen: dict[str, Any] = {}


@pytest.fixture
async def app(seeded_db, db_options: dict[str, str], views: Path):
    app = App(AppConfig(view_dir=str(views)), options={"db": db_options, "site": "errand"})

    @app.controller
    class IndexController(Controller):
        def indexGET(self) -> None:
            self.set("title", self.options.get("site"))

    @app.controller
    class UserController(Controller):
        async def init(self, *args: str) -> None:
            self.people = await Person.fetch_all()

        def userlistGET(self) -> None:
            self.set("count", len(self.people))

        async def showGET(self, user_id: str) -> None:
            person = await Person.load("id", int(user_id))
            self.set("name", person.name)

        def probeGET(self, *args: str) -> None:
            seen["options"] = get_options().get()
            seen["route"] = get_route()
            seen["db"] = get_db()
            self.set("name", "probe")

    app.add_routing({r"^people$": {"controller": "user", "page": "user-list"}})

    seen.clear()
    yield app
    await app.shutdown()


class TestDispatch:
    async def test_default_route(self, app: App) -> None:
        assert await app.dispatch("", "GET") == "Home: errand"

    async def test_convention_route_with_parameter(self, app: App) -> None:
        assert await app.dispatch("user/show/2", "GET") == "User Bob"

    async def test_routing_rule(self, app: App) -> None:
        assert await app.dispatch("people", "GET") == "Users: 3"

    async def test_missing_action(self, app: App) -> None:
        with pytest.raises(ActionNotFound):
            await app.dispatch("user/show/2", "POST")

    async def test_missing_record(self, app: App) -> None:
        with pytest.raises(RecordNotFound):
            await app.dispatch("user/show/42", "GET")

    async def test_missing_controller(self, app: App) -> None:
        with pytest.raises(ConfigurationError):
            await app.dispatch("ghost", "GET")

    async def test_method_from_environment(
        self, app: App, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("REQUEST_METHOD", "post")
        with pytest.raises(ActionNotFound) as exc_info:
            await app.dispatch("user/show/2")
        assert exc_info.value.method == "POST"


class TestLazyConnect:
    async def test_concurrent_first_dispatches_open_one_connection(
        self, app: App, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        opened: list[str] = []
        open_session = _sqlite.open_session

        async def counting_open(path: str) -> _sqlite.SQLiteSession:
            opened.append(path)
            await anyio.sleep(0.01)
            return await open_session(path)

        monkeypatch.setattr(_sqlite, "open_session", counting_open)
        results: list[str] = []

        async def one_request() -> None:
            results.append(await app.dispatch("", "GET"))

        async with anyio.create_task_group() as tg:
            for _ in range(5):
                tg.start_soon(one_request)

        assert len(opened) == 1
        assert results == ["Home: errand"] * 5
        assert app.db is not None
        assert app.db.connected


class TestRequestScope:
    async def test_options_hold_route_and_configuration(self, app: App) -> None:
        await app.dispatch("user/probe/a/b", "GET")
        options = seen["options"]
        assert options["controller"] == "user"
        assert options["page"] == "probe"
        assert options["method"] == "GET"
        assert options["arguments"] == ["a", "b"]
        assert options["site"] == "errand"
        assert seen["route"].parameters == ("a", "b")
        assert seen["db"] is app.db

    async def test_startup_options_untouched(self, app: App) -> None:
        await app.dispatch("user/probe/a", "GET")
        assert "controller" not in app.options
        assert app.options.get("site") == "errand"

    async def test_context_reset_after_dispatch(self, app: App) -> None:
        await app.dispatch("user/probe", "GET")
        with pytest.raises(LookupError):
            get_options()
        with pytest.raises(LookupError):
            get_route()


def _scope(path: str, method: str = "GET") -> dict[str, Any]:
    return {"type": "http", "method": method, "path": path, "headers": []}


async def _call(app: App, scope: dict[str, Any]) -> list[dict[str, Any]]:
    sent: list[dict[str, Any]] = []

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message: dict[str, Any]) -> None:
        sent.append(message)

    await app(scope, receive, send)
    return sent


class TestASGI:
    async def test_ok(self, app: App) -> None:
        sent = await _call(app, _scope("/user/show/1"))
        assert sent[0]["status"] == 200
        assert sent[1]["body"] == b"User Alice"

    async def test_not_found(self, app: App) -> None:
        sent = await _call(app, _scope("/user/nothing"))
        assert sent[0]["status"] == 404

    async def test_record_not_found(self, app: App) -> None:
        sent = await _call(app, _scope("/user/show/42"))
        assert sent[0]["status"] == 404

    async def test_configuration_error_is_500(self, app: App) -> None:
        sent = await _call(app, _scope("/ghost"))
        assert sent[0]["status"] == 500
        assert sent[1]["body"] == b"Internal Server Error"

    async def test_lifespan(self, app: App) -> None:
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent: list[dict[str, Any]] = []

        async def receive() -> dict[str, Any]:
            return next(messages)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]
        assert app.db is not None
        assert not app.db.connected


class TestConstruction:
    def test_db_from_options(self, db_options: dict[str, str]) -> None:
        app = App(options={"db": db_options})
        assert app.db is not None
        assert app.db.driver == "sqlite"

    def test_no_db(self) -> None:
        assert App().db is None

    def test_controller_decorator_with_name(self) -> None:
        app = App()

        @app.controller(name="AccountController")
        class Accounts(Controller):
            def indexGET(self) -> None: ...

        assert app.registry.resolve("account") is Accounts
