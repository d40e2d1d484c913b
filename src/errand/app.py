"""The errand application: router + controllers + views + database.

``App.dispatch(url, method)`` is the single entry point. Errors propagate
out of it unchanged; the ASGI adapter in ``errand.server`` is where they
become responses.
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar, overload

from kida import Environment

from errand.config import AppConfig
from errand.context import RequestContext, options_var, route_var
from errand.controller import ControllerFactory, ControllerRegistry
from errand.data.database import Database, _db_var
from errand.dispatch import Dispatcher
from errand.options import Options
from errand.routing.route import RoutingRule
from errand.routing.router import Router
from errand.server import Receive, Scope, Send, handle_http, handle_lifespan
from errand.view import View, create_environment

logger = logging.getLogger("errand.app")

F = TypeVar("F", bound=ControllerFactory)


class App:
    """The errand application.

    Usage::

        app = App(AppConfig(view_dir="views"), options={"db": {...}})

        app.add_routing({
            r"^login$": {"controller": "user", "page": "login"},
        })

        @app.controller
        class UserController(Controller):
            def loginGET(self):
                self.set("title", "Sign in")

        content = await app.dispatch("login", "GET")   # renders user/login.html

    ``App`` is also an ASGI application.
    """

    __slots__ = ("_db", "_dispatcher", "_env", "_options", "_registry", "_router", "config")

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        options: Mapping[str, Any] | None = None,
        db: Database | Mapping[str, Any] | None = None,
        kida_env: Environment | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._options = Options(options)
        self._router = Router(
            default_controller=self.config.default_controller,
            default_page=self.config.default_page,
        )
        self._registry = ControllerRegistry(
            suffix=self.config.controller_suffix,
            package=self.config.controller_package,
        )
        self._dispatcher = Dispatcher(self._registry, view_extension=self.config.view_extension)
        self._env = kida_env

        # Database — a Database instance, or the connection options for one.
        # Without either, the "db" option is used when present.
        if db is None and self._options.get("db") is not None:
            db = self._options.get("db")
        if isinstance(db, Mapping):
            self._options.set("db", dict(db))
            db = Database(db, echo=self.config.echo)
        self._db: Database | None = db

    # -- Setup --

    @property
    def router(self) -> Router:
        return self._router

    @property
    def registry(self) -> ControllerRegistry:
        return self._registry

    @property
    def options(self) -> Options:
        """Startup options. Each dispatch works on a copy."""
        return self._options

    @property
    def db(self) -> Database | None:
        return self._db

    @property
    def kida_env(self) -> Environment:
        if self._env is None:
            self._env = create_environment(self.config)
        return self._env

    def add_routing(self, routing: Mapping[str, RoutingRule | Mapping[str, Any]]) -> "App":
        """Merge regex routing rules. See ``Router.add_routing``."""
        self._router.add_routing(routing)
        return self

    def set_option(self, key: str | Mapping[str, Any], value: Any = None) -> "App":
        self._options.set(key, value)
        return self

    @overload
    def controller(self, factory: F, /) -> F: ...
    @overload
    def controller(self, *, name: str | None = None) -> Callable[[F], F]: ...

    def controller(self, factory: F | None = None, /, *, name: str | None = None) -> Any:
        """Register a controller, as a decorator or a plain call.

        ``name`` overrides the class name used for lookup.
        """
        if factory is not None:
            self._registry.register(factory, name)
            return factory

        def decorator(f: F) -> F:
            self._registry.register(f, name)
            return f

        return decorator

    # -- Lifecycle --

    async def startup(self) -> None:
        if self._db is not None:
            await self._db.connect()

    async def shutdown(self) -> None:
        if self._db is not None:
            await self._db.disconnect()

    # -- Dispatch --

    async def dispatch(self, url: str, method: str | None = None) -> str:
        """Resolve *url*, run the controller action, return rendered content.

        *method* defaults to the ambient ``REQUEST_METHOD``. Raises
        ``ActionNotFound``/``RecordNotFound`` (404), ``ConfigurationError``,
        ``QueryError`` and friends unchanged.
        """
        route = self._router.resolve(url, method)

        options = self._options.copy()
        options.set(
            {
                "controller": route.controller,
                "page": route.page,
                "method": route.method,
                "arguments": list(route.parameters),
            }
        )
        view = View(self.kida_env, self.config.view_dir, base_url=self.config.base_url)
        context = RequestContext(route=route, options=options, view=view, db=self._db)

        options_token = options_var.set(options)
        route_token = route_var.set(route)
        db_token = _db_var.set(self._db) if self._db is not None else None
        try:
            if self._db is not None and not self._db.connected:
                await self._db.connect()
            logger.debug("%s %r -> %s", route.method, url, route)
            return await self._dispatcher.dispatch(route, context)
        finally:
            if db_token is not None:
                _db_var.reset(db_token)
            route_var.reset(route_token)
            options_var.reset(options_token)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point."""
        if scope["type"] == "lifespan":
            await handle_lifespan(self, receive, send)
        elif scope["type"] == "http":
            await handle_http(self, scope, send)
