"""Errand — URL in, controller action out, view rendered.

A small request-dispatch framework: convention-based routing with regex
overrides, controllers found by name, and an active-record data layer.

Basic usage::

    from errand import App, Controller

    app = App()

    @app.controller
    class IndexController(Controller):
        def indexGET(self):
            self.set("title", "Hello")

    content = await app.dispatch("", "GET")   # renders views/index/index.html

Data access::

    from errand.data import Database, Record
    db = Database({"driver": "sqlite", "host": "", "dbname": "app.db",
                   "user": "", "pass": ""})
"""

__version__ = "0.1.0"
__all__ = [
    "ActionNotFound",
    "App",
    "AppConfig",
    "ConfigurationError",
    "Controller",
    "ErrandError",
    "HTTPError",
    "NotFound",
    "Options",
    "RequestContext",
    "Route",
    "Router",
    "RoutingRule",
    "View",
    "get_options",
    "get_route",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import errand`` fast and kida-free until an App is built.
    """
    if name == "App":
        from errand.app import App

        return App

    if name == "AppConfig":
        from errand.config import AppConfig

        return AppConfig

    if name == "Controller":
        from errand.controller import Controller

        return Controller

    if name == "Options":
        from errand.options import Options

        return Options

    if name == "View":
        from errand.view import View

        return View

    if name in ("Route", "Router", "RoutingRule"):
        from errand import routing as _routing

        return getattr(_routing, name)

    if name in ("RequestContext", "get_options", "get_route"):
        from errand import context as _ctx

        return getattr(_ctx, name)

    if name in ("ActionNotFound", "ConfigurationError", "ErrandError", "HTTPError", "NotFound"):
        from errand import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
