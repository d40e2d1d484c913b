"""Controllers and the registry that finds them.

A controller is a class named ``<Name>Controller`` whose actions follow
``<page-without-dashes><METHOD>``::

    @app.controller
    class UserController(Controller):
        async def init(self, *args):
            self.users = await User.fetch_all()

        def listGET(self):
            self.set("users", self.users)

        def editPOST(self, user_id):
            ...

``GET /user/list`` calls ``init()`` then ``listGET()`` and renders
``user/list.html``.
"""

import importlib
import inspect
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from errand.errors import ConfigurationError, ErrandError

if TYPE_CHECKING:
    from errand.context import RequestContext
    from errand.data.database import Database
    from errand.options import Options
    from errand.routing.route import Route
    from errand.view import View

logger = logging.getLogger("errand.dispatch")

HTTP_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")

CLASS_NOT_FOUND = 'Failed to require class "{}"!'

ControllerFactory = Callable[["RequestContext"], Any]


def collect_actions(cls: type) -> frozenset[str]:
    """Names of every public callable on *cls* ending in an HTTP method."""
    actions = set()
    for name, _member in inspect.getmembers(cls, callable):
        if name.startswith("_"):
            continue
        for method in HTTP_METHODS:
            if name.endswith(method) and len(name) > len(method):
                actions.add(name)
                break
    return frozenset(actions)


_action_cache: dict[type, frozenset[str]] = {}


def actions_of(cls: type) -> frozenset[str]:
    """Action table of a controller class, computed once per class."""
    if "__actions__" in vars(cls):
        return cls.__actions__  # type: ignore[attr-defined]
    if cls not in _action_cache:
        _action_cache[cls] = collect_actions(cls)
    return _action_cache[cls]


class Controller:
    """Base controller: view properties, rendering, request context.

    Subclasses get their action table built when the class is defined.
    """

    __actions__: ClassVar[frozenset[str]] = frozenset()

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.__actions__ = collect_actions(cls)

    def __init__(self, context: "RequestContext") -> None:
        self.context = context

    @property
    def route(self) -> "Route":
        return self.context.route

    @property
    def options(self) -> "Options":
        return self.context.options

    @property
    def view(self) -> "View":
        return self.context.view

    @property
    def db(self) -> "Database | None":
        return self.context.db

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> "Controller":
        """Set a view property for the upcoming render."""
        self.view.set(key, value)
        return self

    def render(self, view_path: str, properties: Mapping[str, Any] | None = None) -> str:
        return self.view.render(view_path, properties)


class ControllerRegistry:
    """Maps controller type names to factories.

    Factories are usually ``Controller`` subclasses, but any callable
    taking a ``RequestContext`` works. On a lookup miss the registry
    imports ``<package>.<controller>`` (when a package is configured)
    and picks up a class of the expected name from that module.
    """

    __slots__ = ("_factories", "_package", "_suffix")

    def __init__(self, *, suffix: str = "Controller", package: str | None = None) -> None:
        self._factories: dict[str, ControllerFactory] = {}
        self._suffix = suffix
        self._package = package

    def register(self, factory: ControllerFactory, name: str | None = None) -> ControllerFactory:
        """Register *factory* under *name* (default: its ``__name__``)."""
        key = name or getattr(factory, "__name__", None)
        if not key:
            msg = f"Cannot register {factory!r} without a name"
            raise ConfigurationError(msg)
        self._factories[key] = factory
        return factory

    def class_name(self, controller: str) -> str:
        """``"user"`` -> ``"UserController"``. Only the first letter changes."""
        return controller[:1].upper() + controller[1:] + self._suffix

    def get(self, name: str) -> ControllerFactory | None:
        """Factory registered under the full type name, e.g. ``"UserController"``."""
        return self._factories.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    def resolve(self, controller: str) -> ControllerFactory:
        """Return the factory for route controller *controller*.

        Raises ``ConfigurationError`` if nothing is registered and the
        autoload convention finds nothing either.
        """
        name = self.class_name(controller)
        factory = self._factories.get(name)
        if factory is None:
            factory = self._autoload(controller, name)
        if factory is None:
            raise ConfigurationError(CLASS_NOT_FOUND.format(name))
        return factory

    def _autoload(self, controller: str, name: str) -> ControllerFactory | None:
        if self._package is None:
            return None
        module_name = f"{self._package}.{controller}"
        try:
            module = importlib.import_module(module_name)
        except ModuleNotFoundError as exc:
            if exc.name is not None and module_name.startswith(exc.name):
                logger.debug("Autoload found no module %r for %s", module_name, name)
                return None
            raise
        # Importing may have registered it via the decorator
        if name in self._factories:
            return self._factories[name]
        candidate = getattr(module, name, None)
        if candidate is None:
            return None
        return self.register(candidate, name)

    def instantiate(self, controller: str, context: "RequestContext") -> Any:
        """Resolve and construct the controller for *controller*.

        Construction failures other than errand's own errors become
        ``ConfigurationError``.
        """
        factory = self.resolve(controller)
        try:
            return factory(context)
        except ErrandError:
            raise
        except Exception as exc:
            msg = f"Could not instantiate {self.class_name(controller)}: {exc}"
            raise ConfigurationError(msg) from exc


# Members every controller inherits; never dispatched as actions.
_BASE_MEMBERS = frozenset(dir(Controller)) | {"init"}


def exposes(cls: type, name: str) -> bool:
    """Whether *name* is a public callable on *cls* that can serve as an action.

    Covers actions for methods outside ``HTTP_METHODS`` (``indexPROPFIND``)
    that the precomputed action table does not list.
    """
    if not name or name.startswith("_") or name in _BASE_MEMBERS:
        return False
    return callable(getattr(cls, name, None))
