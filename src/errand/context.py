"""Request-scoped context via ContextVar.

Provides:
- ``RequestContext``: everything one dispatch carries, handed to controllers.
- ``options_var``: The request's ``Options`` (route parameters + configuration).
- ``route_var``: The ``Route`` being dispatched.

Both variables are set by ``App.dispatch`` and reset after each request.
Accessing them outside a dispatch raises ``LookupError``.

Thread safety:
    ``ContextVar`` is task-local under asyncio and thread-local under
    free-threading. No locks needed.
"""

from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

from errand.options import Options
from errand.routing.route import Route

if TYPE_CHECKING:
    from errand.data.database import Database
    from errand.view import View


@dataclass(frozen=True, slots=True)
class RequestContext:
    """The per-request state a controller is constructed with."""

    route: Route
    options: Options
    view: "View"
    db: "Database | None" = None


options_var: ContextVar[Options] = ContextVar("errand_options")
"""The current request's options. Set by ``App.dispatch``."""

route_var: ContextVar[Route] = ContextVar("errand_route")
"""The route being dispatched. Set by ``App.dispatch``."""


def get_options() -> Options:
    """Return the current request's options.

    Raises ``LookupError`` if called outside a dispatch.
    """
    return options_var.get()


def get_route() -> Route:
    """Return the route being dispatched.

    Raises ``LookupError`` if called outside a dispatch.
    """
    return route_var.get()
