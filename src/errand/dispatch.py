"""Route dispatch: controller, init hook, action, render.

Given a resolved ``Route``::

    1. "user"            -> UserController(context)
    2. controller.init(*parameters)            if defined
    3. "user-list" + GET -> controller.userlistGET(*parameters)
    4. controller.render("user/user-list.html")

A missing action is the only routing failure and raises
``ActionNotFound`` (404) before anything renders. A missing controller
is a ``ConfigurationError``.
"""

import logging
from typing import Any

from errand._internal.invoke import invoke
from errand.context import RequestContext
from errand.controller import ControllerRegistry, actions_of, exposes
from errand.errors import ActionNotFound
from errand.routing.route import Route

logger = logging.getLogger("errand.dispatch")


def action_name(route: Route) -> str:
    """``page`` without dashes, followed by the method: ``userlistGET``."""
    return route.page.replace("-", "") + route.method


def view_path(route: Route, extension: str) -> str:
    return f"{route.controller}/{route.page}.{extension}"


class Dispatcher:
    """Runs one resolved route against the controller registry."""

    __slots__ = ("_registry", "_view_extension")

    def __init__(self, registry: ControllerRegistry, *, view_extension: str = "html") -> None:
        self._registry = registry
        self._view_extension = view_extension

    @property
    def registry(self) -> ControllerRegistry:
        return self._registry

    def find_action(self, controller: Any, route: Route) -> Any:
        """Return the bound action for *route*, or raise ``ActionNotFound``.

        Names are case-sensitive and there is no fallback action. Any
        request method works as long as the controller defines the action.
        """
        name = action_name(route)
        cls = type(controller)
        if not route.method or (name not in actions_of(cls) and not exposes(cls, name)):
            raise ActionNotFound(route.controller, route.page, route.method, name)
        return getattr(controller, name)

    async def dispatch(self, route: Route, context: RequestContext) -> str:
        controller = self._registry.instantiate(route.controller, context)
        logger.debug("Dispatching %s to %s", route, type(controller).__name__)

        init = getattr(controller, "init", None)
        if callable(init):
            await invoke(init, *route.parameters)

        action = self.find_action(controller, route)
        await invoke(action, *route.parameters)

        content = await invoke(controller.render, view_path(route, self._view_extension))
        return content
