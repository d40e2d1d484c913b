"""Errand exception hierarchy.

Shared across Router, Dispatcher, data layer, and views so every module
raises and catches the same types.
"""

from dataclasses import dataclass


class ErrandError(Exception):
    """Base for all errand-specific errors."""


class ConfigurationError(ErrandError):
    """Raised when the application is wired incorrectly.

    Missing database settings, a controller or model type that cannot be
    resolved, a Record without a table. Never retried.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(ErrandError):
    """An error that maps directly to an HTTP status code.

    Raised by the dispatcher, records, or controllers. The ASGI adapter
    catches these and turns them into a response with ``status``.
    """

    status: int
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818 — conventional name in web frameworks
    """404 — nothing answers for the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class ActionNotFound(NotFound):
    """404 — the controller has no action for the resolved page and method.

    Carries the attempted controller, page, method and the action name
    computed from them.
    """

    def __init__(self, controller: str, page: str, method: str, action: str) -> None:
        super().__init__(
            f"404 - page not found: {controller!r} has no action {action!r} "
            f"for page {page!r} ({method})"
        )
        object.__setattr__(self, "controller", controller)
        object.__setattr__(self, "page", page)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "action", action)
