"""URL-to-route resolution.

Convention first: ``controller/page/arg/arg...``. Regex rules registered
with ``add_routing`` override the convention for exceptional URLs; the
first matching rule wins.
"""

import logging
import os
import re
from collections.abc import Mapping
from typing import Any

from errand.errors import ConfigurationError
from errand.routing.route import Route, RoutingRule

logger = logging.getLogger("errand.routing")

DEFAULT_CONTROLLER = "index"
DEFAULT_PAGE = "index"


def split_url(
    url: str,
    default_controller: str = DEFAULT_CONTROLLER,
    default_page: str = DEFAULT_PAGE,
) -> tuple[str, str, tuple[str, ...]]:
    """Decompose a URL into ``(controller, page, parameters)``.

    Examples::

        "user/edit/7"  -> ("user", "edit", ("7",))
        "user"         -> ("user", "index", ())
        ""             -> ("index", "index", ())
        "a/b/c/d"      -> ("a", "b", ("c", "d"))
    """
    segments = url.split("/")
    controller = segments[0] or default_controller
    page = (segments[1] if len(segments) > 1 else "") or default_page
    parameters: tuple[str, ...] = ()
    if len(segments) > 2 and segments[2]:
        parameters = tuple(segments[2:])
    return controller, page, parameters


def request_method() -> str:
    """Return the ambient request method.

    Read from ``REQUEST_METHOD`` in the process environment, as CGI
    front ends deliver it. Falls back to ``GET``.
    """
    return os.environ.get("REQUEST_METHOD", "GET").upper()


def _coerce_rule(pattern: str, entry: RoutingRule | Mapping[str, Any]) -> RoutingRule:
    if isinstance(entry, RoutingRule):
        if entry.pattern != pattern:
            return RoutingRule(pattern, entry.controller, entry.page, entry.parameters)
        return entry

    missing = [k for k in ("controller", "page") if not entry.get(k)]
    if missing:
        msg = f"Routing rule {pattern!r} is missing {', '.join(missing)}."
        raise ConfigurationError(msg)

    params = entry.get("parameters", entry.get("params"))
    try:
        return RoutingRule(
            pattern=pattern,
            controller=entry["controller"],
            page=entry["page"],
            parameters=tuple(str(p) for p in params) if params is not None else None,
        )
    except re.error as exc:
        msg = f"Routing rule {pattern!r} is not a valid regular expression: {exc}"
        raise ConfigurationError(msg) from exc


class Router:
    """Resolves URLs into ``Route`` descriptors.

    Usage::

        router = Router()
        router.add_routing({
            r"^blog/\\d+$": {"controller": "blog", "page": "post"},
            r"^about$": {"controller": "page", "page": "show", "parameters": ["about"]},
        })
        route = router.resolve("blog/42", "GET")
        # Route(controller="blog", page="post", method="GET", parameters=("42",))

    Rules are kept in insertion order. Adding a rule whose pattern is
    already registered replaces it; every other rule stays put.
    """

    __slots__ = ("_default_controller", "_default_page", "_rules")

    def __init__(
        self,
        *,
        default_controller: str = DEFAULT_CONTROLLER,
        default_page: str = DEFAULT_PAGE,
    ) -> None:
        self._rules: dict[str, RoutingRule] = {}
        self._default_controller = default_controller
        self._default_page = default_page

    def add_routing(self, routing: Mapping[str, RoutingRule | Mapping[str, Any]]) -> "Router":
        """Merge rules keyed by regex pattern into the table."""
        for pattern, spec in routing.items():
            self._rules[pattern] = _coerce_rule(pattern, spec)
        return self

    @property
    def rules(self) -> list[RoutingRule]:
        """All rules in match order."""
        return list(self._rules.values())

    def resolve(self, url: str, method: str | None = None) -> Route:
        """Resolve *url* into a ``Route``. Never raises.

        *method* defaults to the ambient request method.
        """
        controller, page, parameters = split_url(
            url, self._default_controller, self._default_page
        )

        for rule in self._rules.values():
            if rule.matches(url):
                controller = rule.controller
                page = rule.page
                if rule.parameters is not None:
                    parameters = rule.parameters
                logger.debug("URL %r matched routing rule %r", url, rule.pattern)
                break

        return Route(
            controller=controller,
            page=page,
            method=(method or request_method()).upper(),
            parameters=parameters,
        )
