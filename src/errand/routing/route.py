"""Route and RoutingRule frozen dataclasses."""

import re
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Route:
    """A resolved request: which controller, which page, which method.

    Produced fresh by ``Router.resolve`` for every request and consumed
    once by the dispatcher.
    """

    controller: str
    page: str
    method: str
    parameters: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class RoutingRule:
    """A regex override applied before default URL decomposition.

    ``parameters`` of ``None`` keeps the positional arguments taken from
    the URL; any tuple (even empty) replaces them.
    """

    pattern: str
    controller: str
    page: str
    parameters: tuple[str, ...] | None = None
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regex", re.compile(self.pattern))

    def matches(self, url: str) -> bool:
        return self.regex.search(url) is not None
