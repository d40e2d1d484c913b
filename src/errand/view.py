"""View rendering on kida templates.

A ``View`` carries two tiers of properties. Global properties are set by
controllers while an action runs. Local properties are passed to one
``render()`` call, shadow the globals, and are dropped afterwards.

Templates see every property by name, plus ``view`` itself::

    <h1>{{ title }}</h1>
    <a href="{{ view.link('user', 'edit', user.id) }}">edit</a>
"""

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from kida import Environment, FileSystemLoader

from errand.config import AppConfig
from errand.errors import ErrandError


class ViewError(ErrandError):
    """Base for view rendering errors."""


class ViewNotFound(ViewError):
    """Raised when a view script exists neither as given nor under the view root."""

    def __init__(self, script: str) -> None:
        super().__init__(f"Script ({script}) not found")
        self.script = script


def create_environment(config: AppConfig) -> Environment:
    """Create the kida Environment for ``config.view_dir``.

    Called once per App. The environment is shared by every request's View.
    """
    return Environment(
        loader=FileSystemLoader(str(config.view_dir)),
        autoescape=config.autoescape,
        auto_reload=config.debug,
    )


class View:
    """Renders view scripts with merged global and local properties."""

    __slots__ = ("_base_url", "_env", "_local", "_properties", "_view_dir")

    def __init__(self, env: Environment, view_dir: str | Path, *, base_url: str = "/") -> None:
        self._env = env
        self._view_dir = Path(view_dir)
        self._base_url = base_url
        self._properties: dict[str, Any] = {}
        self._local: dict[str, Any] = {}

    @classmethod
    def from_config(cls, config: AppConfig, env: Environment | None = None) -> "View":
        return cls(env or create_environment(config), config.view_dir, base_url=config.base_url)

    # -- Properties --

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> "View":
        """Set a global property, or merge every pair of a mapping."""
        if isinstance(key, Mapping):
            for k, v in key.items():
                self.set(k, v)
        else:
            self._properties[key] = value
        return self

    def get(self, key: str, default: Any = None) -> Any:
        """Local property, else global property, else *default*."""
        if key in self._local:
            return self._local[key]
        if key in self._properties:
            return self._properties[key]
        return default

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    # -- Rendering --

    def render(self, script: str, properties: Mapping[str, Any] | None = None) -> str:
        """Render *script* and return its output.

        The script path is tried as given first, then under the view root.
        Raises ``ViewNotFound`` if neither exists.
        """
        as_is = Path(script)
        if as_is.is_file():
            template = self._env.from_string(as_is.read_text(encoding="utf-8"))
        elif (self._view_dir / script).is_file():
            template = self._env.get_template(as_is.as_posix())
        else:
            raise ViewNotFound(str(self._view_dir / script))

        self._local = dict(properties or {})
        try:
            context = {**self._properties, **self._local, "view": self}
            return template.render(context)
        finally:
            self._local = {}

    def link(self, controller: str, page: str | None = None, *args: Any) -> str:
        """Build a URL in the ``controller/page/arg.../`` convention.

        ``link("user", "edit", 7)`` -> ``"/user/edit/7/"``
        """
        url = f"{self._base_url}{controller}"
        if page is not None:
            url += f"/{page}"
        if args:
            url += "/" + "/".join(str(a) for a in args)
        return url + "/"
