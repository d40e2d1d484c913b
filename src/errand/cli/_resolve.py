"""Find the App a CLI command works on.

``errand routes myapp`` and ``errand dispatch myapp.web:make_app`` both
name an object by ``module[:attribute]``; the attribute defaults to
``app``. Factories are called with no arguments.
"""

import importlib
from typing import Any

from errand.app import App

DEFAULT_ATTRIBUTE = "app"


def _load(target: str) -> Any:
    module_name, sep, attribute = target.partition(":")
    module = importlib.import_module(module_name)
    return getattr(module, attribute if sep and attribute else DEFAULT_ATTRIBUTE)


def resolve_app(target: str) -> App:
    """Return the errand ``App`` named by *target*.

    Raises ``ModuleNotFoundError``/``AttributeError`` when the name does
    not exist, and ``TypeError`` when it is neither an App nor a factory
    returning one.
    """
    found = _load(target)
    if isinstance(found, App):
        return found

    if callable(found):
        try:
            found = found()
        except Exception as exc:
            msg = f"App factory {target!r} failed: {exc}"
            raise TypeError(msg) from exc
        if isinstance(found, App):
            return found

    msg = f"{target!r} is a {type(found).__name__}, not an errand.App instance"
    raise TypeError(msg)
