"""Key/value option store.

Holds resolved request parameters (controller, page, method, arguments)
next to arbitrary configuration such as database credentials.

There is no process-wide instance. ``App`` keeps the startup options and
hands every dispatch its own copy, published through
``errand.context.options_var``.
"""

from collections.abc import Iterator, Mapping
from typing import Any


class Options:
    """Mutable string-keyed option mapping with merge-on-set.

    Usage::

        options = Options()
        options.set({"a": 1, "b": 2})
        options.get("a")              # 1
        options.get("z", "default")   # "default"
        options.get(["a", "z"])       # {"a": 1, "z": None}
        options.get()                 # {"a": 1, "b": 2}
    """

    __slots__ = ("_store",)

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._store: dict[str, Any] = {}
        if initial:
            self.set(initial)

    def set(self, key: str | Mapping[str, Any], value: Any = None) -> "Options":
        """Set one option, or merge every pair of a mapping.

        Existing keys are overwritten, never merged into.
        """
        if isinstance(key, Mapping):
            for k, v in key.items():
                self.set(k, v)
        else:
            self._store[key] = value
        return self

    def update(self, values: Mapping[str, Any]) -> "Options":
        return self.set(values)

    def get(self, key: str | list[str] | tuple[str, ...] | None = None, default: Any = None) -> Any:
        """Read options. Never raises.

        No key returns a snapshot of everything. A list of keys returns a
        dict with each key mapped to its value or *default*.
        """
        if key is None:
            return dict(self._store)
        if isinstance(key, (list, tuple)):
            return {k: self._store.get(k, default) for k in key}
        return self._store.get(key, default)

    def copy(self) -> "Options":
        return Options(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    def __iter__(self) -> Iterator[str]:
        return iter(self._store)

    def __len__(self) -> int:
        return len(self._store)

    def __repr__(self) -> str:
        return f"<Options {self._store!r}>"
