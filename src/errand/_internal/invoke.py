"""Run controller ``init`` hooks and actions, plain or ``async def``.

The dispatcher calls ``init(*parameters)``, then the action, then
``render()`` through ``invoke`` so a controller may mix both styles.
"""

import inspect
from typing import Any


async def invoke(target: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *target*; a coroutine (or other awaitable) result is awaited."""
    outcome = target(*args, **kwargs)
    return await outcome if inspect.isawaitable(outcome) else outcome
