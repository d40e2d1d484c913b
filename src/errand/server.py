"""ASGI adapter — the seam where dispatch errors become responses.

Not a server: any ASGI server delivers the path and method, errand
dispatches, and this module decides presentation:

- ``HTTPError`` (``ActionNotFound``, ``RecordNotFound``...) -> its status
- anything else (``ConfigurationError``, ``QueryError``...) -> 500, logged
"""

import logging
from collections.abc import Awaitable, Callable, MutableMapping
from typing import TYPE_CHECKING, Any, TypeAlias

from errand.errors import HTTPError

if TYPE_CHECKING:
    from errand.app import App

logger = logging.getLogger("errand.server")

# Raw ASGI types
Scope: TypeAlias = MutableMapping[str, Any]
Receive: TypeAlias = Callable[[], Awaitable[MutableMapping[str, Any]]]
Send: TypeAlias = Callable[[MutableMapping[str, Any]], Awaitable[None]]

HTML = "text/html; charset=utf-8"
TEXT = "text/plain; charset=utf-8"


def url_from_path(path: str) -> str:
    """``"/user/edit/7"`` -> ``"user/edit/7"``, the form the router expects."""
    return path.lstrip("/")


async def send_text(send: Send, status: int, body: str, content_type: str = HTML) -> None:
    """Send a complete single-body response."""
    data = body.encode("utf-8")
    await send(
        {
            "type": "http.response.start",
            "status": status,
            "headers": [
                (b"content-type", content_type.encode("latin-1")),
                (b"content-length", str(len(data)).encode("latin-1")),
            ],
        }
    )
    await send({"type": "http.response.body", "body": data})


async def handle_http(app: "App", scope: Scope, send: Send) -> None:
    """Dispatch one HTTP scope and send the result or the mapped error."""
    url = url_from_path(scope["path"])
    method = scope.get("method", "GET")
    try:
        content = await app.dispatch(url, method)
    except HTTPError as exc:
        logger.info("%s %s -> %s", method, scope["path"], exc)
        detail = str(exc) if app.config.debug else (exc.detail or str(exc.status))
        await send_text(send, exc.status, detail, TEXT)
        return
    except Exception:
        logger.exception("Unhandled error dispatching %s %s", method, scope["path"])
        await send_text(send, 500, "Internal Server Error", TEXT)
        return
    await send_text(send, 200, content)


async def handle_lifespan(app: "App", receive: Receive, send: Send) -> None:
    """Connect the database on startup and close it on shutdown."""
    while True:
        message = await receive()
        msg_type = message["type"]

        if msg_type == "lifespan.startup":
            try:
                await app.startup()
            except Exception as exc:
                logger.exception("Startup failed")
                await send({"type": "lifespan.startup.failed", "message": str(exc)})
                return
            await send({"type": "lifespan.startup.complete"})

        elif msg_type == "lifespan.shutdown":
            await app.shutdown()
            await send({"type": "lifespan.shutdown.complete"})
            return
