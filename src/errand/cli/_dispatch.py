"""``errand dispatch`` — run one URL through an App and print the output.

Behaves like a CGI front end: the method comes from ``--method`` or the
``REQUEST_METHOD`` environment variable.
"""

import argparse
import sys

import anyio

from errand.cli._resolve import resolve_app
from errand.errors import ErrandError, HTTPError


def run_dispatch(args: argparse.Namespace) -> None:
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    async def _run() -> str:
        try:
            return await app.dispatch(args.url, args.method)
        finally:
            await app.shutdown()

    try:
        content = anyio.run(_run)
    except HTTPError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(4 if exc.status == 404 else 1) from exc
    except ErrandError as exc:
        print(f"Error: {type(exc).__name__}: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    sys.stdout.write(content)
