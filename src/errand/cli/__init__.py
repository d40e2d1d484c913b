"""Errand CLI — inspect routing and dispatch URLs from the shell.

Entry point registered as ``errand`` in ``pyproject.toml``::

    [project.scripts]
    errand = "errand.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``errand`` command."""
    parser = argparse.ArgumentParser(
        prog="errand",
        description="Errand — URL in, controller action out, view rendered.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- errand routes ----------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List routing rules and controllers")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- errand dispatch --------------------------------------------------
    dispatch_parser = subparsers.add_parser(
        "dispatch", help="Dispatch one URL and print the rendered content"
    )
    dispatch_parser.add_argument("app", help="Import string (e.g. myapp:app)")
    dispatch_parser.add_argument("url", nargs="?", default="", help="URL, e.g. user/edit/7")
    dispatch_parser.add_argument(
        "--method",
        default=None,
        help="HTTP method (default: $REQUEST_METHOD, then GET)",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from errand.cli._routes import run_routes

        run_routes(args)
    elif args.command == "dispatch":
        from errand.cli._dispatch import run_dispatch

        run_dispatch(args)
