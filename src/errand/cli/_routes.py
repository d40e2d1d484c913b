"""``errand routes`` — list routing rules and registered controllers."""

import argparse
import sys

from errand.cli._resolve import resolve_app
from errand.controller import actions_of


def run_routes(args: argparse.Namespace) -> None:
    """Print routing rules in match order, then each controller's actions."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    rules = app.router.rules
    if rules:
        width = max(max(len(r.pattern) for r in rules), 7)  # "PATTERN" header
        fmt = f"{{:<{width}}}  {{}}"
        print(fmt.format("PATTERN", "TARGET"))
        print("-" * min(width + 30, 80))
        for rule in rules:
            target = f"{rule.controller}/{rule.page}"
            if rule.parameters is not None:
                target += " " + repr(list(rule.parameters))
            print(fmt.format(rule.pattern, target))
    else:
        print("No routing rules; URLs resolve by convention.")

    names = sorted(app.registry)
    if not names:
        return
    print()
    for name in names:
        factory = app.registry.get(name)
        actions = ", ".join(sorted(actions_of(factory))) if isinstance(factory, type) else "?"
        print(f"{name}: {actions or '(no actions)'}")
