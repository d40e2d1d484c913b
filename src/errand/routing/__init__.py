"""Routing — URL decomposition with ordered regex overrides.

A URL ``controller/page/arg...`` resolves by convention; rules registered
through ``Router.add_routing`` take precedence, first match wins.
"""

from errand.routing.route import Route, RoutingRule
from errand.routing.router import Router

__all__ = ["Route", "Router", "RoutingRule"]
