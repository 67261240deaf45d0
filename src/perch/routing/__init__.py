"""Routing: pattern compilation, ordered matching, groups, reverse URLs.

Routes are declared up front and matched first-match-wins in
declaration order.
"""

from perch.routing.groups import GroupStack, join_path
from perch.routing.pattern import CompiledPattern, compile_pattern
from perch.routing.route import ANY_METHOD, Handler, Route, RouteHandle, RouteMatch
from perch.routing.router import Router
from perch.routing.table import RouteTable
from perch.routing.urls import UrlGenerator

__all__ = [
    "ANY_METHOD",
    "CompiledPattern",
    "GroupStack",
    "Handler",
    "Route",
    "RouteHandle",
    "RouteMatch",
    "RouteTable",
    "Router",
    "UrlGenerator",
    "compile_pattern",
    "join_path",
]
