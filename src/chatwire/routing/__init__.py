"""
Route table and navigation for chatwire.
"""

from .router import Route, RouteMatch, Router, NavigationGuard, auth_guard, CATCH_ALL

__all__ = [
    "Route",
    "RouteMatch",
    "Router",
    "NavigationGuard",
    "auth_guard",
    "CATCH_ALL",
]
