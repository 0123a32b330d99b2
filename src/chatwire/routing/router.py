"""
Route table and navigation for chatwire views.

Routes are declared as a tree (layouts with children) and flattened in
declaration order. Resolution is first-match; anything unmatched resolves
to the fallback route, so navigation never ends on an empty screen.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, quote, urlencode, urlsplit
import logging

from ..core.client.errors import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)

CATCH_ALL = "*"
MAX_REDIRECTS = 5


@dataclass(frozen=True)
class Route:
    """One entry of the route table.

    ``view`` is a factory called with ``(context, match)`` that builds the
    view component. A route with children acts as their layout.
    """
    path: str
    view: Optional[Callable[..., Any]] = None
    name: Optional[str] = None
    children: Tuple["Route", ...] = ()
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RouteMatch:
    """Result of resolving a location against the route table."""
    path: str
    route: Route
    params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)
    layouts: Tuple[Route, ...] = ()
    meta: Mapping[str, Any] = field(default_factory=dict)
    is_fallback: bool = False
    redirected_from: Optional[str] = None

    @property
    def full_path(self) -> str:
        if not self.query:
            return self.path
        return f"{self.path}?{urlencode(self.query)}"


@dataclass(frozen=True)
class _CompiledRoute:
    route: Route
    full_path: str
    segments: Tuple[str, ...]
    layouts: Tuple[Route, ...]
    meta: Mapping[str, Any]

    def match(self, parts: Sequence[str]) -> Optional[Dict[str, str]]:
        params: Dict[str, str] = {}
        for index, segment in enumerate(self.segments):
            if segment == CATCH_ALL:
                params["path_match"] = "/".join(parts[index:])
                return params
            if index >= len(parts):
                return None
            if segment.startswith(":"):
                params[segment[1:]] = parts[index]
            elif segment != parts[index]:
                return None
        if len(parts) != len(self.segments):
            return None
        return params


# Returns a location to redirect to, or None to allow navigation
NavigationGuard = Callable[[RouteMatch], Optional[str]]


def _split(path: str) -> List[str]:
    return [part for part in path.split("/") if part]


def _join(parent: str, child: str) -> str:
    if child.startswith("/"):
        return child
    base = parent.rstrip("/")
    return f"{base}/{child}" if child else (base or "/")


class Router:
    """Resolves locations to views and keeps navigation history."""

    def __init__(self, routes: Sequence[Route], fallback: Optional[Route] = None):
        self._compiled: List[_CompiledRoute] = []
        for route in routes:
            self._compile(route, "", (), {})

        if fallback is None:
            fallback = next(
                (c.route for c in self._compiled if c.segments == (CATCH_ALL,)),
                None,
            )
        if fallback is None:
            raise ConfigurationError("Route table needs a catch-all route or an explicit fallback",
                                     config_field="routes")
        self.fallback = fallback

        self._guards: List[NavigationGuard] = []
        self._listeners: List[Callable[[RouteMatch], None]] = []
        self._history: List[RouteMatch] = []

    def _compile(self, route: Route, parent_path: str, layouts: Tuple[Route, ...], meta: Mapping[str, Any]) -> None:
        full_path = _join(parent_path, route.path)
        merged_meta = {**meta, **route.meta}
        if route.children:
            for child in route.children:
                self._compile(child, full_path, layouts + (route,), merged_meta)
            return
        self._compiled.append(_CompiledRoute(
            route=route,
            full_path=full_path,
            segments=tuple(_split(full_path)),
            layouts=layouts,
            meta=merged_meta,
        ))

    @property
    def routes(self) -> List[Tuple[str, Route]]:
        """Flattened table as ``(full path, route)`` in match order."""
        return [(c.full_path, c.route) for c in self._compiled]

    @property
    def current(self) -> Optional[RouteMatch]:
        return self._history[-1] if self._history else None

    @property
    def history(self) -> List[RouteMatch]:
        return list(self._history)

    def before_each(self, guard: NavigationGuard) -> None:
        self._guards.append(guard)

    def on_change(self, listener: Callable[[RouteMatch], None]) -> None:
        self._listeners.append(listener)

    def resolve(self, location: str) -> RouteMatch:
        """Resolve a location without navigating or running guards."""
        parts = urlsplit(location or "/")
        path = "/" + "/".join(_split(parts.path))
        query = dict(parse_qsl(parts.query))
        segments = _split(path)

        for compiled in self._compiled:
            params = compiled.match(segments)
            if params is not None:
                return RouteMatch(
                    path=path,
                    route=compiled.route,
                    params=params,
                    query=query,
                    layouts=compiled.layouts,
                    meta=compiled.meta,
                    is_fallback=compiled.route is self.fallback,
                )

        logger.debug(f"No route for {path}; using fallback")
        layouts = next((c.layouts for c in self._compiled if c.route is self.fallback), ())
        return RouteMatch(
            path=path,
            route=self.fallback,
            params={"path_match": path.lstrip("/")},
            query=query,
            layouts=layouts,
            meta=dict(self.fallback.meta),
            is_fallback=True,
        )

    def push(self, location: str) -> RouteMatch:
        """Navigate to a location, applying guards."""
        match = self._navigate(location)
        self._history.append(match)
        self._notify(match)
        return match

    def replace(self, location: str) -> RouteMatch:
        match = self._navigate(location)
        if self._history:
            self._history[-1] = match
        else:
            self._history.append(match)
        self._notify(match)
        return match

    def back(self) -> Optional[RouteMatch]:
        """Return to the previous location, if there is one."""
        if len(self._history) < 2:
            return None
        self._history.pop()
        match = self._history[-1]
        self._notify(match)
        return match

    def url_for(self, name: str, **params: Any) -> str:
        """Build the path of a named route."""
        for compiled in self._compiled:
            if compiled.route.name != name:
                continue
            parts = []
            for segment in compiled.segments:
                if segment.startswith(":"):
                    key = segment[1:]
                    if key not in params:
                        raise ValueError(f"Route '{name}' needs parameter '{key}'")
                    parts.append(quote(str(params[key]), safe=""))
                elif segment != CATCH_ALL:
                    parts.append(segment)
            return "/" + "/".join(parts)
        raise NotFoundError(f"No route named '{name}'")

    def _navigate(self, location: str) -> RouteMatch:
        original = location
        match = self.resolve(location)
        # The start location plus up to MAX_REDIRECTS targets go through the guards
        for _ in range(MAX_REDIRECTS + 1):
            redirect = self._run_guards(match)
            if redirect is None:
                break
            logger.debug(f"Navigation to {match.path} redirected to {redirect}")
            resolved = self.resolve(redirect)
            match = RouteMatch(
                path=resolved.path,
                route=resolved.route,
                params=resolved.params,
                query=resolved.query,
                layouts=resolved.layouts,
                meta=resolved.meta,
                is_fallback=resolved.is_fallback,
                redirected_from=original,
            )
        else:
            logger.warning(f"Too many redirects navigating to {original}; using fallback")
            match = RouteMatch(
                path=match.path,
                route=self.fallback,
                query=match.query,
                is_fallback=True,
                redirected_from=original,
            )
        return match

    def _run_guards(self, match: RouteMatch) -> Optional[str]:
        for guard in self._guards:
            redirect = guard(match)
            if redirect is not None and redirect != match.full_path:
                return redirect
        return None

    def _notify(self, match: RouteMatch) -> None:
        for listener in list(self._listeners):
            try:
                listener(match)
            except Exception as e:
                logger.error(f"Error in route listener: {e}")


def auth_guard(is_authenticated: Callable[[], bool], signin_path: str = "/signin") -> NavigationGuard:
    """Guard sending signed-out users from ``requires_auth`` routes to sign-in."""

    def guard(match: RouteMatch) -> Optional[str]:
        if match.meta.get("requires_auth") and not is_authenticated():
            return f"{signin_path}?{urlencode({'redirect': match.full_path})}"
        return None

    return guard
