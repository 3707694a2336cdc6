"""Route table and navigation guards for API clients.

Paths use ``:param`` segments. `Router.before_each` decides whether a navigation may
proceed given the auth state held by an `AuthStore`:

- a route that requires auth redirects guests to ``login`` carrying ``?redirect=<path>``;
- a route that requires a guest redirects signed-in users to ``home``;
- when a token exists but no user is loaded, the profile is fetched first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

APP_TITLE = "MiniLove"


@dataclass(frozen=True)
class Route:
    name: str
    path: str
    title: str
    requires_auth: bool = False
    requires_guest: bool = False

    def pattern(self) -> re.Pattern:
        parts = []
        for segment in self.path.strip("/").split("/"):
            if segment.startswith(":"):
                parts.append(f"(?P<{segment[1:]}>[^/]+)")
            elif segment:
                parts.append(re.escape(segment))
        return re.compile("^/" + "/".join(parts) + "/?$")


@dataclass
class Location:
    name: str
    path: str
    params: Dict[str, str] = field(default_factory=dict)
    query: Dict[str, str] = field(default_factory=dict)


@dataclass
class NavigationResult:
    allowed: bool
    route: Optional[Route] = None
    redirect: Optional[Location] = None
    title: Optional[str] = None


DEFAULT_ROUTES: Tuple[Route, ...] = (
    Route("home", "/", "Home", requires_auth=True),
    Route("login", "/auth/login", "Sign in", requires_guest=True),
    Route("register", "/auth/register", "Sign up", requires_guest=True),
    Route("profile", "/profile", "Profile", requires_auth=True),
    Route("post-detail", "/post/:id", "Post", requires_auth=True),
    Route("create-post", "/create", "New post", requires_auth=True),
    Route("explore", "/explore", "Explore", requires_auth=True),
)

NOT_FOUND = Route("not-found", "/:path", "Page not found")


def page_title(route: Route) -> str:
    return f"{route.title} - {APP_TITLE}"


class Router:
    def __init__(self, store, routes: Sequence[Route] = DEFAULT_ROUTES):
        self.store = store
        self.routes: List[Route] = list(routes)
        self.current: Optional[Location] = None
        self.title: Optional[str] = None

    def by_name(self, name: str) -> Route:
        for route in self.routes:
            if route.name == name:
                return route
        raise KeyError(name)

    def resolve(self, path: str) -> Tuple[Route, Dict[str, str]]:
        """Match a path against the table; unknown paths resolve to the not-found route."""
        path = path.split("?", 1)[0] or "/"
        for route in self.routes:
            match = route.pattern().match(path)
            if match:
                return route, match.groupdict()
        return NOT_FOUND, {"path": path.lstrip("/")}

    def before_each(self, path: str) -> NavigationResult:
        route, _ = self.resolve(path)
        store = self.store

        if store.token and store.user is None:
            store.fetch_profile()

        if route.requires_auth and not store.is_authenticated:
            login = self.by_name("login")
            return NavigationResult(
                allowed=False,
                route=route,
                redirect=Location(login.name, login.path, query={"redirect": path}),
            )
        if route.requires_guest and store.is_authenticated:
            home = self.by_name("home")
            return NavigationResult(
                allowed=False, route=route, redirect=Location(home.name, home.path)
            )
        return NavigationResult(allowed=True, route=route, title=page_title(route))

    def push(self, path: str, max_redirects: int = 5) -> NavigationResult:
        """Navigate to `path`, following guard redirects, and record the final location."""
        result = self.before_each(path)
        hops = 0
        while not result.allowed and result.redirect is not None and hops < max_redirects:
            target = result.redirect
            result = self.before_each(target.path)
            if result.allowed:
                route, params = self.resolve(target.path)
                self.current = Location(route.name, target.path, params, dict(target.query))
                self.title = result.title
                return result
            hops += 1
        if result.allowed:
            route, params = self.resolve(path)
            self.current = Location(route.name, path.split("?", 1)[0], params)
            self.title = result.title
        return result
