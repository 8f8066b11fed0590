"""Route table and the authentication guard for protected views."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import unquote

from dashboard.session import SessionStore


LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"


@dataclass(frozen=True, slots=True)
class Route:
    name: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    redirected_from: str | None = None


_PROTECTED_ROUTES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("dashboard", re.compile(r"^/dashboard/?$")),
    ("school_transactions", re.compile(r"^/transactions/school/(?P<school_id>[^/]+)/?$")),
    ("transaction_status", re.compile(r"^/transaction-status/?$")),
    ("create_payment", re.compile(r"^/create-payment/?$")),
)


def _match_protected(path: str) -> Route | None:
    for name, pattern in _PROTECTED_ROUTES:
        match = pattern.match(path)
        if match is not None:
            params = {key: unquote(value) for key, value in match.groupdict().items()}
            return Route(name=name, path=path, params=params)
    return None


def resolve_route(path: str, session: SessionStore) -> Route:
    """Resolve a path, redirecting to login when no session is active."""
    path = path.split("?", 1)[0] or "/"
    if path.rstrip("/") == LOGIN_PATH:
        return Route(name="login", path=LOGIN_PATH)

    route = _match_protected(path)
    if route is None:
        route = Route(name="dashboard", path=DASHBOARD_PATH, redirected_from=path)

    if not session.is_authenticated:
        return Route(name="login", path=LOGIN_PATH, redirected_from=path)
    return route
