"""Composition root for the transactions dashboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from api_client.client import CollectApiClient
from api_client.transport import Transport, UrllibTransport
from dashboard.filters import Location, encode_filter_query
from dashboard.listing import SchoolTransactionsView, TransactionListView
from dashboard.payments import PaymentRequestSubmitter
from dashboard.routes import Route, resolve_route
from dashboard.session import InMemorySessionStorage, JsonFileSessionStorage, SessionStorage, SessionStore
from dashboard.status_lookup import StatusLookup
from shared import config


logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    """Configure root logging from LOG_LEVEL unless a level is given."""
    log_level = getattr(logging, (level or config.log_level()).upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@dataclass(slots=True)
class Dashboard:
    client: CollectApiClient
    session: SessionStore
    location: Location
    transactions: TransactionListView
    status_lookup: StatusLookup
    payments: PaymentRequestSubmitter
    page_limit: int
    school_views: dict[str, SchoolTransactionsView] = field(default_factory=dict)

    def school_view(self, school_id: str) -> SchoolTransactionsView:
        view = self.school_views.get(school_id.strip())
        if view is None:
            view = SchoolTransactionsView(
                self.client, self.session.channel, school_id, limit=self.page_limit
            )
            self.school_views[view.school_id] = view
        return view

    def navigate(self, path: str) -> Route:
        """Resolve a path through the session guard and record it in the location."""
        route = resolve_route(path, self.session)
        if route.path != self.location.path:
            query = encode_filter_query(self.transactions.filters) if route.name == "dashboard" else ""
            self.location.push(route.path, query)
        if route.redirected_from is not None:
            logger.info("route_redirected from=%s to=%s", route.redirected_from, route.path)
        return route

    def logout(self) -> None:
        self.session.logout()
        self.transactions.clear()
        for view in self.school_views.values():
            view.clear()
        self.school_views.clear()
        self.status_lookup.clear()
        self.payments.reset_form()


def _build_storage() -> SessionStorage:
    path = config.session_storage_path()
    if path:
        return JsonFileSessionStorage(path)
    return InMemorySessionStorage()


def build_dashboard(
    transport: Transport | None = None,
    *,
    storage: SessionStorage | None = None,
    location: Location | None = None,
) -> Dashboard:
    """Wire transport, client, session and views; restores any persisted session."""

    transport = transport or UrllibTransport(
        config.api_base_url(), timeout=config.request_timeout_seconds()
    )
    client = CollectApiClient(transport)
    session = SessionStore(client, storage or _build_storage())
    session.restore()

    location = location or Location()
    page_limit = config.page_limit()
    return Dashboard(
        client=client,
        session=session,
        location=location,
        transactions=TransactionListView(client, session.channel, limit=page_limit, location=location),
        status_lookup=StatusLookup(client, session.channel),
        payments=PaymentRequestSubmitter(
            client,
            session.channel,
            default_school_id=config.default_school_id(),
            default_callback_url=config.default_callback_url(),
        ),
        page_limit=page_limit,
    )
