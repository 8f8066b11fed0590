"""Transaction listing views and the query executor behind them.

Several fetches may be in flight at once (rapid filter or page changes) and
their responses can arrive in any order. Each fired request is tagged with a
sequence number and the credential generation it was issued under; only the
response to the newest request is applied, everything else is discarded on
arrival.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from api_client.client import CollectApiClient
from dashboard.filters import FilterState, Location, UrlMirror
from dashboard.pagination import PaginationState, reconcile
from dashboard.session import Credential, CredentialChannel
from dashboard.state import StateCell, commit
from dashboard.summary import EMPTY_SUMMARY, TransactionSummary, summarize
from shared.errors import CollectClientError, ValidationError
from shared.models import Pagination, Transaction, TransactionFilter, TransactionPage


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class QueryTicket:
    sequence: int
    page: int
    limit: int
    credential: Credential
    filters: TransactionFilter | None = None
    school_id: str | None = None


class QueryExecutor:
    """Fires list queries and applies only the newest one's response."""

    def __init__(
        self,
        client: CollectApiClient,
        channel: CredentialChannel,
        pagination: PaginationState,
        *,
        name: str = "transactions",
    ) -> None:
        self.client = client
        self.channel = channel
        self.pagination = pagination
        self.name = name
        self.results: StateCell[tuple[Transaction, ...]] = StateCell((), name=f"{name}.results")
        self.loading: StateCell[bool] = StateCell(False, name=f"{name}.loading")
        self.error: StateCell[str | None] = StateCell(None, name=f"{name}.error")
        self._sequence = 0

    @property
    def sequence(self) -> int:
        return self._sequence

    def _issue(self, filters: TransactionFilter | None, school_id: str | None) -> QueryTicket:
        self._sequence += 1
        current = self.pagination.get()
        ticket = QueryTicket(
            sequence=self._sequence,
            page=current.page,
            limit=current.limit,
            credential=self.channel.snapshot(),
            filters=filters,
            school_id=school_id,
        )
        self.loading.set(True)
        return ticket

    def _is_latest(self, ticket: QueryTicket) -> bool:
        return ticket.sequence == self._sequence

    async def _fetch(self, ticket: QueryTicket) -> TransactionPage:
        if ticket.school_id is not None:
            return await self.client.list_school_transactions(
                ticket.school_id,
                page=ticket.page,
                limit=ticket.limit,
                token=ticket.credential.token,
            )
        return await self.client.list_transactions(
            ticket.filters or TransactionFilter(),
            page=ticket.page,
            limit=ticket.limit,
            token=ticket.credential.token,
        )

    async def run(self, filters: TransactionFilter | None = None, *, school_id: str | None = None) -> bool:
        """Fire one query; return True when its response was applied.

        Failures of the newest request are recorded in ``error`` and re-raised;
        results and pagination are left untouched. No retry is attempted.
        """
        ticket = self._issue(filters, school_id)
        logger.info(
            "%s_fetch_fired sequence=%s page=%s limit=%s",
            self.name,
            ticket.sequence,
            ticket.page,
            ticket.limit,
        )

        try:
            response = await self._fetch(ticket)
        except CollectClientError as exc:
            if not self._is_latest(ticket):
                logger.info("%s_stale_failure_discarded sequence=%s", self.name, ticket.sequence)
                return False
            commit((self.loading, False), (self.error, exc.message))
            logger.warning(
                "%s_fetch_failed sequence=%s reason=%s", self.name, ticket.sequence, exc.message
            )
            raise

        if not self._is_latest(ticket):
            logger.info(
                "%s_stale_response_discarded sequence=%s latest=%s",
                self.name,
                ticket.sequence,
                self._sequence,
            )
            return False

        if not self.channel.is_current(ticket.credential):
            self.loading.set(False)
            logger.info("%s_response_discarded_session_changed sequence=%s", self.name, ticket.sequence)
            return False

        reconciled = reconcile(ticket.page, ticket.limit, response.pagination)
        commit(
            (self.results, tuple(response.data)),
            (self.pagination.pagination, reconciled),
            (self.error, None),
            (self.loading, False),
        )
        logger.info(
            "%s_fetch_applied sequence=%s rows=%s total=%s pages=%s",
            self.name,
            ticket.sequence,
            len(response.data),
            reconciled.total,
            reconciled.pages,
        )
        return True

    def clear(self) -> None:
        """Drop displayed rows and invalidate every in-flight request."""
        self._sequence += 1
        limit = self.pagination.limit
        commit(
            (self.results, ()),
            (self.pagination.pagination, Pagination(limit=limit)),
            (self.error, None),
            (self.loading, False),
        )


class _ListingView(ABC):
    def __init__(
        self,
        client: CollectApiClient,
        channel: CredentialChannel,
        *,
        limit: int,
        name: str,
    ) -> None:
        self.pagination_state = PaginationState(limit)
        self.executor = QueryExecutor(client, channel, self.pagination_state, name=name)
        self.summary: StateCell[TransactionSummary] = StateCell(EMPTY_SUMMARY, name=f"{name}.summary")
        self.executor.results.subscribe(self._update_summary)

    def _update_summary(self, rows: tuple[Transaction, ...]) -> None:
        self.summary.set(summarize(rows))

    @property
    def results(self) -> tuple[Transaction, ...]:
        return self.executor.results.get()

    @property
    def pagination(self) -> Pagination:
        return self.pagination_state.get()

    @property
    def loading(self) -> bool:
        return self.executor.loading.get()

    @property
    def error(self) -> str | None:
        return self.executor.error.get()

    @property
    def is_empty(self) -> bool:
        """True when the last applied response had no rows ("no results")."""
        return not self.executor.loading.get() and not self.executor.results.get()

    @abstractmethod
    async def _run(self) -> bool:
        """Fire the view's current query through the executor."""

    async def refresh(self) -> bool:
        """Re-fire the current query; the manual recovery path after a failure."""
        return await self._run()

    async def set_page(self, page: int) -> bool:
        self.pagination_state.set_page(page)
        return await self._run()

    def clear(self) -> None:
        self.executor.clear()


class TransactionListView(_ListingView):
    """Global transaction list with filters mirrored into the URL."""

    def __init__(
        self,
        client: CollectApiClient,
        channel: CredentialChannel,
        *,
        limit: int,
        location: Location | None = None,
    ) -> None:
        super().__init__(client, channel, limit=limit, name="transactions")
        self.location = location or Location()
        self.filter_state = FilterState()
        self.filter_state.seed_from(self.location)
        self.url_mirror = UrlMirror(self.filter_state.filters, self.location)

    @property
    def filters(self) -> TransactionFilter:
        return self.filter_state.get()

    async def _run(self) -> bool:
        return await self.executor.run(self.filter_state.get())

    async def set_filter(self, **changes: object) -> bool:
        """Merge a partial filter, reset to page 1 and fetch.

        Invalid values raise ValidationError before any state changes.
        """
        updated = self.filter_state.merged(changes)
        self.filter_state.filters.set(updated)
        self.pagination_state.reset_page()
        return await self._run()


class SchoolTransactionsView(_ListingView):
    """Transactions of one school; the school id comes from the route path."""

    def __init__(
        self,
        client: CollectApiClient,
        channel: CredentialChannel,
        school_id: str,
        *,
        limit: int,
    ) -> None:
        school_id = (school_id or "").strip()
        if not school_id:
            raise ValidationError("A school id is required")
        super().__init__(client, channel, limit=limit, name="school_transactions")
        self.school_id = school_id

    async def _run(self) -> bool:
        return await self.executor.run(school_id=self.school_id)
