"""Single transaction status lookup by custom order id."""

from __future__ import annotations

import logging

from api_client.client import CollectApiClient
from dashboard.session import CredentialChannel
from dashboard.state import StateCell, commit
from shared.errors import CollectClientError, ValidationError
from shared.models import StatusLookupResult


logger = logging.getLogger(__name__)

EMPTY_ORDER_ID_MESSAGE = "Please enter a custom order ID"


class StatusLookup:
    def __init__(self, client: CollectApiClient, channel: CredentialChannel) -> None:
        self.client = client
        self.channel = channel
        self.result: StateCell[StatusLookupResult | None] = StateCell(None, name="lookup.result")
        self.loading: StateCell[bool] = StateCell(False, name="lookup.loading")
        self.error: StateCell[str | None] = StateCell(None, name="lookup.error")
        self._sequence = 0

    async def lookup(self, custom_order_id: str) -> StatusLookupResult | None:
        """Fetch one transaction; returns None when superseded by a newer lookup."""
        order_id = (custom_order_id or "").strip()
        if not order_id:
            self.error.set(EMPTY_ORDER_ID_MESSAGE)
            raise ValidationError(EMPTY_ORDER_ID_MESSAGE)

        self._sequence += 1
        sequence = self._sequence
        commit((self.loading, True), (self.error, None), (self.result, None))
        logger.info("status_lookup_fired sequence=%s", sequence)

        try:
            result = await self.client.get_transaction_status(order_id, token=self.channel.token)
        except CollectClientError as exc:
            if sequence != self._sequence:
                return None
            commit((self.loading, False), (self.error, exc.message))
            logger.info("status_lookup_failed sequence=%s reason=%s", sequence, exc.message)
            raise

        if sequence != self._sequence:
            logger.info("status_lookup_stale_discarded sequence=%s", sequence)
            return None
        commit((self.result, result), (self.loading, False))
        return result

    def clear(self) -> None:
        self._sequence += 1
        commit((self.result, None), (self.error, None), (self.loading, False))
