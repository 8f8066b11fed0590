"""Create-payment form state and submission."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError as PydanticValidationError

from api_client.client import CollectApiClient
from dashboard.session import CredentialChannel
from dashboard.state import StateCell, commit
from shared.errors import CollectClientError, ValidationError
from shared.models import PaymentAck, PaymentRequest


logger = logging.getLogger(__name__)

_FORM_FIELDS = {
    "school_id": "school_id",
    "amount": "amount",
    "callback_url": "callback_url",
    "student_info.name": "student_name",
    "student_info.id": "student_id",
    "student_info.email": "student_email",
}


@dataclass(slots=True)
class PaymentForm:
    """Raw form values as typed by the user."""

    school_id: str
    callback_url: str
    amount: str = ""
    student_name: str = ""
    student_id: str = ""
    student_email: str = ""

    def set_field(self, name: str, value: str) -> None:
        """Update a field by its form name (``student_info.*`` for nested ones)."""
        attribute = _FORM_FIELDS.get(name)
        if attribute is None:
            raise ValidationError(f"Unknown payment form field: {name}")
        setattr(self, attribute, value)

    def to_request(self) -> PaymentRequest:
        try:
            return PaymentRequest.model_validate(
                {
                    "school_id": self.school_id,
                    "amount": self.amount.strip(),
                    "callback_url": self.callback_url,
                    "student_info": {
                        "name": self.student_name,
                        "id": self.student_id,
                        "email": self.student_email,
                    },
                }
            )
        except PydanticValidationError as exc:
            raise ValidationError(_describe(exc)) from exc


def _describe(exc: PydanticValidationError) -> str:
    fields = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        if location == "amount":
            return "Amount must be a number greater than 0 with at most two decimals"
        fields.append(location or "form")
    return f"Invalid payment request: {', '.join(fields)}"


class PaymentRequestSubmitter:
    def __init__(
        self,
        client: CollectApiClient,
        channel: CredentialChannel,
        *,
        default_school_id: str,
        default_callback_url: str,
    ) -> None:
        self.client = client
        self.channel = channel
        self.default_school_id = default_school_id
        self.default_callback_url = default_callback_url
        self.form = self._blank_form()
        self.result: StateCell[PaymentAck | None] = StateCell(None, name="payment.result")
        self.loading: StateCell[bool] = StateCell(False, name="payment.loading")
        self.error: StateCell[str | None] = StateCell(None, name="payment.error")

    def _blank_form(self) -> PaymentForm:
        return PaymentForm(school_id=self.default_school_id, callback_url=self.default_callback_url)

    async def submit(self) -> PaymentAck:
        """Validate the form locally, then post it.

        Opening ``payment_url`` is left to the caller. The form is kept as-is on
        any failure so the user can correct and resubmit.
        """
        try:
            request = self.form.to_request()
        except ValidationError as exc:
            self.error.set(exc.message)
            logger.info("payment_request_rejected_locally reason=%s", exc.message)
            raise

        commit((self.loading, True), (self.error, None), (self.result, None))
        try:
            ack = await self.client.create_payment(request, token=self.channel.token)
        except CollectClientError as exc:
            commit((self.loading, False), (self.error, exc.message))
            logger.warning("payment_request_failed school_id=%s reason=%s", request.school_id, exc.message)
            raise

        commit((self.result, ack), (self.loading, False))
        logger.info(
            "payment_request_created custom_order_id=%s collect_request_id=%s",
            ack.custom_order_id,
            ack.collect_request_id,
        )
        return ack

    def reset_form(self) -> None:
        self.form = self._blank_form()
        commit((self.result, None), (self.error, None))
