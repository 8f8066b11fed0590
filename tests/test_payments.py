"""Tests for create-payment form validation and submission."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from api_client.client import CollectApiClient
from api_client.transport import ApiResponse
from dashboard.payments import PaymentRequestSubmitter
from dashboard.session import CredentialChannel
from shared.errors import TransientNetworkError, ValidationError
from tests.fakes import StaticTransport


_ACK = {
    "custom_order_id": "CUST-0001",
    "collect_request_id": "collect-req-0001",
    "payment_url": "https://pay.example.com/collect/0001",
}


def _submitter(response: ApiResponse) -> tuple[PaymentRequestSubmitter, StaticTransport]:
    transport = StaticTransport(response)
    channel = CredentialChannel()
    channel.arm("jwt-1")
    submitter = PaymentRequestSubmitter(
        CollectApiClient(transport),
        channel,
        default_school_id="65b0e6293e9f76a9694d84b4",
        default_callback_url="https://google.com",
    )
    return submitter, transport


def _fill(submitter: PaymentRequestSubmitter, amount: str = "1500") -> None:
    submitter.form.set_field("amount", amount)
    submitter.form.set_field("student_info.name", "Asha Rao")
    submitter.form.set_field("student_info.id", "STU042")
    submitter.form.set_field("student_info.email", "asha@example.com")


@pytest.mark.parametrize("amount", ["0", "0.00", "-5", "", "abc", "10.555"])
def test_invalid_amount_is_rejected_before_network_call(amount: str) -> None:
    submitter, transport = _submitter(ApiResponse(status=200, payload=_ACK))
    _fill(submitter, amount)

    with pytest.raises(ValidationError, match="Amount"):
        asyncio.run(submitter.submit())

    assert transport.requests == []
    assert submitter.form.amount == amount


def test_missing_student_fields_are_rejected_locally() -> None:
    submitter, transport = _submitter(ApiResponse(status=200, payload=_ACK))
    submitter.form.set_field("amount", "100")
    submitter.form.set_field("student_info.email", "not-an-email")

    with pytest.raises(ValidationError) as error:
        asyncio.run(submitter.submit())

    assert "student_info.name" in error.value.message
    assert "student_info.email" in error.value.message
    assert transport.requests == []


def test_unknown_form_field_is_rejected() -> None:
    submitter, _ = _submitter(ApiResponse(status=200, payload=_ACK))

    with pytest.raises(ValidationError):
        submitter.form.set_field("student_info.phone", "123")


def test_successful_submission_returns_ack_with_payment_url() -> None:
    submitter, transport = _submitter(ApiResponse(status=201, payload=_ACK))
    _fill(submitter, "1500.50")

    ack = asyncio.run(submitter.submit())

    assert ack.custom_order_id == "CUST-0001"
    assert ack.collect_request_id == "collect-req-0001"
    assert ack.payment_url == "https://pay.example.com/collect/0001"
    assert submitter.result.get() == ack
    request = transport.requests[0]
    assert request.path == "/payment/create-payment"
    assert request.token == "jwt-1"
    assert request.body == {
        "school_id": "65b0e6293e9f76a9694d84b4",
        "amount": "1500.50",
        "callback_url": "https://google.com",
        "student_info": {"name": "Asha Rao", "id": "STU042", "email": "asha@example.com"},
    }


def test_ack_without_payment_url_is_accepted() -> None:
    submitter, _ = _submitter(
        ApiResponse(status=200, payload={"custom_order_id": "CUST-2", "collect_request_id": "req-2"})
    )
    _fill(submitter)

    ack = asyncio.run(submitter.submit())

    assert ack.payment_url is None


def test_failed_submission_keeps_form_and_surfaces_message() -> None:
    submitter, _ = _submitter(ApiResponse(status=400, payload={"message": ["school_id must be a mongodb id"]}))
    _fill(submitter, "250")

    with pytest.raises(TransientNetworkError, match="school_id must be a mongodb id"):
        asyncio.run(submitter.submit())

    assert submitter.error.get() == "school_id must be a mongodb id"
    assert submitter.form.amount == "250"
    assert submitter.form.student_name == "Asha Rao"
    assert submitter.result.get() is None
    assert submitter.loading.get() is False


def test_failed_submission_without_message_uses_default() -> None:
    submitter, _ = _submitter(ApiResponse(status=500, payload=None))
    _fill(submitter)

    with pytest.raises(TransientNetworkError):
        asyncio.run(submitter.submit())

    assert submitter.error.get() == "Failed to create payment request"


def test_reset_form_restores_defaults_and_clears_outcome() -> None:
    submitter, _ = _submitter(ApiResponse(status=200, payload=_ACK))
    _fill(submitter)
    submitter.form.set_field("school_id", "other-school")
    asyncio.run(submitter.submit())

    submitter.reset_form()

    assert submitter.form.school_id == "65b0e6293e9f76a9694d84b4"
    assert submitter.form.amount == ""
    assert submitter.result.get() is None
    assert submitter.error.get() is None


def test_request_amount_is_decimal() -> None:
    submitter, _ = _submitter(ApiResponse(status=200, payload=_ACK))
    _fill(submitter, " 99.9 ")

    assert submitter.form.to_request().amount == Decimal("99.9")
