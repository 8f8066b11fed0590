"""Typed client for the collection API endpoints."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError as PydanticValidationError

from api_client.transport import ApiRequest, ApiResponse, Transport
from shared.errors import AuthError, NotFoundError, TransientNetworkError
from shared.models import (
    AuthSession,
    PaymentAck,
    PaymentRequest,
    StatusLookupResult,
    TransactionFilter,
    TransactionPage,
)


logger = logging.getLogger(__name__)

LOGIN_FAILED = "Login failed"
REGISTRATION_FAILED = "Registration failed"
LIST_FAILED = "Failed to fetch transactions"
STATUS_FAILED = "Failed to fetch transaction status"
PAYMENT_FAILED = "Failed to create payment request"
TRANSACTION_NOT_FOUND = "Transaction not found"


def server_message(payload: Any, default: str) -> str:
    """Return the collaborator-supplied message, or the default."""
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, list):
            message = ", ".join(str(item) for item in message if item)
        if isinstance(message, str) and message.strip():
            return message.strip()
    return default


def _path_segment(value: str) -> str:
    return quote(value, safe="")


class CollectApiClient:
    def __init__(self, transport: Transport) -> None:
        self.transport = transport

    async def _send(self, request: ApiRequest) -> ApiResponse:
        response = await self.transport.send(request)
        if not response.ok:
            logger.info(
                "collect_api_request_failed method=%s path=%s status=%s",
                request.method,
                request.path,
                response.status,
            )
        return response

    def _parse(self, model: Any, payload: Any, *, default_message: str, status: int) -> Any:
        try:
            return model.model_validate(payload)
        except PydanticValidationError as exc:
            logger.warning("collect_api_contract_mismatch model=%s", model.__name__)
            raise TransientNetworkError(default_message, status_code=status) from exc

    async def _authenticate(self, path: str, email: str, password: str, default_message: str) -> AuthSession:
        request = ApiRequest(method="POST", path=path, body={"email": email, "password": password})
        response = await self._send(request)
        if not response.ok:
            raise AuthError(server_message(response.payload, default_message))
        try:
            return AuthSession.model_validate(response.payload)
        except PydanticValidationError as exc:
            raise AuthError(default_message) from exc

    async def login(self, email: str, password: str) -> AuthSession:
        return await self._authenticate("/auth/login", email, password, LOGIN_FAILED)

    async def register(self, email: str, password: str) -> AuthSession:
        return await self._authenticate("/auth/register", email, password, REGISTRATION_FAILED)

    async def list_transactions(
        self,
        filters: TransactionFilter,
        *,
        page: int,
        limit: int,
        token: str | None,
    ) -> TransactionPage:
        query: list[tuple[str, str]] = [
            ("page", str(page)),
            ("limit", str(limit)),
            ("sort", filters.sort.value),
        ]
        if filters.status is not None:
            query.append(("status", filters.status.value))
        if filters.school_id is not None:
            query.append(("school_id", filters.school_id))

        request = ApiRequest(method="GET", path="/transactions", query=tuple(query), token=token)
        return await self._fetch_page(request)

    async def list_school_transactions(
        self,
        school_id: str,
        *,
        page: int,
        limit: int,
        token: str | None,
    ) -> TransactionPage:
        request = ApiRequest(
            method="GET",
            path=f"/transactions/school/{_path_segment(school_id)}",
            query=(("page", str(page)), ("limit", str(limit))),
            token=token,
        )
        return await self._fetch_page(request)

    async def _fetch_page(self, request: ApiRequest) -> TransactionPage:
        response = await self._send(request)
        if not response.ok:
            raise TransientNetworkError(
                server_message(response.payload, LIST_FAILED), status_code=response.status
            )
        return self._parse(
            TransactionPage, response.payload, default_message=LIST_FAILED, status=response.status
        )

    async def get_transaction_status(self, custom_order_id: str, *, token: str | None) -> StatusLookupResult:
        request = ApiRequest(
            method="GET",
            path=f"/transactions/status/{_path_segment(custom_order_id)}",
            token=token,
        )
        response = await self._send(request)
        if response.status == 404:
            raise NotFoundError(TRANSACTION_NOT_FOUND)
        if not response.ok:
            raise TransientNetworkError(
                server_message(response.payload, STATUS_FAILED), status_code=response.status
            )
        if not response.payload:
            raise NotFoundError(TRANSACTION_NOT_FOUND)
        if not isinstance(response.payload, dict):
            raise TransientNetworkError(STATUS_FAILED, status_code=response.status)
        try:
            return StatusLookupResult.from_payload(response.payload)
        except PydanticValidationError as exc:
            raise TransientNetworkError(STATUS_FAILED, status_code=response.status) from exc

    async def create_payment(self, payment: PaymentRequest, *, token: str | None) -> PaymentAck:
        request = ApiRequest(
            method="POST",
            path="/payment/create-payment",
            body=payment.model_dump(mode="json"),
            token=token,
        )
        response = await self._send(request)
        if not response.ok:
            raise TransientNetworkError(
                server_message(response.payload, PAYMENT_FAILED), status_code=response.status
            )
        return self._parse(PaymentAck, response.payload, default_message=PAYMENT_FAILED, status=response.status)
