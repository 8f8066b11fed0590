"""Pydantic contracts exchanged with the collection API."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionStatus(str, Enum):
    """Lifecycle status reported for a collect request."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    INITIATED = "initiated"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "TransactionStatus":
        """Map a raw status (any case) to a member, defaulting to UNKNOWN."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


FILTERABLE_STATUSES: frozenset[TransactionStatus] = frozenset(
    status for status in TransactionStatus if status is not TransactionStatus.UNKNOWN
)


class SortKey(str, Enum):
    """Supported list orderings; a leading dash means descending."""

    NEWEST_FIRST = "-createdAt"
    OLDEST_FIRST = "createdAt"
    LATEST_PAYMENT = "-payment_time"
    EARLIEST_PAYMENT = "payment_time"
    HIGHEST_AMOUNT = "-order_amount"
    LOWEST_AMOUNT = "order_amount"

    @property
    def field(self) -> str:
        return self.value.lstrip("-")

    @property
    def descending(self) -> bool:
        return self.value.startswith("-")


class StudentInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str | None = None
    id: str | None = None
    email: str | None = None


class Transaction(BaseModel):
    """Immutable snapshot of one collect request as served by the API."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    collect_id: str | None = None
    school_id: str | None = None
    custom_order_id: str | None = None
    gateway: str | None = None
    order_amount: Decimal | None = None
    transaction_amount: Decimal | None = None
    status: TransactionStatus = TransactionStatus.UNKNOWN
    payment_time: str | None = None
    payment_mode: str | None = None
    student_info: StudentInfo | None = None
    created_at: str | None = Field(default=None, alias="createdAt")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, value: object) -> TransactionStatus:
        return TransactionStatus.parse(value)


class TransactionFilter(BaseModel):
    """Active list predicate. None means "no constraint", never a literal value."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    status: TransactionStatus | None = None
    school_id: str | None = None
    sort: SortKey = SortKey.NEWEST_FIRST

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, value: object) -> TransactionStatus | None:
        if value is None:
            return None
        if isinstance(value, str):
            if not value.strip():
                return None
            value = value.strip().lower()
        try:
            status = TransactionStatus(value)
        except ValueError as exc:
            raise ValueError(f"Unsupported status filter: {value}") from exc
        if status not in FILTERABLE_STATUSES:
            raise ValueError(f"Unsupported status filter: {status.value}")
        return status

    @field_validator("school_id", mode="before")
    @classmethod
    def validate_school_id(cls, value: object) -> str | None:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("school_id must be a string")
        return value.strip() or None

    @field_validator("sort", mode="before")
    @classmethod
    def validate_sort(cls, value: object) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return SortKey.NEWEST_FIRST
        return value.strip() if isinstance(value, str) else value


class Pagination(BaseModel):
    """Requested page/limit plus server-authoritative total/pages."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, gt=0)
    total: int = Field(default=0, ge=0)
    pages: int = Field(default=0, ge=0)


class TransactionPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    data: list[Transaction] = Field(default_factory=list)
    pagination: Pagination


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    email: str
    role: str


class AuthSession(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    access_token: str = Field(min_length=1)
    user: AuthUser


_PLACEHOLDER_MESSAGES = {"", "NA"}


class StatusLookupResult(BaseModel):
    """One status lookup outcome, independent from the listing result set."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    transaction: Transaction
    payment_message: str | None = None
    error_message: str | None = None

    @field_validator("payment_message", "error_message", mode="before")
    @classmethod
    def drop_placeholders(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() in _PLACEHOLDER_MESSAGES:
            return None
        return value

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "StatusLookupResult":
        return cls(
            transaction=Transaction.model_validate(payload),
            payment_message=payload.get("payment_message"),
            error_message=payload.get("error_message"),
        )


class PaymentStudentInfo(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    id: str = Field(min_length=1)
    email: str = Field(min_length=3)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        local, sep, domain = value.partition("@")
        if not sep or not local or not domain:
            raise ValueError("student email must be a valid email address")
        return value


class PaymentRequest(BaseModel):
    """Create-payment command body."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    school_id: str = Field(min_length=1)
    amount: Decimal = Field(gt=0, decimal_places=2)
    callback_url: str = Field(min_length=1)
    student_info: PaymentStudentInfo

    @field_validator("callback_url")
    @classmethod
    def validate_callback_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("callback_url must be an http(s) URL")
        return value


class PaymentAck(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    custom_order_id: str
    collect_request_id: str
    payment_url: str | None = None
