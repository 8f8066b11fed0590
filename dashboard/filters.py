"""Filter/sort state and its projection onto the URL query string.

The URL only mirrors the canonical filter. It seeds the filter once at
startup and is never read back afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import parse_qsl, urlencode

from pydantic import ValidationError as PydanticValidationError

from dashboard.state import StateCell
from shared.errors import ValidationError
from shared.models import TransactionFilter


logger = logging.getLogger(__name__)

FILTER_QUERY_KEYS: tuple[str, ...] = ("status", "school_id", "sort")


def _validation_message(exc: PydanticValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(messages) or "Invalid filter"


def build_filter(values: Mapping[str, object]) -> TransactionFilter:
    try:
        return TransactionFilter.model_validate(dict(values))
    except PydanticValidationError as exc:
        raise ValidationError(_validation_message(exc)) from exc


def filter_query_params(filters: TransactionFilter) -> list[tuple[str, str]]:
    """Return the non-empty filter fields as ordered query parameters."""
    params: list[tuple[str, str]] = []
    if filters.status is not None:
        params.append(("status", filters.status.value))
    if filters.school_id is not None:
        params.append(("school_id", filters.school_id))
    params.append(("sort", filters.sort.value))
    return params


def encode_filter_query(filters: TransactionFilter) -> str:
    return urlencode(filter_query_params(filters))


def decode_filter_query(query: str) -> TransactionFilter:
    """Parse a query string into a filter.

    Unrelated parameters are ignored and empty values count as absent.
    Unsupported status or sort values raise ValidationError.
    """
    values: dict[str, str] = {}
    for key, value in parse_qsl(query.lstrip("?"), keep_blank_values=True):
        if key in FILTER_QUERY_KEYS and value.strip():
            values[key] = value
    return build_filter(values)


@dataclass(slots=True)
class Location:
    """Navigable path and query string, with the history of replaced entries."""

    path: str = "/dashboard"
    query: str = ""
    history: list[tuple[str, str]] = field(default_factory=list)

    @classmethod
    def from_url(cls, url: str) -> "Location":
        path, _, query = url.partition("?")
        return cls(path=path or "/", query=query)

    @property
    def href(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

    def push(self, path: str, query: str = "") -> None:
        self.history.append((self.path, self.query))
        self.path = path
        self.query = query.lstrip("?")

    def replace_query(self, query: str) -> None:
        self.query = query.lstrip("?")

    def back(self) -> bool:
        if not self.history:
            return False
        self.path, self.query = self.history.pop()
        return True


class FilterState:
    """Owner of the canonical filter cell."""

    def __init__(self) -> None:
        self.filters: StateCell[TransactionFilter] = StateCell(TransactionFilter(), name="filters")

    def get(self) -> TransactionFilter:
        return self.filters.get()

    def merged(self, changes: Mapping[str, object]) -> TransactionFilter:
        """Validate a partial update against the current filter without applying it."""
        unknown = sorted(set(changes) - set(FILTER_QUERY_KEYS))
        if unknown:
            raise ValidationError(f"Unsupported filter fields: {', '.join(unknown)}")
        current = self.filters.get()
        values: dict[str, object] = {
            "status": current.status,
            "school_id": current.school_id,
            "sort": current.sort,
        }
        values.update(changes)
        return build_filter(values)

    def seed_from(self, location: Location) -> TransactionFilter:
        """One-time inverse projection from the startup URL."""
        try:
            seeded = decode_filter_query(location.query)
        except ValidationError as exc:
            logger.warning("filter_seed_rejected query=%s reason=%s", location.query, exc.message)
            seeded = TransactionFilter()
        self.filters.set(seeded)
        return seeded


class UrlMirror:
    """One-way projection of the filter cell into the location query string."""

    def __init__(self, filters: StateCell[TransactionFilter], location: Location) -> None:
        self.location = location
        self._unsubscribe = filters.subscribe(self._mirror)
        self._mirror(filters.get())

    def _mirror(self, filters: TransactionFilter) -> None:
        self.location.replace_query(encode_filter_query(filters))

    def close(self) -> None:
        self._unsubscribe()
