"""Pagination state: client-requested page/limit, server-reported total/pages."""

from __future__ import annotations

from dashboard.state import StateCell
from shared.errors import ValidationError
from shared.models import Pagination


def reconcile(requested_page: int, requested_limit: int, server: Pagination) -> Pagination:
    """Merge a server pagination block into the requested position.

    total/pages are taken from the server wholesale; page/limit stay what was
    requested, whatever the server echoed back.
    """
    return Pagination(
        page=requested_page,
        limit=requested_limit,
        total=server.total,
        pages=server.pages,
    )


class PaginationState:
    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValidationError("Page limit must be positive")
        self.pagination: StateCell[Pagination] = StateCell(Pagination(limit=limit), name="pagination")

    def get(self) -> Pagination:
        return self.pagination.get()

    @property
    def page(self) -> int:
        return self.pagination.get().page

    @property
    def limit(self) -> int:
        return self.pagination.get().limit

    def set_page(self, page: int) -> None:
        """Request a page; no clamping against the last known page count."""
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise ValidationError("Page must be an integer greater than or equal to 1")
        current = self.pagination.get()
        self.pagination.set(current.model_copy(update={"page": page}))

    def reset_page(self) -> None:
        self.set_page(1)

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.pagination.get().pages
