"""Page-local summary statistics for the displayed result set.

Totals cover only the transactions currently shown, not every row matching
the filter on the server.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from shared.models import Transaction, TransactionStatus


_PENDING_STATUSES = frozenset({TransactionStatus.PENDING, TransactionStatus.INITIATED})


@dataclass(frozen=True, slots=True)
class TransactionSummary:
    total_amount: Decimal = Decimal("0")
    successful_amount: Decimal = Decimal("0")
    success_count: int = 0
    pending_count: int = 0
    failed_count: int = 0


EMPTY_SUMMARY = TransactionSummary()


def summarize(transactions: Iterable[Transaction]) -> TransactionSummary:
    total_amount = Decimal("0")
    successful_amount = Decimal("0")
    success_count = pending_count = failed_count = 0

    for transaction in transactions:
        amount = transaction.order_amount or Decimal("0")
        total_amount += amount
        if transaction.status == TransactionStatus.SUCCESS:
            successful_amount += amount
            success_count += 1
        elif transaction.status in _PENDING_STATUSES:
            pending_count += 1
        elif transaction.status == TransactionStatus.FAILED:
            failed_count += 1

    return TransactionSummary(
        total_amount=total_amount,
        successful_amount=successful_amount,
        success_count=success_count,
        pending_count=pending_count,
        failed_count=failed_count,
    )
