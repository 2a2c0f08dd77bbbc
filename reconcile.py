from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Sequence

from models import Budget, SplitShare, Transaction
from periods import BudgetMonth

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 7


class TransactionStatus(str, Enum):
    direct = "direct"
    split_parent = "split_parent"
    uncategorized = "uncategorized"


@dataclass(frozen=True)
class ReconciledTransaction:
    transaction: Transaction
    status: TransactionStatus
    item_id: Optional[int] = None
    suggested_item_id: Optional[int] = None

    @property
    def id(self) -> int:
        return self.transaction.id


@dataclass(frozen=True)
class Reconciliation:
    uncategorized: tuple[ReconciledTransaction, ...]
    categorized: tuple[ReconciledTransaction, ...]
    deleted: tuple[Transaction, ...] = ()

    def status_of(self, transaction_id: int) -> Optional[TransactionStatus]:
        for entry in self.uncategorized + self.categorized:
            if entry.id == transaction_id:
                return entry.status
        return None

    @property
    def all(self) -> tuple[ReconciledTransaction, ...]:
        return self.uncategorized + self.categorized


def filter_to_window(
    transactions: Iterable[Transaction],
    month: BudgetMonth,
    *,
    days: int = DEFAULT_WINDOW_DAYS,
) -> list[Transaction]:
    window = month.sync_window(days)
    return [t for t in transactions if window.contains(t.date)]


def newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)


def split_parent_ids(budget: Budget) -> set[int]:
    return {
        share.parent_transaction_id
        for category in budget.categories.values()
        for item in category.items
        for share in item.split_transactions
    }


def split_parents(budget: Budget) -> list[Transaction]:
    """Rebuild split parents from the shares scattered across the budget's items.

    One entry per distinct parent id, in order of first appearance, carrying all
    of that parent's shares. Parents whose shares never embed the parent
    transaction cannot be rebuilt and are skipped.
    """
    parents: dict[int, Transaction] = {}
    shares: dict[int, list[SplitShare]] = {}
    for category in budget.categories.values():
        for item in category.items:
            for share in item.split_transactions:
                bucket = shares.setdefault(share.parent_transaction_id, [])
                bucket.append(replace(share, parent_transaction=None))
                if (
                    share.parent_transaction is not None
                    and share.parent_transaction_id not in parents
                ):
                    parents[share.parent_transaction_id] = share.parent_transaction
    return [
        replace(parent, splits=tuple(shares[parent_id]))
        for parent_id, parent in parents.items()
    ]


def merchant_item_map(budget: Budget) -> dict[str, int]:
    """Merchant -> item id from this month's categorized transactions, last write wins."""
    mapping: dict[str, int] = {}
    for category in budget.categories.values():
        for item in category.items:
            for txn in item.active_transactions():
                merchant = txn.merchant_key
                if merchant is not None:
                    mapping[merchant] = item.id
    return mapping


def resolve_suggestion(
    txn: Transaction, valid_item_ids: set[int], merchants: dict[str, int]
) -> Optional[int]:
    suggested = txn.suggested_budget_item_id
    if suggested is not None and suggested not in valid_item_ids:
        logger.debug(
            "discarding suggestion %s for transaction %s: item not in this month",
            suggested,
            txn.id,
        )
        suggested = None
    if suggested is None and txn.merchant_key is not None:
        suggested = merchants.get(txn.merchant_key)
    return suggested


def reconcile(
    feed: Sequence[Transaction],
    budget: Budget,
    *,
    deleted: Sequence[Transaction] = (),
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> Reconciliation:
    """Split a month's transactions into disjoint uncategorized and categorized sets."""
    parent_ids = split_parent_ids(budget)
    valid_item_ids = budget.item_ids()
    merchants = merchant_item_map(budget)

    uncategorized: list[ReconciledTransaction] = []
    for txn in filter_to_window(feed, budget.period, days=window_days):
        if txn.budget_item_id is not None or txn.is_deleted:
            continue
        if txn.id in parent_ids or txn.is_split:
            continue
        uncategorized.append(
            ReconciledTransaction(
                transaction=txn,
                status=TransactionStatus.uncategorized,
                suggested_item_id=resolve_suggestion(txn, valid_item_ids, merchants),
            )
        )
    uncategorized_ids = {entry.id for entry in uncategorized}

    categorized: list[ReconciledTransaction] = []
    for category in budget.categories.values():
        for item in category.items:
            for txn in item.transactions:
                if txn.is_deleted or txn.id in uncategorized_ids:
                    continue
                categorized.append(
                    ReconciledTransaction(
                        transaction=txn,
                        status=TransactionStatus.direct,
                        item_id=item.id,
                    )
                )
    for parent in split_parents(budget):
        if parent.is_deleted or parent.id in uncategorized_ids:
            continue
        categorized.append(
            ReconciledTransaction(
                transaction=parent, status=TransactionStatus.split_parent
            )
        )

    return Reconciliation(
        uncategorized=tuple(uncategorized),
        categorized=tuple(categorized),
        deleted=tuple(newest_first(deleted)),
    )
