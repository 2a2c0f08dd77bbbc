from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from models import Budget, Category, Item, SplitShare, Transaction, TransactionType
from money import Money

CREATED = datetime(2025, 1, 1, tzinfo=timezone.utc)
DELETED = datetime(2025, 1, 20, tzinfo=timezone.utc)


def m(value: str) -> Money:
    return Money.parse(value)


def txn(
    id: int,
    amount: str,
    *,
    type: TransactionType = TransactionType.expense,
    on: date = date(2025, 1, 10),
    item_id: Optional[int] = None,
    merchant: Optional[str] = None,
    deleted: bool = False,
    suggested: Optional[int] = None,
    account: Optional[int] = 7,
) -> Transaction:
    return Transaction(
        id=id,
        date=on,
        description=f"txn {id}",
        amount=m(amount),
        type=type,
        budget_item_id=item_id,
        linked_account_id=account,
        merchant=merchant,
        deleted_at=DELETED if deleted else None,
        suggested_budget_item_id=suggested,
    )


def share(id: int, parent: Transaction, item_id: int, amount: str) -> SplitShare:
    return SplitShare(
        id=id,
        parent_transaction_id=parent.id,
        budget_item_id=item_id,
        amount=m(amount),
        parent_type=parent.type,
        parent_transaction=replace(parent, budget_item_id=None),
    )


def item(
    id: int,
    planned: str = "0",
    *,
    transactions: Sequence[Transaction] = (),
    splits: Sequence[SplitShare] = (),
    order: int = 0,
    recurring_payment_id: Optional[int] = None,
) -> Item:
    return Item(
        id=id,
        category_id=0,
        name=f"item {id}",
        planned=m(planned),
        order=order,
        recurring_payment_id=recurring_payment_id,
        transactions=tuple(replace(t, budget_item_id=id) for t in transactions),
        split_transactions=tuple(splits),
    )


def category(
    id: int,
    category_type: str,
    items: Sequence[Item] = (),
    *,
    order: Optional[int] = None,
    emoji: Optional[str] = None,
) -> Category:
    return Category(
        id=id,
        budget_id=1,
        category_type=category_type,
        name=category_type.title(),
        order=order,
        emoji=emoji,
        items=tuple(replace(i, category_id=id) for i in items),
    )


def budget(
    categories: Sequence[Category],
    *,
    month: int = 0,
    year: int = 2025,
    buffer: str = "0",
    id: int = 1,
) -> Budget:
    return Budget.from_categories(
        id=id,
        user_id="user-1",
        month=month,
        year=year,
        buffer=m(buffer),
        created_at=CREATED,
        categories=categories,
    )
