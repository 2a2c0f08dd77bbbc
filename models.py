from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional

from money import Money
from periods import BudgetMonth

INCOME_KEY = "income"
SAVING_KEY = "saving"


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class PaymentFrequency(str, Enum):
    weekly = "weekly"
    biweekly = "bi-weekly"
    monthly = "monthly"
    quarterly = "quarterly"
    semi_annually = "semi-annually"
    annually = "annually"


class DuplicateCategoryError(ValueError):
    pass


def category_key(category_type: str) -> str:
    return (category_type or "").strip().lower()


@dataclass(frozen=True)
class SplitShare:
    id: int
    parent_transaction_id: int
    budget_item_id: int
    amount: Money
    description: Optional[str] = None
    is_non_earned: bool = False
    parent_type: Optional[TransactionType] = None
    # Only present on shares nested under an item, where the server embeds the parent.
    parent_transaction: Optional[Transaction] = None


@dataclass(frozen=True)
class Transaction:
    id: int
    date: date
    description: str
    amount: Money
    type: TransactionType
    budget_item_id: Optional[int] = None
    linked_account_id: Optional[int] = None
    merchant: Optional[str] = None
    deleted_at: Optional[datetime] = None
    is_non_earned: bool = False
    suggested_budget_item_id: Optional[int] = None
    splits: tuple[SplitShare, ...] = ()

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_split(self) -> bool:
        return len(self.splits) > 0

    @property
    def is_manual(self) -> bool:
        return self.linked_account_id is None

    @property
    def merchant_key(self) -> Optional[str]:
        if self.merchant is None or self.merchant == "":
            return None
        return self.merchant


@dataclass(frozen=True)
class Item:
    id: int
    category_id: int
    name: str
    planned: Money
    order: int = 0
    recurring_payment_id: Optional[int] = None
    transactions: tuple[Transaction, ...] = ()
    split_transactions: tuple[SplitShare, ...] = ()

    def active_transactions(self) -> tuple[Transaction, ...]:
        return tuple(t for t in self.transactions if not t.is_deleted)


@dataclass(frozen=True)
class Category:
    id: int
    budget_id: int
    category_type: str
    name: str
    order: Optional[int] = None
    emoji: Optional[str] = None
    items: tuple[Item, ...] = ()

    @property
    def key(self) -> str:
        return category_key(self.category_type)

    @property
    def is_income(self) -> bool:
        return self.key == INCOME_KEY

    @property
    def is_saving(self) -> bool:
        return self.key == SAVING_KEY


@dataclass(frozen=True)
class Budget:
    id: int
    user_id: str
    month: int
    year: int
    buffer: Money
    created_at: datetime
    categories: dict[str, Category] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for key, category in self.categories.items():
            if key != category.key:
                raise ValueError(
                    f"Category key {key!r} does not match category type {category.category_type!r}"
                )

    @classmethod
    def from_categories(
        cls,
        *,
        id: int,
        user_id: str,
        month: int,
        year: int,
        buffer: Money,
        created_at: datetime,
        categories: Iterable[Category],
    ) -> Budget:
        keyed: dict[str, Category] = {}
        for category in categories:
            if category.key in keyed:
                raise DuplicateCategoryError(
                    f"Duplicate category type {category.category_type!r} in budget {id}"
                )
            keyed[category.key] = category
        return cls(
            id=id,
            user_id=user_id,
            month=month,
            year=year,
            buffer=buffer,
            created_at=created_at,
            categories=keyed,
        )

    @property
    def period(self) -> BudgetMonth:
        return BudgetMonth(year=self.year, month=self.month)

    def item_ids(self) -> set[int]:
        return {
            item.id for category in self.categories.values() for item in category.items
        }

    def find_item(self, item_id: int) -> Optional[Item]:
        for category in self.categories.values():
            for item in category.items:
                if item.id == item_id:
                    return item
        return None


@dataclass(frozen=True)
class RecurringPayment:
    id: int
    name: str
    amount: Money
    frequency: PaymentFrequency
    next_due_date: date
    funded_amount: Money = field(default_factory=Money.zero)
    category_type: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def is_income(self) -> bool:
        return category_key(self.category_type or "") == INCOME_KEY
