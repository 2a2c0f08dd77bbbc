"""Derived planned/actual numbers for a budget snapshot.

Everything here is recomputed from the snapshot on every call; nothing is
cached and the input budget is never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from money import CENT, Money
from models import Budget, Category, Item, SplitShare, TransactionType
from ordering import order_category_keys


def signed_amount(
    amount: Money, entry_type: Optional[TransactionType], *, income_category: bool
) -> Money:
    """Amount counted towards an item: positive when the entry matches the category's polarity."""
    expected = TransactionType.income if income_category else TransactionType.expense
    if entry_type == expected:
        return amount
    return -amount


def direct_actual(item: Item, *, income_category: bool) -> Money:
    return Money.sum(
        signed_amount(t.amount, t.type, income_category=income_category)
        for t in item.active_transactions()
    )


def active_shares(item: Item) -> tuple[SplitShare, ...]:
    """Shares whose embedded parent is not soft-deleted.

    Shares carry no delete flag of their own; one without an embedded parent
    is always counted.
    """
    return tuple(
        s
        for s in item.split_transactions
        if s.parent_transaction is None or not s.parent_transaction.is_deleted
    )


def split_actual(item: Item, *, income_category: bool) -> Money:
    return Money.sum(
        signed_amount(s.amount, s.parent_type, income_category=income_category)
        for s in active_shares(item)
    )


def progress_ratio(actual: Money, planned: Money) -> float:
    if not planned.is_positive():
        return 0.0
    return max(0.0, actual.ratio(planned))


@dataclass(frozen=True)
class AggregatedItem:
    item: Item
    direct_actual: Money
    split_actual: Money

    @property
    def id(self) -> int:
        return self.item.id

    @property
    def name(self) -> str:
        return self.item.name

    @property
    def planned(self) -> Money:
        return self.item.planned

    @property
    def actual(self) -> Money:
        return self.direct_actual + self.split_actual

    @property
    def remaining(self) -> Money:
        return self.planned - self.actual

    @property
    def is_over_budget(self) -> bool:
        return self.actual > self.planned

    @property
    def progress(self) -> float:
        return progress_ratio(self.actual, self.planned)


@dataclass(frozen=True)
class AggregatedCategory:
    category: Category
    items: tuple[AggregatedItem, ...]

    @property
    def key(self) -> str:
        return self.category.key

    @property
    def name(self) -> str:
        return self.category.name

    @property
    def is_income(self) -> bool:
        return self.category.is_income

    @property
    def is_saving(self) -> bool:
        return self.category.is_saving

    @property
    def planned(self) -> Money:
        return Money.sum(i.planned for i in self.items)

    @property
    def actual(self) -> Money:
        return Money.sum(i.actual for i in self.items)

    @property
    def remaining(self) -> Money:
        return self.planned - self.actual

    @property
    def is_over_budget(self) -> bool:
        return self.actual > self.planned

    @property
    def progress(self) -> float:
        return progress_ratio(self.actual, self.planned)

    def sorted_items(self) -> list[AggregatedItem]:
        return sorted(self.items, key=lambda i: (i.item.order, i.item.id))


@dataclass(frozen=True)
class BudgetSummary:
    remaining_to_budget: Money
    is_balanced: bool
    actual_remaining: Money


@dataclass(frozen=True)
class AggregatedBudget:
    budget: Budget
    categories: dict[str, AggregatedCategory]

    @property
    def month(self) -> int:
        return self.budget.month

    @property
    def year(self) -> int:
        return self.budget.year

    @property
    def buffer(self) -> Money:
        return self.budget.buffer

    @property
    def ordered_keys(self) -> list[str]:
        return order_category_keys(self.budget.categories)

    def ordered_categories(self) -> list[AggregatedCategory]:
        return [self.categories[key] for key in self.ordered_keys]

    @property
    def income_category(self) -> Optional[AggregatedCategory]:
        for category in self.categories.values():
            if category.is_income:
                return category
        return None

    def expense_categories(self, *, include_saving: bool = True) -> list[AggregatedCategory]:
        return [
            c
            for c in self.categories.values()
            if not c.is_income and (include_saving or not c.is_saving)
        ]

    @property
    def income_planned(self) -> Money:
        return Money.sum(c.planned for c in self.categories.values() if c.is_income)

    @property
    def income_actual(self) -> Money:
        return Money.sum(c.actual for c in self.categories.values() if c.is_income)

    @property
    def expense_planned(self) -> Money:
        return Money.sum(c.planned for c in self.expense_categories())

    @property
    def expense_actual(self) -> Money:
        return Money.sum(c.actual for c in self.expense_categories())

    def summary(self) -> BudgetSummary:
        remaining = self.buffer + self.income_planned - self.expense_planned
        return BudgetSummary(
            remaining_to_budget=remaining,
            is_balanced=abs(remaining.amount) < CENT,
            actual_remaining=self.buffer + self.income_actual - self.expense_actual,
        )

    def find_item(self, item_id: int) -> Optional[AggregatedItem]:
        for category in self.categories.values():
            for item in category.items:
                if item.id == item_id:
                    return item
        return None


def aggregate_item(item: Item, *, income_category: bool) -> AggregatedItem:
    return AggregatedItem(
        item=item,
        direct_actual=direct_actual(item, income_category=income_category),
        split_actual=split_actual(item, income_category=income_category),
    )


def aggregate_category(category: Category) -> AggregatedCategory:
    return AggregatedCategory(
        category=category,
        items=tuple(
            aggregate_item(item, income_category=category.is_income)
            for item in category.items
        ),
    )


def aggregate(budget: Budget) -> AggregatedBudget:
    return AggregatedBudget(
        budget=budget,
        categories={
            key: aggregate_category(category)
            for key, category in budget.categories.items()
        },
    )


def total_actual(budget: AggregatedBudget) -> Money:
    return Money.sum(c.actual for c in budget.categories.values())


def total_item_actual(budget: AggregatedBudget) -> Money:
    return Money.sum(
        i.actual for c in budget.categories.values() for i in c.items
    )
