"""Analytics over aggregated budgets: spending series, pace, buffer flow and trends.

Currency sums stay in :class:`money.Money`; ratios and percentages are floats
for display only and are never fed back into an amount.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from aggregate import AggregatedBudget, AggregatedCategory, AggregatedItem
from models import Transaction, TransactionType, category_key
from money import Money
from periods import BudgetMonth, utc_today

AT_RISK_LIMIT = 5
TOP_ITEMS_LIMIT = 10
UNDERSPENT_PERCENT = 50.0


@dataclass(frozen=True)
class DailyPoint:
    day: int
    date: date
    amount: Money
    cumulative: Money


@dataclass(frozen=True)
class OverspendRisk:
    category: AggregatedCategory
    pace_ratio: float


@dataclass(frozen=True)
class BufferFlow:
    underspent: Money
    overspent: Money
    left_to_budget: Money

    @property
    def projected_next_buffer(self) -> Money:
        return self.underspent - self.overspent + self.left_to_budget


@dataclass(frozen=True)
class CategorySummary:
    key: str
    name: str
    planned: Money
    actual: Money

    @property
    def difference(self) -> Money:
        return self.planned - self.actual

    @property
    def percent_used(self) -> float:
        if not self.planned.is_positive():
            return 0.0
        return self.actual.ratio(self.planned) * 100


@dataclass(frozen=True)
class TopSpendingItem:
    name: str
    category: str
    planned: Money
    actual: Money
    percent_of_total: float


@dataclass(frozen=True)
class TrendPoint:
    category: str
    month_label: str
    amount: Money


@dataclass(frozen=True)
class InsightsResult:
    month: BudgetMonth
    daily_spending: list[DailyPoint]
    total_planned_expenses: Money
    category_chart: list[CategorySummary]
    at_risk: list[OverspendRisk]
    buffer_flow: BufferFlow
    savings_rate: Optional[float]
    income_trend: Optional[float]
    expense_trend: Optional[float]
    category_trends: dict[str, Optional[float]] = field(default_factory=dict)
    category_summaries: list[CategorySummary] = field(default_factory=list)
    top_spending_items: list[TopSpendingItem] = field(default_factory=list)
    underspent_categories: list[CategorySummary] = field(default_factory=list)


def _period(budget: AggregatedBudget) -> BudgetMonth:
    return budget.budget.period


def _expense_transactions(
    categories: Iterable[AggregatedCategory], month: BudgetMonth
) -> Iterable[Transaction]:
    for category in categories:
        for item in category.items:
            for txn in item.item.active_transactions():
                if txn.type == TransactionType.expense and month.contains(txn.date):
                    yield txn


def _dense_series(transactions: Iterable[Transaction], month: BudgetMonth) -> list[DailyPoint]:
    by_day: dict[int, Money] = {}
    for txn in transactions:
        by_day[txn.date.day] = by_day.get(txn.date.day, Money.zero()) + txn.amount

    points: list[DailyPoint] = []
    cumulative = Money.zero()
    for offset in range(month.days):
        day = month.start + timedelta(days=offset)
        amount = by_day.get(day.day, Money.zero())
        cumulative = cumulative + amount
        points.append(
            DailyPoint(day=day.day, date=day, amount=amount, cumulative=cumulative)
        )
    return points


def daily_spending(budget: AggregatedBudget) -> list[DailyPoint]:
    """One point per day of the month, zero days included."""
    month = _period(budget)
    return _dense_series(
        _expense_transactions(budget.expense_categories(), month), month
    )


def category_daily_spending(budget: AggregatedBudget, category_type: str) -> list[DailyPoint]:
    month = _period(budget)
    category = budget.categories.get(category_key(category_type))
    categories = [category] if category is not None else []
    return _dense_series(_expense_transactions(categories, month), month)


def transactions_for_day(budget: AggregatedBudget, day: int) -> list[Transaction]:
    month = _period(budget)
    matches = [
        txn
        for txn in _expense_transactions(budget.expense_categories(), month)
        if txn.date.day == day
    ]
    return sorted(matches, key=lambda t: t.amount, reverse=True)


def month_progress(month: BudgetMonth, today: Optional[date] = None) -> float:
    return month.day_progress(today) / month.days


def overspend_ranking(
    budget: AggregatedBudget,
    *,
    today: Optional[date] = None,
    limit: int = AT_RISK_LIMIT,
) -> list[OverspendRisk]:
    progress = month_progress(_period(budget), today)
    risks: list[OverspendRisk] = []
    for category in budget.expense_categories():
        if not category.planned.is_positive():
            continue
        expected_by_now = float(category.planned) * progress
        if expected_by_now <= 0:
            continue
        risks.append(
            OverspendRisk(
                category=category,
                pace_ratio=float(category.actual) / expected_by_now,
            )
        )
    risks.sort(key=lambda r: r.pace_ratio, reverse=True)
    return risks[:limit]


def _spending_items(budget: AggregatedBudget) -> Iterable[tuple[AggregatedCategory, AggregatedItem]]:
    for category in budget.expense_categories(include_saving=False):
        for item in category.items:
            yield category, item


def buffer_flow(budget: AggregatedBudget) -> BufferFlow:
    # Summed per item so an overspent item cannot hide behind an underspent sibling.
    underspent = Money.zero()
    overspent = Money.zero()
    for _, item in _spending_items(budget):
        underspent = underspent + (item.planned - item.actual).clamp_zero()
        overspent = overspent + (item.actual - item.planned).clamp_zero()
    left_to_budget = (
        budget.buffer + budget.income_planned - budget.expense_planned
    ).clamp_zero()
    return BufferFlow(
        underspent=underspent, overspent=overspent, left_to_budget=left_to_budget
    )


def total_expenses(budget: AggregatedBudget) -> Money:
    """Actual spend excluding income and saving."""
    return Money.sum(c.actual for c in budget.expense_categories(include_saving=False))


def total_planned_expenses(budget: AggregatedBudget) -> Money:
    return Money.sum(c.planned for c in budget.expense_categories())


def percent_change(current: Money, previous: Money) -> Optional[float]:
    if not previous.is_positive():
        return None
    return (current - previous).ratio(previous) * 100


def income_trend(
    budget: AggregatedBudget, prior: Optional[AggregatedBudget]
) -> Optional[float]:
    if prior is None or prior.income_category is None:
        return None
    return percent_change(budget.income_actual, prior.income_actual)


def expense_trend(
    budget: AggregatedBudget, prior: Optional[AggregatedBudget]
) -> Optional[float]:
    if prior is None:
        return None
    return percent_change(total_expenses(budget), total_expenses(prior))


def category_trend(
    budget: AggregatedBudget, prior: Optional[AggregatedBudget], category_type: str
) -> Optional[float]:
    if prior is None:
        return None
    key = category_key(category_type)
    current = budget.categories.get(key)
    previous = prior.categories.get(key)
    if current is None or previous is None:
        return None
    return percent_change(current.actual, previous.actual)


def savings_rate(budget: AggregatedBudget) -> Optional[float]:
    available = budget.buffer + budget.income_actual
    if not available.is_positive():
        return None
    return (available - total_expenses(budget)).ratio(available) * 100


def _summary(category: AggregatedCategory) -> CategorySummary:
    return CategorySummary(
        key=category.key,
        name=category.name,
        planned=category.planned,
        actual=category.actual,
    )


def category_chart(budget: AggregatedBudget) -> list[CategorySummary]:
    return [_summary(c) for c in budget.ordered_categories() if not c.is_income]


def category_summaries(budget: AggregatedBudget) -> list[CategorySummary]:
    summaries = [_summary(c) for c in budget.expense_categories()]
    summaries.sort(key=lambda s: s.actual, reverse=True)
    return summaries


def underspent_categories(budget: AggregatedBudget) -> list[CategorySummary]:
    return [
        s
        for s in category_summaries(budget)
        if s.planned.is_positive() and s.percent_used < UNDERSPENT_PERCENT
    ]


def top_spending_items(
    budget: AggregatedBudget, *, limit: int = TOP_ITEMS_LIMIT
) -> list[TopSpendingItem]:
    total = total_expenses(budget)
    items = [
        TopSpendingItem(
            name=item.name,
            category=category.name,
            planned=item.planned,
            actual=item.actual,
            percent_of_total=item.actual.ratio(total) * 100 if total.is_positive() else 0.0,
        )
        for category, item in _spending_items(budget)
        if item.actual.is_positive()
    ]
    items.sort(key=lambda i: i.actual, reverse=True)
    return items[:limit]


def spending_trend(budgets: Sequence[AggregatedBudget]) -> list[TrendPoint]:
    """Per-category actuals across several months, oldest month first."""
    points: list[TrendPoint] = []
    for budget in sorted(budgets, key=lambda b: (b.year, b.month)):
        label = _period(budget).short_label
        for category in budget.ordered_categories():
            if category.is_income or category.is_saving:
                continue
            points.append(
                TrendPoint(category=category.name, month_label=label, amount=category.actual)
            )
    return points


def build_insights(
    current: AggregatedBudget,
    prior: Optional[AggregatedBudget] = None,
    *,
    today: Optional[date] = None,
) -> InsightsResult:
    today = today or utc_today()
    return InsightsResult(
        month=_period(current),
        daily_spending=daily_spending(current),
        total_planned_expenses=total_planned_expenses(current),
        category_chart=category_chart(current),
        at_risk=overspend_ranking(current, today=today),
        buffer_flow=buffer_flow(current),
        savings_rate=savings_rate(current),
        income_trend=income_trend(current, prior),
        expense_trend=expense_trend(current, prior),
        category_trends={
            c.key: category_trend(current, prior, c.key)
            for c in current.ordered_categories()
            if not c.is_income
        },
        category_summaries=category_summaries(current),
        top_spending_items=top_spending_items(current),
        underspent_categories=underspent_categories(current),
    )
