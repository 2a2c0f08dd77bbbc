from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from aggregate import active_shares
from models import Budget, PaymentFrequency, RecurringPayment
from money import Money
from periods import BudgetMonth, utc_today

UPCOMING_DAYS = 30

MONTHS_IN_CYCLE = {
    PaymentFrequency.weekly: 1,
    PaymentFrequency.biweekly: 1,
    PaymentFrequency.monthly: 1,
    PaymentFrequency.quarterly: 3,
    PaymentFrequency.semi_annually: 6,
    PaymentFrequency.annually: 12,
}


def monthly_equivalent(amount: Money, frequency: PaymentFrequency) -> Money:
    """Income received per month; weekly and bi-weekly pay is counted as 4 and 2 paydays."""
    if frequency == PaymentFrequency.weekly:
        return amount.scale(4)
    if frequency == PaymentFrequency.biweekly:
        return amount.scale(2)
    return amount.divide(MONTHS_IN_CYCLE[frequency]).rounded()


def _accumulates(payment: RecurringPayment) -> bool:
    """Non-monthly expenses build up funding across months; income and monthly bills reset."""
    return not payment.is_income and payment.frequency != PaymentFrequency.monthly


def monthly_contribution(payment: RecurringPayment) -> Money:
    """Monthly amount to set aside; expenses spread one payment over its cycle in months."""
    if payment.is_income:
        return monthly_equivalent(payment.amount, payment.frequency)
    return payment.amount.divide(MONTHS_IN_CYCLE[payment.frequency]).rounded()


def _linked_total(payment: RecurringPayment, budget: Budget) -> Money:
    total = Money.zero()
    for category in budget.categories.values():
        for item in category.items:
            if item.recurring_payment_id != payment.id:
                continue
            total = total + Money.sum(abs(t.amount) for t in item.active_transactions())
            total = total + Money.sum(abs(s.amount) for s in active_shares(item))
    return total


def funded_amount(
    payment: RecurringPayment,
    budgets: Sequence[Budget],
    *,
    today: Optional[date] = None,
) -> Money:
    """Money put towards ``payment`` by transactions on its linked budget items.

    Accumulating payments sum every supplied month; the others only count the
    month containing ``today``.
    """
    if _accumulates(payment):
        return Money.sum(_linked_total(payment, b) for b in budgets)
    current = BudgetMonth.from_date(today or utc_today())
    for budget in budgets:
        if budget.period == current:
            return _linked_total(payment, budget)
    return Money.zero()


@dataclass(frozen=True)
class RecurringSummary:
    payment: RecurringPayment
    funded: Money
    monthly_contribution: Money
    display_target: Money
    days_until_due: int

    @property
    def percent_funded(self) -> float:
        if not self.display_target.is_positive():
            return 0.0
        return min(self.funded.ratio(self.display_target) * 100, 100.0)

    @property
    def is_fully_funded(self) -> bool:
        return self.funded >= self.display_target

    @property
    def remaining(self) -> Money:
        return (self.display_target - self.funded).clamp_zero()

    @property
    def is_upcoming(self) -> bool:
        return 0 <= self.days_until_due <= UPCOMING_DAYS


def summarize(
    payment: RecurringPayment,
    *,
    funded: Optional[Money] = None,
    today: Optional[date] = None,
) -> RecurringSummary:
    today = today or utc_today()
    contribution = monthly_contribution(payment)
    target = payment.amount if _accumulates(payment) else contribution
    return RecurringSummary(
        payment=payment,
        funded=payment.funded_amount if funded is None else funded,
        monthly_contribution=contribution,
        display_target=target,
        days_until_due=(payment.next_due_date - today).days,
    )


def summarize_all(
    payments: Sequence[RecurringPayment],
    budgets: Sequence[Budget] = (),
    *,
    today: Optional[date] = None,
) -> list[RecurringSummary]:
    """Active payments, soonest due first."""
    today = today or utc_today()
    summaries = []
    for payment in payments:
        if not payment.is_active:
            continue
        funded = funded_amount(payment, budgets, today=today) if budgets else None
        summaries.append(summarize(payment, funded=funded, today=today))
    summaries.sort(key=lambda s: s.days_until_due)
    return summaries
