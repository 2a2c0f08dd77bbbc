from datetime import date

import pytest

from builders import budget, category, item, m, share, txn
from models import PaymentFrequency, RecurringPayment
from recurring import funded_amount, monthly_contribution, monthly_equivalent, summarize, summarize_all

TODAY = date(2025, 1, 15)


def _payment(
    frequency: PaymentFrequency,
    amount: str = "600",
    *,
    id: int = 1,
    due: date = date(2025, 2, 1),
    category_type=None,
    funded: str = "0",
    active: bool = True,
) -> RecurringPayment:
    return RecurringPayment(
        id=id,
        name=f"payment {id}",
        amount=m(amount),
        frequency=frequency,
        next_due_date=due,
        funded_amount=m(funded),
        category_type=category_type,
        is_active=active,
    )


@pytest.mark.parametrize(
    "frequency, expected",
    [
        (PaymentFrequency.weekly, "2400"),
        (PaymentFrequency.biweekly, "1200"),
        (PaymentFrequency.monthly, "600"),
        (PaymentFrequency.quarterly, "200"),
        (PaymentFrequency.semi_annually, "100"),
        (PaymentFrequency.annually, "50"),
    ],
)
def test_monthly_equivalent(frequency: PaymentFrequency, expected: str) -> None:
    assert monthly_equivalent(m("600"), frequency) == m(expected)


def test_quarterly_expense_targets_full_amount() -> None:
    summary = summarize(_payment(PaymentFrequency.quarterly, funded="150"), today=TODAY)
    assert summary.monthly_contribution == m("200")
    assert summary.display_target == m("600")
    assert summary.percent_funded == pytest.approx(25.0)
    assert summary.remaining == m("450")
    assert summary.days_until_due == 17
    assert summary.is_upcoming is True


def test_weekly_expense_sets_aside_one_payment_per_month() -> None:
    summary = summarize(
        _payment(PaymentFrequency.weekly, "25", category_type="personal", funded="10"), today=TODAY
    )
    assert summary.monthly_contribution == m("25")
    assert summary.display_target == m("25")
    assert summary.percent_funded == pytest.approx(40.0)


def test_weekly_multiplier_only_applies_to_income() -> None:
    assert monthly_contribution(_payment(PaymentFrequency.biweekly, "100", category_type="income")) == m("200")
    assert monthly_contribution(_payment(PaymentFrequency.biweekly, "100")) == m("100")
    assert monthly_contribution(_payment(PaymentFrequency.annually, "100")) == m("8.33")


def test_income_targets_monthly_equivalent() -> None:
    summary = summarize(
        _payment(PaymentFrequency.biweekly, "1937.50", category_type="Income", funded="4000"),
        today=TODAY,
    )
    assert summary.display_target == m("3875")
    assert summary.percent_funded == 100.0
    assert summary.is_fully_funded is True
    assert summary.remaining == m("0")


def test_zero_target_has_zero_percent() -> None:
    summary = summarize(_payment(PaymentFrequency.monthly, "0"), today=TODAY)
    assert summary.percent_funded == 0.0


def test_far_or_past_due_is_not_upcoming() -> None:
    assert summarize(_payment(PaymentFrequency.monthly, due=date(2025, 3, 1)), today=TODAY).is_upcoming is False
    assert summarize(_payment(PaymentFrequency.monthly, due=date(2025, 1, 1)), today=TODAY).is_upcoming is False


def _linked_budget(month: int, amount: str, *, payment_id: int = 1):
    parent = txn(900 + month, "10", on=date(2025, month + 1, 2))
    return budget(
        [
            category(
                1,
                "insurance",
                [
                    item(
                        10 + month,
                        "200",
                        transactions=[txn(100 + month, amount, on=date(2025, month + 1, 3)), txn(200 + month, "99", deleted=True)],
                        splits=[share(month, parent, 10 + month, "10")],
                        recurring_payment_id=payment_id,
                    )
                ],
            )
        ],
        month=month,
        id=month + 1,
    )


def test_funding_accumulates_for_non_monthly_expenses() -> None:
    budgets = [_linked_budget(0, "200"), _linked_budget(1, "190")]
    payment = _payment(PaymentFrequency.quarterly)
    assert funded_amount(payment, budgets, today=TODAY) == m("410")


def test_funding_resets_monthly_for_monthly_and_income() -> None:
    budgets = [_linked_budget(0, "200"), _linked_budget(1, "190")]
    assert funded_amount(_payment(PaymentFrequency.monthly), budgets, today=TODAY) == m("210")
    income = _payment(PaymentFrequency.quarterly, category_type="income")
    assert funded_amount(income, budgets, today=date(2025, 2, 10)) == m("200")
    assert funded_amount(income, budgets, today=date(2025, 5, 1)) == m("0")


def test_summarize_all_skips_inactive_and_sorts_by_due() -> None:
    payments = [
        _payment(PaymentFrequency.monthly, id=1, due=date(2025, 3, 1)),
        _payment(PaymentFrequency.monthly, id=2, due=date(2025, 1, 20)),
        _payment(PaymentFrequency.monthly, id=3, due=date(2025, 1, 16), active=False),
    ]
    summaries = summarize_all(payments, today=TODAY)
    assert [s.payment.id for s in summaries] == [2, 1]
    assert summaries[0].funded == m("0")


def test_summarize_all_recomputes_funding_from_budgets() -> None:
    summaries = summarize_all(
        [_payment(PaymentFrequency.monthly, funded="999")],
        [_linked_budget(0, "50")],
        today=TODAY,
    )
    assert summaries[0].funded == m("60")
