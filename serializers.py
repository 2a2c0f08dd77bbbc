"""Plain-dict views of domain objects for JSON responses. Money is always a decimal string."""

from __future__ import annotations

from typing import Any, Optional

from aggregate import AggregatedBudget, AggregatedCategory, AggregatedItem
from insights import CategorySummary, DailyPoint, InsightsResult, TrendPoint
from models import SplitShare, Transaction
from money import Money
from ordering import category_emoji, display_name
from reconcile import ReconciledTransaction, Reconciliation
from recurring import RecurringSummary
from services import RecurringOverview
from splits import SplitValidation


def _money(value: Optional[Money]) -> Optional[str]:
    return value.to_string() if value is not None else None


def _pct(value: Optional[float]) -> Optional[float]:
    return round(value, 1) if value is not None else None


def split_share_dict(share: SplitShare) -> dict[str, Any]:
    return {
        "id": share.id,
        "parent_transaction_id": share.parent_transaction_id,
        "budget_item_id": share.budget_item_id,
        "amount": _money(share.amount),
        "description": share.description,
        "is_non_earned": share.is_non_earned,
    }


def transaction_dict(txn: Transaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "description": txn.description,
        "amount": _money(txn.amount),
        "type": txn.type.value,
        "budget_item_id": txn.budget_item_id,
        "merchant": txn.merchant,
        "is_manual": txn.is_manual,
        "is_non_earned": txn.is_non_earned,
        "deleted_at": txn.deleted_at.isoformat() if txn.deleted_at else None,
        "splits": [split_share_dict(s) for s in txn.splits],
    }


def item_dict(item: AggregatedItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "planned": _money(item.planned),
        "actual": _money(item.actual),
        "remaining": _money(item.remaining),
        "is_over_budget": item.is_over_budget,
        "progress": item.progress,
        "recurring_payment_id": item.item.recurring_payment_id,
    }


def category_dict(category: AggregatedCategory) -> dict[str, Any]:
    return {
        "id": category.category.id,
        "key": category.key,
        "name": display_name(category.category),
        "emoji": category_emoji(category.category),
        "is_income": category.is_income,
        "is_saving": category.is_saving,
        "planned": _money(category.planned),
        "actual": _money(category.actual),
        "remaining": _money(category.remaining),
        "is_over_budget": category.is_over_budget,
        "progress": category.progress,
        "items": [item_dict(i) for i in category.sorted_items()],
    }


def budget_dict(budget: AggregatedBudget) -> dict[str, Any]:
    summary = budget.summary()
    return {
        "id": budget.budget.id,
        "month": budget.month,
        "year": budget.year,
        "label": budget.budget.period.label,
        "buffer": _money(budget.buffer),
        "income_planned": _money(budget.income_planned),
        "income_actual": _money(budget.income_actual),
        "expense_planned": _money(budget.expense_planned),
        "expense_actual": _money(budget.expense_actual),
        "remaining_to_budget": _money(summary.remaining_to_budget),
        "is_balanced": summary.is_balanced,
        "actual_remaining": _money(summary.actual_remaining),
        "categories": [category_dict(c) for c in budget.ordered_categories()],
    }


def reconciled_dict(entry: ReconciledTransaction) -> dict[str, Any]:
    data = transaction_dict(entry.transaction)
    data["status"] = entry.status.value
    data["item_id"] = entry.item_id
    data["suggested_item_id"] = entry.suggested_item_id
    return data


def reconciliation_dict(result: Reconciliation) -> dict[str, Any]:
    return {
        "uncategorized": [reconciled_dict(e) for e in result.uncategorized],
        "categorized": [reconciled_dict(e) for e in result.categorized],
        "deleted": [transaction_dict(t) for t in result.deleted],
    }


def split_validation_dict(validation: SplitValidation) -> dict[str, Any]:
    return {
        "total": _money(validation.total),
        "remaining": _money(validation.remaining),
        "balanced": validation.balanced,
        "valid_share_count": validation.valid_share_count,
        "can_submit": validation.can_submit,
    }


def _daily(point: DailyPoint) -> dict[str, Any]:
    return {
        "day": point.day,
        "date": point.date.isoformat(),
        "amount": _money(point.amount),
        "cumulative": _money(point.cumulative),
    }


def _summary(summary: CategorySummary) -> dict[str, Any]:
    return {
        "key": summary.key,
        "name": summary.name,
        "planned": _money(summary.planned),
        "actual": _money(summary.actual),
        "difference": _money(summary.difference),
        "percent_used": _pct(summary.percent_used),
    }


def _trend(point: TrendPoint) -> dict[str, Any]:
    return {
        "category": point.category,
        "month": point.month_label,
        "amount": _money(point.amount),
    }


def insights_dict(result: InsightsResult, trend: list[TrendPoint]) -> dict[str, Any]:
    flow = result.buffer_flow
    return {
        "month": result.month.month,
        "year": result.month.year,
        "label": result.month.label,
        "daily_spending": [_daily(p) for p in result.daily_spending],
        "total_planned_expenses": _money(result.total_planned_expenses),
        "category_chart": [_summary(s) for s in result.category_chart],
        "at_risk": [
            {
                "key": r.category.key,
                "name": r.category.name,
                "planned": _money(r.category.planned),
                "actual": _money(r.category.actual),
                "pace_ratio": round(r.pace_ratio, 2),
            }
            for r in result.at_risk
        ],
        "buffer_flow": {
            "underspent": _money(flow.underspent),
            "overspent": _money(flow.overspent),
            "left_to_budget": _money(flow.left_to_budget),
            "projected_next_buffer": _money(flow.projected_next_buffer),
        },
        "savings_rate": _pct(result.savings_rate),
        "income_trend": _pct(result.income_trend),
        "expense_trend": _pct(result.expense_trend),
        "category_trends": {k: _pct(v) for k, v in result.category_trends.items()},
        "category_summaries": [_summary(s) for s in result.category_summaries],
        "top_spending_items": [
            {
                "name": i.name,
                "category": i.category,
                "planned": _money(i.planned),
                "actual": _money(i.actual),
                "percent_of_total": _pct(i.percent_of_total),
            }
            for i in result.top_spending_items
        ],
        "underspent_categories": [_summary(s) for s in result.underspent_categories],
        "spending_trend": [_trend(p) for p in trend],
    }


def recurring_dict(summary: RecurringSummary) -> dict[str, Any]:
    payment = summary.payment
    return {
        "id": payment.id,
        "name": payment.name,
        "amount": _money(payment.amount),
        "frequency": payment.frequency.value,
        "next_due_date": payment.next_due_date.isoformat(),
        "category_type": payment.category_type,
        "funded_amount": _money(summary.funded),
        "monthly_contribution": _money(summary.monthly_contribution),
        "display_target": _money(summary.display_target),
        "percent_funded": _pct(summary.percent_funded),
        "is_fully_funded": summary.is_fully_funded,
        "remaining": _money(summary.remaining),
        "days_until_due": summary.days_until_due,
        "is_upcoming": summary.is_upcoming,
    }


def recurring_overview_dict(overview: RecurringOverview) -> dict[str, Any]:
    return {
        "payments": [recurring_dict(s) for s in overview.summaries],
        "upcoming": [s.payment.id for s in overview.upcoming],
        "total_monthly": _money(overview.total_monthly),
    }
