from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from aggregate import AggregatedBudget, aggregate
from api_client import ApiError, BudgetApiClient
from config import Settings, get_settings
from insights import InsightsResult, TrendPoint, build_insights, spending_trend
from models import Budget, RecurringPayment, SplitShare, Transaction, TransactionType
from money import Money
from periods import BudgetMonth, trailing_months, utc_today
from reconcile import Reconciliation, newest_first, reconcile
from recurring import RecurringSummary, summarize_all
from schemas import (
    ContributeIn,
    CopyBudgetIn,
    CreateCategoryIn,
    CreateItemIn,
    CreateRecurringIn,
    CreateSplitsIn,
    CreateTransactionIn,
    ReorderItemIn,
    ReorderItemsIn,
    ResetBudgetIn,
    SplitInputIn,
    UpdateBufferIn,
    UpdateItemIn,
    UpdateRecurringIn,
    UpdateTransactionIn,
)
from splits import SplitDraft, SplitNotSubmittable, allocations, validate_split

logger = logging.getLogger(__name__)

INSIGHT_MONTHS = 3


class BudgetService:
    def __init__(self, client: BudgetApiClient) -> None:
        self.client = client

    def load(self, month: BudgetMonth) -> Budget:
        return self.client.get_budget(month)

    def aggregated(self, month: BudgetMonth) -> AggregatedBudget:
        return aggregate(self.load(month))

    def update_buffer(self, budget_id: int, buffer: Money) -> AggregatedBudget:
        budget = self.client.update_buffer(UpdateBufferIn(id=budget_id, buffer=buffer))
        return aggregate(budget)

    def copy_from_previous(self, month: BudgetMonth) -> AggregatedBudget:
        source = month.previous()
        budget = self.client.copy_budget(
            CopyBudgetIn(
                from_month=source.month,
                from_year=source.year,
                to_month=month.month,
                to_year=month.year,
            )
        )
        return aggregate(budget)

    def reset(self, budget_id: int, mode: str) -> None:
        self.client.reset_budget(ResetBudgetIn(budget_id=budget_id, mode=mode))

    def add_item(self, category_id: int, name: str, planned: Money) -> None:
        self.client.create_item(
            CreateItemIn(category_id=category_id, name=name.strip(), planned=planned)
        )

    def update_item(
        self,
        item_id: int,
        *,
        name: Optional[str] = None,
        planned: Optional[Money] = None,
    ) -> None:
        self.client.update_item(UpdateItemIn(id=item_id, name=name, planned=planned))

    def delete_item(self, item_id: int) -> None:
        self.client.delete_item(item_id)

    def reorder_items(self, item_ids: Sequence[int]) -> None:
        """Persist the given order; position in ``item_ids`` becomes the item's order."""
        self.client.reorder_items(
            ReorderItemsIn(
                items=[ReorderItemIn(id=item_id, order=i) for i, item_id in enumerate(item_ids)]
            )
        )

    def add_category(self, budget_id: int, name: str, emoji: str) -> None:
        self.client.create_category(
            CreateCategoryIn(budget_id=budget_id, name=name.strip(), emoji=emoji)
        )

    def delete_category(self, category_id: int) -> None:
        self.client.delete_category(category_id)


class TransactionService:
    def __init__(self, client: BudgetApiClient, settings: Optional[Settings] = None) -> None:
        self.client = client
        self.settings = settings or get_settings()

    def reconciled(self, month: BudgetMonth) -> Reconciliation:
        budget = self.client.get_budget(month)
        feed = self.client.get_uncategorized_transactions(month)
        deleted = self.client.get_deleted_transactions(month)
        return reconcile(
            feed,
            budget,
            deleted=deleted,
            window_days=self.settings.sync_window_days,
        )

    def deleted(self, month: BudgetMonth) -> list[Transaction]:
        return newest_first(self.client.get_deleted_transactions(month))

    def add(
        self,
        *,
        budget_item_id: int,
        on_date: date,
        description: str,
        amount: Money,
        entry_type: TransactionType,
        merchant: Optional[str] = None,
        is_non_earned: bool = False,
    ) -> Transaction:
        return self.client.create_transaction(
            CreateTransactionIn(
                budget_item_id=budget_item_id,
                date=on_date,
                description=description.strip(),
                amount=amount,
                type=entry_type,
                merchant=merchant or None,
                is_non_earned=True if is_non_earned else None,
            )
        )

    def categorize(self, transaction_id: int, budget_item_id: int) -> Transaction:
        return self.client.update_transaction(
            UpdateTransactionIn(id=transaction_id, budget_item_id=budget_item_id)
        )

    def update(self, request: UpdateTransactionIn) -> Transaction:
        return self.client.update_transaction(request)

    def delete(self, transaction_id: int) -> None:
        self.client.delete_transaction(transaction_id)

    def restore(self, transaction_id: int) -> Transaction:
        return self.client.restore_transaction(transaction_id)

    def split(
        self,
        parent_transaction_id: int,
        parent_amount: Money,
        drafts: Sequence[SplitDraft],
    ) -> list[SplitShare]:
        validation = validate_split(parent_amount, drafts)
        if not validation.can_submit:
            raise SplitNotSubmittable(
                f"Split of transaction {parent_transaction_id} is not ready: "
                f"{validation.remaining} remaining, "
                f"{validation.valid_share_count} valid shares"
            )
        shares = [
            SplitInputIn(
                budget_item_id=a.budget_item_id,
                amount=a.amount,
                description=a.description,
                is_non_earned=True if a.is_non_earned else None,
            )
            for a in allocations(drafts)
        ]
        return self.client.create_splits(
            CreateSplitsIn(parent_transaction_id=parent_transaction_id, splits=shares)
        )

    def unsplit(self, parent_transaction_id: int) -> None:
        self.client.delete_splits(parent_transaction_id)


class InsightsService:
    def __init__(self, client: BudgetApiClient, settings: Optional[Settings] = None) -> None:
        self.client = client
        self.settings = settings or get_settings()

    def load_months(
        self, months: Sequence[BudgetMonth], *, required: Optional[BudgetMonth] = None
    ) -> dict[BudgetMonth, AggregatedBudget]:
        """Fetch several months concurrently.

        A month that fails to load is logged and left out of the result, except
        ``required`` whose error is re-raised.
        """
        loaded: dict[BudgetMonth, AggregatedBudget] = {}
        with ThreadPoolExecutor(max_workers=self.settings.fetch_workers) as pool:
            futures = {m: pool.submit(self.client.get_budget, m) for m in months}
            for month, future in futures.items():
                try:
                    loaded[month] = aggregate(future.result())
                except ApiError as exc:
                    if month == required:
                        raise
                    logger.warning("skipping %s: %s", month.label, exc)
        return loaded

    def insights(
        self, month: BudgetMonth, *, today: Optional[date] = None
    ) -> tuple[InsightsResult, list[TrendPoint]]:
        months = trailing_months(month, INSIGHT_MONTHS)
        loaded = self.load_months(months, required=month)
        current = loaded[month]
        prior = loaded.get(month.previous())
        result = build_insights(current, prior, today=today or utc_today())
        return result, spending_trend(list(loaded.values()))


@dataclass(frozen=True)
class RecurringOverview:
    summaries: list[RecurringSummary]

    @property
    def upcoming(self) -> list[RecurringSummary]:
        return [s for s in self.summaries if s.is_upcoming]

    @property
    def total_monthly(self) -> Money:
        return Money.sum(
            s.monthly_contribution for s in self.summaries if not s.payment.is_income
        )


class RecurringService:
    def __init__(self, client: BudgetApiClient) -> None:
        self.client = client

    def overview(
        self,
        *,
        today: Optional[date] = None,
        budgets: Sequence[Budget] = (),
    ) -> RecurringOverview:
        """Summaries for active payments; funding is recomputed when ``budgets`` are given."""
        payments = self.client.get_recurring_payments()
        return RecurringOverview(
            summaries=summarize_all(payments, budgets, today=today or utc_today())
        )

    def create(self, request: CreateRecurringIn) -> RecurringPayment:
        return self.client.create_recurring_payment(request)

    def update(self, request: UpdateRecurringIn) -> RecurringPayment:
        return self.client.update_recurring_payment(request)

    def delete(self, payment_id: int) -> None:
        self.client.delete_recurring_payment(payment_id)

    def contribute(self, payment_id: int, amount: Money) -> RecurringPayment:
        return self.client.contribute(ContributeIn(id=payment_id, amount=amount))

    def reset_funding(self, payment_id: int) -> RecurringPayment:
        return self.client.reset_funding(payment_id)
