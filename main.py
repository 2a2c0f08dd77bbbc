import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Query

from api_client import ApiError, BudgetApiClient, Forbidden, NotFound, Unauthorized
from config import get_settings
from money import Money
from periods import BudgetMonth, trailing_months, utc_today
from schemas import BufferIn, CategorizeIn, ContributionIn, SplitValidationIn
from serializers import (
    budget_dict,
    insights_dict,
    recurring_overview_dict,
    reconciliation_dict,
    split_share_dict,
    split_validation_dict,
    transaction_dict,
)
from services import BudgetService, InsightsService, RecurringService, TransactionService
from splits import validate_split

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Zero Budget")


def get_client() -> BudgetApiClient:
    return BudgetApiClient(get_settings())


@contextmanager
def api_errors() -> Iterator[None]:
    try:
        yield
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except Unauthorized as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except Forbidden as exc:
        raise HTTPException(status_code=403, detail=str(exc)) from exc
    except ApiError as exc:
        logging.warning("upstream error: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def month_from_path(year: int, month: int) -> BudgetMonth:
    try:
        return BudgetMonth(year=year, month=month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def current_month() -> BudgetMonth:
    return BudgetMonth.from_date(utc_today())


@app.get("/api/budgets/current")
def api_current_budget(client: BudgetApiClient = Depends(get_client)):
    with api_errors():
        budget = BudgetService(client).aggregated(current_month())
    return budget_dict(budget)


@app.get("/api/budgets/{year}/{month}")
def api_budget(year: int, month: int, client: BudgetApiClient = Depends(get_client)):
    period = month_from_path(year, month)
    with api_errors():
        budget = BudgetService(client).aggregated(period)
    return budget_dict(budget)


@app.post("/api/budgets/{year}/{month}/copy")
def api_copy_budget(year: int, month: int, client: BudgetApiClient = Depends(get_client)):
    period = month_from_path(year, month)
    with api_errors():
        budget = BudgetService(client).copy_from_previous(period)
    return budget_dict(budget)


@app.put("/api/budgets/{budget_id}/buffer")
def api_update_buffer(
    budget_id: int, data: BufferIn, client: BudgetApiClient = Depends(get_client)
):
    with api_errors():
        budget = BudgetService(client).update_buffer(budget_id, Money.parse(data.buffer))
    return budget_dict(budget)


@app.get("/api/budgets/{year}/{month}/transactions")
def api_transactions(year: int, month: int, client: BudgetApiClient = Depends(get_client)):
    period = month_from_path(year, month)
    with api_errors():
        result = TransactionService(client).reconciled(period)
    return reconciliation_dict(result)


@app.get("/api/budgets/{year}/{month}/transactions/deleted")
def api_deleted_transactions(
    year: int, month: int, client: BudgetApiClient = Depends(get_client)
):
    period = month_from_path(year, month)
    with api_errors():
        deleted = TransactionService(client).deleted(period)
    return {"items": [transaction_dict(t) for t in deleted]}


@app.put("/api/transactions/{transaction_id}/category")
def api_categorize(
    transaction_id: int, data: CategorizeIn, client: BudgetApiClient = Depends(get_client)
):
    with api_errors():
        txn = TransactionService(client).categorize(transaction_id, data.budget_item_id)
    return transaction_dict(txn)


@app.post("/api/transactions/{transaction_id}/delete")
def api_delete_transaction(
    transaction_id: int, client: BudgetApiClient = Depends(get_client)
):
    with api_errors():
        TransactionService(client).delete(transaction_id)
    return {"ok": True}


@app.post("/api/transactions/{transaction_id}/restore")
def api_restore_transaction(
    transaction_id: int, client: BudgetApiClient = Depends(get_client)
):
    with api_errors():
        txn = TransactionService(client).restore(transaction_id)
    return transaction_dict(txn)


@app.post("/api/splits/validate")
def api_validate_split(data: SplitValidationIn):
    with api_errors():
        validation = validate_split(Money.parse(data.parent_amount), data.drafts())
    return split_validation_dict(validation)


@app.post("/api/transactions/{transaction_id}/splits")
def api_split_transaction(
    transaction_id: int,
    data: SplitValidationIn,
    client: BudgetApiClient = Depends(get_client),
):
    with api_errors():
        shares = TransactionService(client).split(
            transaction_id, Money.parse(data.parent_amount), data.drafts()
        )
    return {"splits": [split_share_dict(s) for s in shares]}


@app.delete("/api/transactions/{transaction_id}/splits")
def api_unsplit_transaction(
    transaction_id: int, client: BudgetApiClient = Depends(get_client)
):
    with api_errors():
        TransactionService(client).unsplit(transaction_id)
    return {"ok": True}


@app.get("/api/budgets/{year}/{month}/insights")
def api_insights(year: int, month: int, client: BudgetApiClient = Depends(get_client)):
    period = month_from_path(year, month)
    with api_errors():
        result, trend = InsightsService(client).insights(period)
    return insights_dict(result, trend)


@app.get("/api/recurring")
def api_recurring(
    months: Optional[int] = Query(default=None, ge=1, le=24),
    client: BudgetApiClient = Depends(get_client),
):
    """Recurring payments; ``months`` recomputes funding from that many trailing budgets."""
    with api_errors():
        budgets = []
        if months:
            loaded = InsightsService(client).load_months(
                trailing_months(current_month(), months)
            )
            budgets = [b.budget for b in loaded.values()]
        overview = RecurringService(client).overview(budgets=budgets)
    return recurring_overview_dict(overview)


@app.post("/api/recurring/{payment_id}/contribute")
def api_contribute(
    payment_id: int, data: ContributionIn, client: BudgetApiClient = Depends(get_client)
):
    with api_errors():
        RecurringService(client).contribute(payment_id, Money.parse(data.amount))
        overview = RecurringService(client).overview()
    return recurring_overview_dict(overview)


@app.post("/api/recurring/{payment_id}/reset")
def api_reset_funding(payment_id: int, client: BudgetApiClient = Depends(get_client)):
    with api_errors():
        RecurringService(client).reset_funding(payment_id)
        overview = RecurringService(client).overview()
    return recurring_overview_dict(overview)


def main():
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)


if __name__ == "__main__":
    main()
