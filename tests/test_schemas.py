import logging
from datetime import date

from money import Money
from schemas import (
    EPOCH_DATE,
    BudgetPayload,
    CreateSplitsIn,
    CreateTransactionIn,
    RecurringPaymentPayload,
    SplitInputIn,
    TransactionPayload,
    UpdateTransactionIn,
)
from models import PaymentFrequency, TransactionType


def _budget_json(categories):
    return {
        "id": 7,
        "userId": "abc",
        "month": 0,
        "year": 2025,
        "buffer": "250.5",
        "createdAt": "2025-01-01T08:00:00.000Z",
        "categories": categories,
    }


def _food(items=None, *, id=1, category_type="food"):
    return {
        "id": id,
        "budgetId": 7,
        "categoryType": category_type,
        "name": "Food",
        "categoryOrder": None,
        "emoji": None,
        "items": items or [],
    }


def test_budget_decodes_nested_shapes() -> None:
    payload = _budget_json(
        [
            _food(
                [
                    {
                        "id": 10,
                        "categoryId": 1,
                        "name": "Groceries",
                        "planned": "400.00",
                        "order": 0,
                        "transactions": [
                            {
                                "id": 1,
                                "budgetItemId": 10,
                                "date": "2025-01-04",
                                "description": "Market",
                                "amount": "42.10",
                                "type": "expense",
                                "merchant": "Market",
                                "deletedAt": None,
                            }
                        ],
                        "splitTransactions": [
                            {
                                "id": 3,
                                "parentTransactionId": 99,
                                "budgetItemId": 10,
                                "amount": "15",
                                "parentTransaction": {
                                    "id": 99,
                                    "date": "2025-01-06",
                                    "description": "Costco",
                                    "amount": "60",
                                    "type": "expense",
                                },
                            }
                        ],
                    }
                ]
            )
        ]
    )
    b = BudgetPayload.model_validate(payload).to_domain()
    assert b.buffer == Money.parse("250.50")
    assert b.user_id == "abc"
    groceries = b.categories["food"].items[0]
    assert groceries.planned == Money.parse("400")
    assert groceries.transactions[0].date == date(2025, 1, 4)
    assert groceries.transactions[0].type == TransactionType.expense
    split = groceries.split_transactions[0]
    assert split.parent_type == TransactionType.expense
    assert split.parent_transaction.id == 99


def test_unparsable_fields_fall_back_with_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        txn = TransactionPayload.model_validate(
            {"id": 1, "date": "soon", "amount": "12,00", "type": "income"}
        ).to_domain()
    assert txn.amount == Money.zero()
    assert txn.date == EPOCH_DATE
    assert "12,00" in caplog.text


def test_iso_instant_dates_reduce_to_utc_day() -> None:
    txn = TransactionPayload.model_validate(
        {"id": 1, "date": "2025-01-31T23:30:00-02:00", "amount": 5, "type": "expense"}
    ).to_domain()
    assert txn.date == date(2025, 2, 1)
    assert txn.amount == Money.parse("5")


def test_deleted_at_marks_soft_delete() -> None:
    txn = TransactionPayload.model_validate(
        {"id": 1, "date": "2025-01-02", "amount": "1", "type": "expense", "deletedAt": "2025-01-03T10:00:00Z"}
    ).to_domain()
    assert txn.is_deleted


def test_duplicate_category_types_keep_first(caplog) -> None:
    payload = _budget_json([_food(id=1), _food(id=2, category_type=" FOOD ")])
    with caplog.at_level(logging.WARNING, logger="schemas"):
        b = BudgetPayload.model_validate(payload).to_domain()
    assert list(b.categories) == ["food"]
    assert b.categories["food"].id == 1
    assert "duplicate" in caplog.text


def test_custom_category_order_comes_from_category_order() -> None:
    payload = _budget_json([{**_food(category_type="pets"), "categoryOrder": 3}])
    b = BudgetPayload.model_validate(payload).to_domain()
    assert b.categories["pets"].order == 3


def test_recurring_payment_frequency_values() -> None:
    payment = RecurringPaymentPayload.model_validate(
        {
            "id": 1,
            "name": "Car insurance",
            "amount": "600.00",
            "frequency": "semi-annually",
            "nextDueDate": "2025-06-01",
            "fundedAmount": "120",
            "categoryType": "insurance",
            "isActive": True,
        }
    ).to_domain()
    assert payment.frequency == PaymentFrequency.semi_annually
    assert payment.funded_amount == Money.parse("120")


def test_update_body_omits_unset_fields() -> None:
    body = UpdateTransactionIn(id=5, budget_item_id=10).body()
    assert body == {"id": 5, "budgetItemId": 10}


def test_create_body_sends_money_as_string() -> None:
    body = CreateTransactionIn(
        budget_item_id=1,
        date=date(2025, 1, 9),
        description="Coffee",
        amount=Money.parse("4.5"),
        type=TransactionType.expense,
    ).body()
    assert body == {
        "budgetItemId": 1,
        "date": "2025-01-09",
        "description": "Coffee",
        "amount": "4.50",
        "type": "expense",
    }


def test_split_body_uses_transaction_id() -> None:
    body = CreateSplitsIn(
        parent_transaction_id=9,
        splits=[
            SplitInputIn(budget_item_id=1, amount=Money.parse("6")),
            SplitInputIn(budget_item_id=2, amount=Money.parse("4"), is_non_earned=True),
        ],
    ).body()
    assert body["transactionId"] == 9
    assert body["splits"][1] == {"budgetItemId": 2, "amount": "4.00", "isNonEarned": True}
