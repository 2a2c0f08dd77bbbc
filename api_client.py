from __future__ import annotations

import json
import logging
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode
from urllib.request import Request, urlopen

from pydantic import ValidationError

from config import Settings, get_settings
from models import Budget, RecurringPayment, SplitShare, Transaction
from periods import BudgetMonth
from schemas import (
    BudgetPayload,
    ContributeIn,
    CopyBudgetIn,
    CreateCategoryIn,
    CreateItemIn,
    CreateRecurringIn,
    CreateSplitsIn,
    CreateTransactionIn,
    RecurringPaymentPayload,
    ReorderItemsIn,
    ResetBudgetIn,
    ResetFundingIn,
    RestoreTransactionIn,
    SplitPayload,
    TransactionPayload,
    UpdateBufferIn,
    UpdateItemIn,
    UpdateRecurringIn,
    UpdateTransactionIn,
)

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class Unauthorized(ApiError):
    pass


class Forbidden(ApiError):
    pass


class NotFound(ApiError):
    pass


class ServerError(ApiError):
    pass


class NetworkError(ApiError):
    pass


class DecodingError(ApiError):
    pass


def _server_message(raw: bytes) -> Optional[str]:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None
    if not isinstance(payload, dict):
        return None
    message = payload.get("error") or payload.get("message")
    return message if isinstance(message, str) else None


def _error_for_status(status: int, message: Optional[str]) -> ApiError:
    if status == 401:
        return Unauthorized(message or "Not signed in", status=status)
    if status == 403:
        return Forbidden(message or "Access denied", status=status)
    if status == 404:
        return NotFound(message or "Resource not found", status=status)
    if status >= 500:
        return ServerError(message or f"Server error ({status})", status=status)
    return ApiError(message or f"Request failed ({status})", status=status)


class BudgetApiClient:
    """Thin JSON client for the budget server.

    Every call returns domain objects; transport and HTTP failures surface as
    :class:`ApiError` subclasses.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = (base_url or self.settings.api_base_url).rstrip("/")
        self.token = token if token is not None else self.settings.api_token
        self.timeout = timeout if timeout is not None else self.settings.api_timeout_secs

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: Optional[dict[str, Any]] = None,
        body: Optional[dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{urlencode(query)}"
        headers = {"Accept": "application/json"}
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        logger.info("%s %s", method, url)
        req = Request(url, data=data, headers=headers, method=method)
        try:
            with urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except HTTPError as exc:
            raise _error_for_status(exc.code, _server_message(exc.read())) from exc
        except (URLError, TimeoutError) as exc:
            raise NetworkError(f"{method} {path} failed: {exc}") from exc

        if not raw:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodingError(f"Failed to parse response from {path}") from exc

    def _decode(self, model: Any, payload: Any, path: str) -> Any:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise DecodingError(f"Unexpected response shape from {path}: {exc}") from exc

    def _transactions(self, payload: Any, path: str) -> list[Transaction]:
        return [self._decode(TransactionPayload, p, path).to_domain() for p in payload or []]

    # Budgets

    def get_budget(self, month: BudgetMonth) -> Budget:
        path = "/api/budgets"
        payload = self._request(
            "GET", path, query={"month": month.month, "year": month.year}
        )
        return self._decode(BudgetPayload, payload, path).to_domain()

    def update_buffer(self, request: UpdateBufferIn) -> Budget:
        payload = self._request("PUT", "/api/budgets", body=request.body())
        return self._decode(BudgetPayload, payload, "/api/budgets").to_domain()

    def copy_budget(self, request: CopyBudgetIn) -> Budget:
        path = "/api/budgets/copy"
        payload = self._request("POST", path, body=request.body())
        return self._decode(BudgetPayload, payload, path).to_domain()

    def reset_budget(self, request: ResetBudgetIn) -> None:
        self._request("POST", "/api/budgets/reset", body=request.body())

    # Items and categories

    def create_item(self, request: CreateItemIn) -> Any:
        return self._request("POST", "/api/budget-items", body=request.body())

    def update_item(self, request: UpdateItemIn) -> Any:
        return self._request("PUT", "/api/budget-items", body=request.body())

    def delete_item(self, item_id: int) -> None:
        self._request("DELETE", "/api/budget-items", query={"id": item_id})

    def reorder_items(self, request: ReorderItemsIn) -> None:
        self._request("PUT", "/api/budget-items/reorder", body=request.body())

    def create_category(self, request: CreateCategoryIn) -> Any:
        return self._request("POST", "/api/budget-categories", body=request.body())

    def delete_category(self, category_id: int) -> None:
        self._request("DELETE", "/api/budget-categories", query={"id": category_id})

    # Transactions

    def get_uncategorized_transactions(self, month: BudgetMonth) -> list[Transaction]:
        path = "/api/teller/sync"
        payload = self._request(
            "GET", path, query={"month": month.month, "year": month.year}
        )
        return self._transactions(payload, path)

    def get_deleted_transactions(self, month: BudgetMonth) -> list[Transaction]:
        path = "/api/transactions"
        payload = self._request(
            "GET",
            path,
            query={"deleted": "true", "month": month.month, "year": month.year},
        )
        return self._transactions(payload, path)

    def create_transaction(self, request: CreateTransactionIn) -> Transaction:
        path = "/api/transactions"
        payload = self._request("POST", path, body=request.body())
        return self._decode(TransactionPayload, payload, path).to_domain()

    def update_transaction(self, request: UpdateTransactionIn) -> Transaction:
        path = "/api/transactions"
        payload = self._request("PUT", path, body=request.body())
        return self._decode(TransactionPayload, payload, path).to_domain()

    def delete_transaction(self, transaction_id: int) -> None:
        self._request("DELETE", "/api/transactions", query={"id": transaction_id})

    def restore_transaction(self, transaction_id: int) -> Transaction:
        path = "/api/transactions"
        body = RestoreTransactionIn(id=transaction_id).body()
        payload = self._request("PATCH", path, body=body)
        return self._decode(TransactionPayload, payload, path).to_domain()

    def create_splits(self, request: CreateSplitsIn) -> list[SplitShare]:
        path = "/api/transactions/split"
        payload = self._request("POST", path, body=request.body()) or {}
        return [
            self._decode(SplitPayload, p, path).to_domain()
            for p in payload.get("splits") or []
        ]

    def delete_splits(
        self, parent_transaction_id: int, budget_item_id: Optional[int] = None
    ) -> None:
        query: dict[str, Any] = {"transactionId": parent_transaction_id}
        if budget_item_id is not None:
            query["budgetItemId"] = budget_item_id
        self._request("DELETE", "/api/transactions/split", query=query)

    # Recurring payments

    def _payment(self, payload: Any, path: str) -> RecurringPayment:
        return self._decode(RecurringPaymentPayload, payload, path).to_domain()

    def get_recurring_payments(self) -> list[RecurringPayment]:
        path = "/api/recurring-payments"
        payload = self._request("GET", path)
        return [self._payment(p, path) for p in payload or []]

    def create_recurring_payment(self, request: CreateRecurringIn) -> RecurringPayment:
        path = "/api/recurring-payments"
        return self._payment(self._request("POST", path, body=request.body()), path)

    def update_recurring_payment(self, request: UpdateRecurringIn) -> RecurringPayment:
        path = "/api/recurring-payments"
        return self._payment(self._request("PUT", path, body=request.body()), path)

    def delete_recurring_payment(self, payment_id: int) -> None:
        self._request("DELETE", "/api/recurring-payments", query={"id": payment_id})

    def contribute(self, request: ContributeIn) -> RecurringPayment:
        path = "/api/recurring-payments/contribute"
        payload = self._request("POST", path, body=request.body()) or {}
        return self._payment(payload.get("payment"), path)

    def reset_funding(self, payment_id: int) -> RecurringPayment:
        path = "/api/recurring-payments/reset"
        body = ResetFundingIn(id=payment_id).body()
        payload = self._request("POST", path, body=body) or {}
        return self._payment(payload.get("payment"), path)
