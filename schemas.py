"""Wire shapes exchanged with the budget API.

Inbound payloads are decoded leniently: an amount or date that does not parse
is replaced by a safe default and logged, so one bad field never blanks a whole
budget. Outbound request bodies send money as decimal strings and omit unset
fields entirely.
"""

from __future__ import annotations

import datetime as dt
import logging
from datetime import date, datetime, timezone
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from models import (
    Budget,
    Category,
    Item,
    PaymentFrequency,
    RecurringPayment,
    SplitShare,
    Transaction,
    TransactionType,
    category_key,
)
from money import Money, parse_money_or_zero
from splits import SplitDraft

logger = logging.getLogger(__name__)

EPOCH_DATE = date(1970, 1, 1)
EPOCH_INSTANT = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_instant(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("unparsable timestamp %r, substituting epoch", value)
        return EPOCH_INSTANT
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_calendar_date(value: Any) -> date:
    """``YYYY-MM-DD`` first, then a full ISO instant reduced to its UTC day."""
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).date() if value.tzinfo else value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("unparsable date %r, substituting %s", value, EPOCH_DATE)
        return EPOCH_DATE
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


MoneyStr = Annotated[
    Money, PlainSerializer(lambda value: value.to_string(), return_type=str)
]


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )


class TransactionPayload(_Payload):
    id: int
    budget_item_id: Optional[int] = None
    linked_account_id: Optional[int] = None
    date: dt.date
    description: str = ""
    amount: Money = Field(default_factory=Money.zero)
    type: TransactionType
    merchant: Optional[str] = None
    deleted_at: Optional[datetime] = None
    is_non_earned: bool = False
    suggested_budget_item_id: Optional[int] = None
    splits: Optional[list[SplitPayload]] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Money:
        return parse_money_or_zero(value)

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, value: Any) -> date:
        return parse_calendar_date(value)

    @field_validator("deleted_at", mode="before")
    @classmethod
    def _deleted_at(cls, value: Any) -> Optional[datetime]:
        return parse_instant(value)

    @field_validator("is_non_earned", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            date=self.date,
            description=self.description,
            amount=self.amount,
            type=self.type,
            budget_item_id=self.budget_item_id,
            linked_account_id=self.linked_account_id,
            merchant=self.merchant,
            deleted_at=self.deleted_at,
            is_non_earned=self.is_non_earned,
            suggested_budget_item_id=self.suggested_budget_item_id,
            splits=tuple(s.to_domain() for s in self.splits or []),
        )


class SplitPayload(_Payload):
    id: int
    parent_transaction_id: int
    budget_item_id: int
    amount: Money = Field(default_factory=Money.zero)
    description: Optional[str] = None
    is_non_earned: bool = False
    parent_transaction: Optional[TransactionPayload] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> Money:
        return parse_money_or_zero(value, field="split amount")

    @field_validator("is_non_earned", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return bool(value)

    def to_domain(self) -> SplitShare:
        parent = self.parent_transaction.to_domain() if self.parent_transaction else None
        return SplitShare(
            id=self.id,
            parent_transaction_id=self.parent_transaction_id,
            budget_item_id=self.budget_item_id,
            amount=self.amount,
            description=self.description,
            is_non_earned=self.is_non_earned,
            parent_type=parent.type if parent else None,
            parent_transaction=parent,
        )


class ItemPayload(_Payload):
    id: int
    category_id: int
    name: str
    planned: Money = Field(default_factory=Money.zero)
    order: int = 0
    recurring_payment_id: Optional[int] = None
    transactions: list[TransactionPayload] = Field(default_factory=list)
    split_transactions: Optional[list[SplitPayload]] = None

    @field_validator("planned", mode="before")
    @classmethod
    def _planned(cls, value: Any) -> Money:
        return parse_money_or_zero(value, field="planned")

    @field_validator("order", mode="before")
    @classmethod
    def _order(cls, value: Any) -> int:
        return 0 if value is None else value

    @field_validator("transactions", mode="before")
    @classmethod
    def _transactions(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_domain(self) -> Item:
        return Item(
            id=self.id,
            category_id=self.category_id,
            name=self.name,
            planned=self.planned,
            order=self.order,
            recurring_payment_id=self.recurring_payment_id,
            transactions=tuple(t.to_domain() for t in self.transactions),
            split_transactions=tuple(s.to_domain() for s in self.split_transactions or []),
        )


class CategoryPayload(_Payload):
    id: int
    budget_id: int
    category_type: str = ""
    name: str = ""
    order: Optional[int] = Field(default=None, alias="categoryOrder")
    emoji: Optional[str] = None
    items: list[ItemPayload] = Field(default_factory=list)

    @field_validator("category_type", "name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_domain(self) -> Category:
        return Category(
            id=self.id,
            budget_id=self.budget_id,
            category_type=self.category_type,
            name=self.name,
            order=self.order,
            emoji=self.emoji,
            items=tuple(i.to_domain() for i in self.items),
        )


class BudgetPayload(_Payload):
    id: int
    user_id: str = ""
    month: int = Field(..., ge=0, le=11)
    year: int = Field(..., ge=1970, le=3000)
    buffer: Money = Field(default_factory=Money.zero)
    created_at: datetime = EPOCH_INSTANT
    categories: list[CategoryPayload] = Field(default_factory=list)

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("buffer", mode="before")
    @classmethod
    def _buffer(cls, value: Any) -> Money:
        return parse_money_or_zero(value, field="buffer")

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at(cls, value: Any) -> datetime:
        return parse_instant(value) or EPOCH_INSTANT

    @field_validator("categories", mode="before")
    @classmethod
    def _categories(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_domain(self) -> Budget:
        categories: list[Category] = []
        seen: set[str] = set()
        for payload in self.categories:
            key = category_key(payload.category_type)
            if key in seen:
                logger.warning(
                    "budget %s: dropping duplicate category %r (id=%s)",
                    self.id,
                    payload.category_type,
                    payload.id,
                )
                continue
            seen.add(key)
            categories.append(payload.to_domain())
        return Budget.from_categories(
            id=self.id,
            user_id=self.user_id,
            month=self.month,
            year=self.year,
            buffer=self.buffer,
            created_at=self.created_at,
            categories=categories,
        )


class RecurringPaymentPayload(_Payload):
    id: int
    name: str
    amount: Money = Field(default_factory=Money.zero)
    frequency: PaymentFrequency
    next_due_date: date
    funded_amount: Money = Field(default_factory=Money.zero)
    category_type: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    @field_validator("amount", "funded_amount", mode="before")
    @classmethod
    def _money(cls, value: Any) -> Money:
        return parse_money_or_zero(value)

    @field_validator("next_due_date", mode="before")
    @classmethod
    def _due(cls, value: Any) -> date:
        return parse_calendar_date(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _created_at(cls, value: Any) -> Optional[datetime]:
        return parse_instant(value)

    def to_domain(self) -> RecurringPayment:
        return RecurringPayment(
            id=self.id,
            name=self.name,
            amount=self.amount,
            frequency=self.frequency,
            next_due_date=self.next_due_date,
            funded_amount=self.funded_amount,
            category_type=self.category_type,
            is_active=self.is_active,
            created_at=self.created_at,
        )


TransactionPayload.model_rebuild()


# Request bodies


class _Request(_Payload):
    def body(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CreateTransactionIn(_Request):
    budget_item_id: int
    date: dt.date
    description: str = Field(..., min_length=1, max_length=200)
    amount: MoneyStr
    type: TransactionType
    merchant: Optional[str] = None
    is_non_earned: Optional[bool] = None


class UpdateTransactionIn(_Request):
    id: int
    budget_item_id: Optional[int] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=200)
    amount: Optional[MoneyStr] = None
    type: Optional[TransactionType] = None
    merchant: Optional[str] = None
    is_non_earned: Optional[bool] = None


class RestoreTransactionIn(_Request):
    id: int
    action: Literal["restore"] = "restore"


class SplitInputIn(_Request):
    budget_item_id: int
    amount: MoneyStr
    description: Optional[str] = None
    is_non_earned: Optional[bool] = None


class CreateSplitsIn(_Request):
    parent_transaction_id: int = Field(..., alias="transactionId")
    splits: list[SplitInputIn] = Field(..., min_length=2)


class UpdateBufferIn(_Request):
    id: int
    buffer: MoneyStr


class CopyBudgetIn(_Request):
    from_month: int = Field(..., ge=0, le=11)
    from_year: int
    to_month: int = Field(..., ge=0, le=11)
    to_year: int


class ResetBudgetIn(_Request):
    budget_id: int
    mode: Literal["zero", "replace"]


class CreateItemIn(_Request):
    category_id: int
    name: str = Field(..., min_length=1, max_length=100)
    planned: MoneyStr


class UpdateItemIn(_Request):
    id: int
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    planned: Optional[MoneyStr] = None


class ReorderItemIn(_Request):
    id: int
    order: int


class ReorderItemsIn(_Request):
    items: list[ReorderItemIn]


class CreateCategoryIn(_Request):
    budget_id: int
    name: str = Field(..., min_length=1, max_length=100)
    emoji: str


class CreateRecurringIn(_Request):
    name: str = Field(..., min_length=1, max_length=120)
    amount: MoneyStr
    frequency: PaymentFrequency
    next_due_date: date
    category_type: Optional[str] = None
    budget_item_id: Optional[int] = None


class UpdateRecurringIn(_Request):
    id: int
    name: Optional[str] = None
    amount: Optional[MoneyStr] = None
    frequency: Optional[PaymentFrequency] = None
    next_due_date: Optional[date] = None
    category_type: Optional[str] = None
    is_active: Optional[bool] = None


class ContributeIn(_Request):
    id: int
    amount: MoneyStr


class ResetFundingIn(_Request):
    id: int


# Bodies accepted by the local JSON app


class SplitDraftIn(_Payload):
    budget_item_id: Optional[int] = None
    amount: str = ""
    description: str = ""
    is_non_earned: bool = False


class SplitValidationIn(_Payload):
    parent_amount: str
    shares: list[SplitDraftIn] = Field(default_factory=list)

    def drafts(self) -> list[SplitDraft]:
        return [
            SplitDraft(
                budget_item_id=s.budget_item_id,
                amount=s.amount,
                description=s.description,
                is_non_earned=s.is_non_earned,
            )
            for s in self.shares
        ]


class BufferIn(_Payload):
    buffer: str


class CategorizeIn(_Payload):
    budget_item_id: int


class ContributionIn(_Payload):
    amount: str
