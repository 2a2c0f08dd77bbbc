from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Sequence

from money import CENT, InvalidAmount, Money
from models import SplitShare

MIN_SPLIT_SHARES = 2


class SplitNotSubmittable(ValueError):
    pass


@dataclass(frozen=True)
class SplitDraft:
    """One row of a split being edited; ``amount`` is the text the user typed."""

    budget_item_id: Optional[int] = None
    amount: str = ""
    description: str = ""
    is_non_earned: bool = False

    def parsed_amount(self) -> Optional[Money]:
        try:
            return Money.parse(self.amount)
        except InvalidAmount:
            return None


@dataclass(frozen=True)
class SplitAllocation:
    budget_item_id: int
    amount: Money
    description: Optional[str] = None
    is_non_earned: bool = False


@dataclass(frozen=True)
class SplitValidation:
    total: Money
    remaining: Money
    balanced: bool
    valid_share_count: int

    @property
    def can_submit(self) -> bool:
        return self.balanced and self.valid_share_count >= MIN_SPLIT_SHARES


def validate_split(parent_amount: Money, shares: Sequence[SplitDraft]) -> SplitValidation:
    """Balance of the rows that would be sent; rows without an item or a positive amount do not count."""
    sendable = allocations(shares)
    total = Money.sum(a.amount for a in sendable)
    remaining = parent_amount - total
    return SplitValidation(
        total=total,
        remaining=remaining,
        balanced=abs(remaining.amount) < CENT,
        valid_share_count=len(sendable),
    )


def apply_remainder(
    parent_amount: Money, shares: Sequence[SplitDraft], index: int
) -> tuple[SplitDraft, ...]:
    """Give the remaining amount to ``shares[index]``; a non-positive result leaves it untouched."""
    others = [share for i, share in enumerate(shares) if i != index]
    updated = parent_amount - validate_split(parent_amount, others).total
    if not updated.is_positive():
        return tuple(shares)
    result = list(shares)
    result[index] = replace(shares[index], amount=updated.to_string())
    return tuple(result)


def blank_drafts() -> tuple[SplitDraft, ...]:
    return tuple(SplitDraft() for _ in range(MIN_SPLIT_SHARES))


def drafts_from_shares(shares: Sequence[SplitShare]) -> tuple[SplitDraft, ...]:
    if not shares:
        return blank_drafts()
    return tuple(
        SplitDraft(
            budget_item_id=share.budget_item_id,
            amount=share.amount.to_string(),
            description=share.description or "",
            is_non_earned=share.is_non_earned,
        )
        for share in shares
    )


def allocations(shares: Sequence[SplitDraft]) -> list[SplitAllocation]:
    """Rows that can be sent to the server: item chosen and a positive amount."""
    out: list[SplitAllocation] = []
    for share in shares:
        amount = share.parsed_amount()
        if share.budget_item_id is None or amount is None or not amount.is_positive():
            continue
        out.append(
            SplitAllocation(
                budget_item_id=share.budget_item_id,
                amount=amount,
                description=share.description or None,
                is_non_earned=share.is_non_earned,
            )
        )
    return out
