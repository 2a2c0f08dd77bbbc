from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Iterable, Union

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _to_cents(amount: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class InvalidAmount(ValueError):
    pass


@dataclass(frozen=True, order=True)
class Money:
    """Exact currency amount backed by :class:`~decimal.Decimal`.

    Values keep whatever precision they were parsed or computed with; only the
    string form pads to two fraction digits so that ``"1234.5"`` is sent back
    as ``"1234.50"``.
    """

    amount: Decimal = Decimal("0")

    @classmethod
    def zero(cls) -> Money:
        return cls(Decimal("0"))

    @classmethod
    def parse(cls, value: Union[str, int, float, Decimal]) -> Money:
        if isinstance(value, bool):
            raise InvalidAmount(f"Invalid decimal: {value!r}")
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, int):
            amount = Decimal(value)
        elif isinstance(value, float):
            # JSON numbers arrive as floats; go through str to keep the literal digits
            amount = Decimal(str(value))
        else:
            clean = str(value).strip()
            if not clean:
                raise InvalidAmount("Invalid decimal: empty string")
            if "_" in clean:
                raise InvalidAmount(f"Invalid decimal: {value!r}")
            try:
                amount = Decimal(clean)
            except InvalidOperation as exc:
                raise InvalidAmount(f"Invalid decimal: {value!r}") from exc
        if not amount.is_finite():
            raise InvalidAmount(f"Invalid decimal: {value!r}")
        return cls(amount)

    @classmethod
    def sum(cls, values: Iterable[Money]) -> Money:
        total = Decimal("0")
        for value in values:
            total += value.amount
        return cls(total)

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount)

    def __neg__(self) -> Money:
        return Money(-self.amount)

    def __abs__(self) -> Money:
        return Money(abs(self.amount))

    def negate(self) -> Money:
        return -self

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def clamp_zero(self) -> Money:
        """``max(0, self)``."""
        if self.amount < 0:
            return Money.zero()
        return self

    def scale(self, factor: Union[int, Decimal]) -> Money:
        return Money(self.amount * Decimal(factor))

    def divide(self, divisor: int) -> Money:
        return Money(self.amount / Decimal(divisor))

    def rounded(self) -> Money:
        return Money(_to_cents(self.amount))

    def ratio(self, other: Money) -> float:
        """Display ratio ``self / other``; 0.0 when ``other`` is zero."""
        if other.amount == 0:
            return 0.0
        return float(self.amount / other.amount)

    def to_string(self) -> str:
        amount = self.amount
        exponent = amount.as_tuple().exponent
        if isinstance(exponent, int) and exponent > -2:
            amount = _to_cents(amount)
        text = format(amount, "f")
        if text.startswith("-") and Decimal(text) == 0:
            text = text[1:]
        return text

    def __str__(self) -> str:
        return self.to_string()

    def __float__(self) -> float:
        return float(self.amount)


def parse_money_or_zero(value: object, *, field: str = "amount") -> Money:
    if value is None:
        return Money.zero()
    try:
        return Money.parse(value)  # type: ignore[arg-type]
    except InvalidAmount:
        logger.warning("unparsable %s %r, substituting 0", field, value)
        return Money.zero()
