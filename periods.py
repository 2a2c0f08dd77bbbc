from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def days_in_month(year: int, month: int) -> int:
    """Days in a calendar month, ``month`` 1-based."""
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - date(year, month, 1)).days


@dataclass(frozen=True, order=True)
class BudgetMonth:
    """A budget month as the API addresses it: ``month`` is 0-based (0 = January)."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 0 <= self.month <= 11:
            raise ValueError(f"Month must be between 0 and 11, got {self.month}")

    @classmethod
    def from_date(cls, day: date) -> "BudgetMonth":
        return cls(year=day.year, month=day.month - 1)

    @property
    def start(self) -> date:
        return date(self.year, self.month + 1, 1)

    @property
    def end(self) -> date:
        return self.start + timedelta(days=self.days - 1)

    @property
    def days(self) -> int:
        return days_in_month(self.year, self.month + 1)

    @property
    def label(self) -> str:
        return f"{MONTH_NAMES[self.month]} {self.year}"

    @property
    def short_label(self) -> str:
        return f"{MONTH_NAMES[self.month][:3]} {self.year}"

    def previous(self) -> "BudgetMonth":
        if self.month == 0:
            return BudgetMonth(year=self.year - 1, month=11)
        return BudgetMonth(year=self.year, month=self.month - 1)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def day_progress(self, today: Optional[date] = None) -> int:
        """Day of month reached so far: today's day inside this month, otherwise the full month."""
        today = today or utc_today()
        if BudgetMonth.from_date(today) == self:
            return today.day
        return self.days

    def sync_window(self, days: int = 7) -> Period:
        return Period(
            "sync_window",
            self.start - timedelta(days=days),
            self.end + timedelta(days=days),
        )


def trailing_months(current: BudgetMonth, count: int) -> list[BudgetMonth]:
    """``count`` months ending at ``current``, oldest first."""
    months = [current]
    while len(months) < count:
        months.append(months[-1].previous())
    return list(reversed(months))
