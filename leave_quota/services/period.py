"""Calendar-month periods that key monthly leave balances."""

from __future__ import annotations

from datetime import date, datetime
from typing import NamedTuple

from leave_quota.exceptions import InvalidDateError


class BalancePeriod(NamedTuple):
    """A calendar month. ``month`` is zero-based (January is 0)."""

    month: int
    year: int

    @classmethod
    def containing(cls, day: date) -> BalancePeriod:
        return cls(month=day.month - 1, year=day.year)

    def previous(self) -> BalancePeriod:
        if self.month == 0:
            return BalancePeriod(month=11, year=self.year - 1)
        return BalancePeriod(month=self.month - 1, year=self.year)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month + 1:02d}"


def coerce_reference_date(value: object) -> date:
    """Interpret ``value`` as a calendar date.

    Accepts ``date``, ``datetime`` (its own calendar date, no timezone
    conversion) and ISO-8601 strings of either form. Anything else raises
    ``InvalidDateError``; a missing value is never replaced by today.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            raise InvalidDateError(value) from None
    raise InvalidDateError(value)
