"""Calendar helpers for splitting billing windows into calendar months."""

import calendar
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class MonthWindow:
    """Intersection of a billing window with one calendar month."""

    year: int
    month: int
    start: date
    end: date

    @property
    def days_in_month(self) -> int:
        return days_in_month(self.year, self.month)

    @property
    def label(self) -> str:
        return month_label(self.year, self.month)

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given calendar month (handles leap years)."""
    return calendar.monthrange(year, month)[1]


def month_label(year: int, month: int) -> str:
    """Human label such as "February 2024"."""
    return f"{calendar.month_name[month]} {year}"


def add_months(year: int, month: int, delta: int) -> tuple[int, int]:
    month_value = month + delta
    year_value = year + (month_value - 1) // 12
    month_value = (month_value - 1) % 12 + 1
    return year_value, month_value


def iter_month_windows(start_date: date, end_date: date) -> list[MonthWindow]:
    """Split [start_date, end_date] into per-month windows in chronological order.

    Args:
        start_date: First day of the billing window (inclusive)
        end_date: Last day of the billing window (inclusive)

    Returns:
        One MonthWindow per calendar month touched; empty if end_date < start_date

    Example:
        Jan 28 - Feb 2 gives [Jan 28 - Jan 31, Feb 1 - Feb 2].
    """
    windows: list[MonthWindow] = []
    if end_date < start_date:
        return windows

    year, month = start_date.year, start_date.month
    while (year, month) <= (end_date.year, end_date.month):
        month_start = date(year, month, 1)
        month_end = date(year, month, days_in_month(year, month))
        windows.append(
            MonthWindow(
                year=year,
                month=month,
                start=max(start_date, month_start),
                end=min(end_date, month_end),
            )
        )
        year, month = add_months(year, month, 1)
    return windows


__all__ = ["MonthWindow", "days_in_month", "month_label", "add_months", "iter_month_windows"]
