"""Helpers for the `YYYY-MM` month keys used by financial reporting."""

import re
from datetime import date
from typing import Optional

from ..exceptions import BusinessRuleError

MONTH_RE = re.compile(r"\d{4}-\d{2}")


def today_iso() -> str:
    return date.today().isoformat()


def current_month() -> str:
    return date.today().strftime("%Y-%m")


def resolve_month(month: Optional[str]) -> str:
    """Return `month` when well formed, or the current month when blank.

    Raises `BusinessRuleError` for anything that is not `YYYY-MM`.
    """
    if month is None or not month.strip():
        return current_month()
    month = month.strip()
    if not MONTH_RE.fullmatch(month):
        raise BusinessRuleError("Invalid month format. Use YYYY-MM")
    return month


def month_of(date_str: str) -> str:
    """Derive the `YYYY-MM` key of an ISO date string."""
    try:
        return date.fromisoformat(date_str).strftime("%Y-%m")
    except (TypeError, ValueError):
        raise BusinessRuleError(f"Invalid date: {date_str!r}. Use YYYY-MM-DD")
