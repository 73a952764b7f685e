"""
Date helpers for expirations.

Upstream calls disagree on the expiration format (YYYYMMDD vs YYYY-MM-DD), so
expirations are carried around in both forms.
"""
import re
from datetime import date, datetime
from typing import Any, NamedTuple, Optional

import pandas as pd

from .errors import ValidationError

YMD_RE = re.compile(r"^\d{8}$")
ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")
WEEKLY_MARKER = " (W)"


class ExpirationDate(NamedTuple):
    date: date
    ymd: str
    iso: str


def parse_expiration(value: Any) -> Optional[date]:
    """Parse YYYYMMDD (str or int) or YYYY-MM-DD into a date, None if invalid."""
    if isinstance(value, bool) or value is None:
        return None
    text = str(value).strip()
    if YMD_RE.match(text):
        fmt = "%Y%m%d"
    elif ISO_RE.match(text):
        fmt = "%Y-%m-%d"
    else:
        return None
    try:
        return datetime.strptime(text, fmt).date()
    except ValueError:
        return None


def canonicalize_expiration(value: Any) -> ExpirationDate:
    """
    Accept either expiration form and return both.

    Raises:
        ValidationError: if value is not a real calendar date in either form
    """
    parsed = parse_expiration(value)
    if parsed is None:
        raise ValidationError(f"Expiration must be YYYYMMDD or YYYY-MM-DD, got {value!r}")
    return ExpirationDate(parsed, parsed.strftime("%Y%m%d"), parsed.isoformat())


def today_in_timezone(tz: str) -> date:
    """Current calendar date in a named timezone."""
    try:
        return pd.Timestamp.now(tz=tz).date()
    except (KeyError, ValueError, TypeError) as e:
        raise ValidationError(f"Unknown timezone: {tz!r}") from e


def is_standard_monthly(d: date) -> bool:
    """
    Third Friday of the month.

    The third Friday always falls on day 15-21, so no occurrence counting is
    needed.
    """
    return d.weekday() == 4 and 15 <= d.day <= 21


def label_for_expiration(d: date) -> str:
    """'Sep 19' for monthlies, 'Sep 12 (W)' for everything else."""
    label = f"{MONTH_ABBR[d.month - 1]} {d.day:02d}"
    return label if is_standard_monthly(d) else label + WEEKLY_MARKER
