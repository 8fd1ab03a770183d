"""
Date helpers for citation text.

Source dates are free-form strings and stay that way in the data model;
these helpers only render them:

    '06.01.1759'  -> '6 January 1759'
    'n 1730'      -> 'abt 1730'
    '73'          -> '1773'   (century inferred from a birth year)
"""

from __future__ import annotations

import re
from typing import Optional

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_FULL_DATE_RE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{2}|\d{4})$")
_YEAR_RE = re.compile(r"^\d{4}$")
_TWO_DIGIT_RE = re.compile(r"^\d{2}$")
_ABOUT_RE = re.compile(r"^n\s*(\d{4})$")
_ANY_YEAR_RE = re.compile(r"(?<!\d)(\d{4})(?!\d)")

# plausible age at marriage
MIN_MARRIAGE_AGE = 15
MAX_MARRIAGE_AGE = 50
DEFAULT_CENTURY = 1700


def is_full_date(date: Optional[str]) -> bool:
    """dd.mm.yyyy"""
    if not date:
        return False
    m = _FULL_DATE_RE.match(date.strip())
    return bool(m and len(m.group(3)) == 4)


def is_year_only(date: Optional[str]) -> bool:
    """'1773' or the two-digit '73' nuclear records print for marriages."""
    if not date:
        return False
    d = date.strip()
    return bool(_YEAR_RE.match(d) or _TWO_DIGIT_RE.match(d))


def extract_year(date: Optional[str]) -> Optional[int]:
    if not date:
        return None
    m = _ANY_YEAR_RE.search(date.strip())
    return int(m.group(1)) if m else None


def infer_century(two_digit_year: int, birth_year: Optional[int] = None) -> int:
    """
    Expand a two-digit marriage year.

    Tries the 1600s, 1700s and 1800s and takes the first that puts the
    marriage at age 15-50; failing that, the one closest to that range.
    Without a birth year the 1700s are assumed.
    """
    if birth_year is None:
        return DEFAULT_CENTURY + two_digit_year

    candidates = [century + two_digit_year for century in (1600, 1700, 1800)]
    for year in candidates:
        if MIN_MARRIAGE_AGE <= year - birth_year <= MAX_MARRIAGE_AGE:
            return year

    def distance(year: int) -> int:
        age = year - birth_year
        return MIN_MARRIAGE_AGE - age if age < MIN_MARRIAGE_AGE else age - MAX_MARRIAGE_AGE

    return min(candidates, key=distance)


def format_date(date: str, birth_year: Optional[int] = None) -> str:
    d = date.strip()

    m = _ABOUT_RE.match(d)
    if m:
        return f"abt {m.group(1)}"

    m = _FULL_DATE_RE.match(d)
    if m:
        day, month, year = int(m.group(1)), int(m.group(2)), m.group(3)
        if 1 <= month <= 12:
            if len(year) == 2:
                year = str(infer_century(int(year), birth_year))
            return f"{day} {MONTHS[month - 1]} {year}"

    return d


def format_marriage_date(date: str, birth_year: Optional[int] = None) -> str:
    """Full dates are spelled out, two-digit years expanded, anything else kept."""
    d = date.strip()
    if "." in d:
        return format_date(d, birth_year)
    if _TWO_DIGIT_RE.match(d):
        return str(infer_century(int(d), birth_year))
    return format_date(d, birth_year)
