"""Shared scope-parameter parsing for governance routes and services.

parse_shift_date:      strict YYYY-MM-DD (raises ValidationError)
normalize_shift_code:  case-insensitive match onto the fixed shift set
clean_text:            trimmed string or None
"""
import re
from datetime import date

from readiness_gov.core.exceptions import ValidationError

SHIFT_CODES = ("Day", "Evening", "Night", "S1", "S2", "S3")

_SHIFT_LOOKUP = {code.lower(): code for code in SHIFT_CODES}
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def clean_text(value):
    """Return a stripped string, or None for missing / blank / non-string input."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_shift_date(value, field="date"):
    """Parse a ``YYYY-MM-DD`` shift date.

    Accepts ``date`` objects unchanged. Anything else that is not a real
    calendar date in that exact layout raises ValidationError.
    """
    if isinstance(value, date):
        return value
    raw = clean_text(value)
    if raw is None:
        raise ValidationError(f"{field} is required (YYYY-MM-DD)", details={field: "required"})
    if not _DATE_RE.match(raw):
        raise ValidationError(f"{field} must be YYYY-MM-DD", details={field: raw})
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationError(f"{field} is not a valid calendar date", details={field: raw}) from exc


def normalize_shift_code(value, field="shift_code"):
    """Map a shift parameter onto its canonical spelling.

    Raises ValidationError when the value is missing or not one of SHIFT_CODES.
    """
    raw = clean_text(value)
    if raw is None:
        raise ValidationError(f"{field} is required", details={field: "required"})
    canonical = _SHIFT_LOOKUP.get(raw.lower())
    if canonical is None:
        raise ValidationError(
            f"{field} must be one of {', '.join(SHIFT_CODES)}",
            details={field: raw},
        )
    return canonical
