"""Lenient field types for parsing model-generated JSON.

Completion output is loosely typed: containers come back as ``null``, scores
drift outside their range and dates arrive in whatever format the resume used.
These annotated types repair such values while validating, logging a warning
for anything that had to be changed instead of rejecting the whole payload.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated, Any

from pydantic import BeforeValidator, ValidationInfo

logger = logging.getLogger(__name__)

PRESENT_WORDS = frozenset({"present", "current", "now", "ongoing", "today", "currently"})

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def _field(info: ValidationInfo | None) -> str:
    return (info.field_name if info is not None else None) or "value"


def blank_to_none(value: Any) -> str | None:
    """Strip strings and map blanks to ``None``.

    Lists and objects are flattened into one space-joined string; any other
    scalar is stringified.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value or value.lower() in ("null", "none", "n/a"):
            return None
        return value
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, (list, tuple)):
        parts = [part for part in (blank_to_none(item) for item in value) if part is not None]
        if not parts:
            return None
        logger.warning("Joined %d items into a single string", len(parts))
        return " ".join(parts)
    return str(value)


def text_or_empty(value: Any) -> str:
    value = blank_to_none(value)
    return "" if value is None else str(value)


def coerce_str_list(value: Any, info: ValidationInfo) -> list[str]:
    """Return a list of non-empty strings; ``None`` becomes ``[]``."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        logger.warning("Expected a list for %s, got %s; using []", _field(info), type(value).__name__)
        return []
    items = []
    for item in value:
        if item is None:
            continue
        text = str(item).strip()
        if text:
            items.append(text)
    return items


def coerce_object_list(value: Any, info: ValidationInfo) -> list[dict]:
    """Return a list of dicts; ``None`` becomes ``[]`` and stray items are dropped."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, (list, tuple)):
        logger.warning("Expected a list for %s, got %s; using []", _field(info), type(value).__name__)
        return []
    kept = [item for item in value if isinstance(item, dict) or hasattr(item, "model_dump")]
    if len(kept) != len(value):
        logger.warning("Dropped %d malformed entries from %s", len(value) - len(kept), _field(info))
    return kept


def coerce_object(value: Any) -> Any:
    """Missing nested objects validate as their model defaults."""
    return {} if value is None else value


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"-?\d+(?:\.\d+)?", value)
        if match:
            return float(match.group())
    return None


def clamp_score(value: Any, info: ValidationInfo) -> Any:
    """Clamp a 0-100 score; unreadable values are left for the field default."""
    if value is None:
        return None
    number = _to_number(value)
    if number is None:
        logger.warning("Non-numeric %s %r; using default", _field(info), value)
        return None
    if number < 0 or number > 100:
        clamped = min(100.0, max(0.0, number))
        logger.warning("%s %s out of range 0-100; clamped to %s", _field(info), number, clamped)
        number = clamped
    return int(round(number))


def score_or_default(default: int):
    def _validate(value: Any, info: ValidationInfo) -> int:
        result = clamp_score(value, info)
        return default if result is None else result

    return _validate


def gpa_or_none(value: Any, info: ValidationInfo) -> float | None:
    if value is None:
        return None
    number = _to_number(value)
    if number is None:
        return None
    if number < 0 or number > 5:
        logger.warning("GPA %s outside 0-5; dropped", number)
        return None
    return number


def normalize_date(value: Any) -> str | None:
    """Normalize a date to ``YYYY`` or ``YYYY-MM``; ongoing or unreadable dates become ``None``."""
    value = blank_to_none(value)
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in PRESENT_WORDS:
        return None

    match = re.fullmatch(r"(\d{4})[-/.](\d{1,2})(?:[-/.]\d{1,2})?(?:T.*)?", text)
    if match:
        return _year_month(match.group(1), match.group(2))
    match = re.fullmatch(r"(\d{1,2})[-/.](\d{4})", text)
    if match:
        return _year_month(match.group(2), match.group(1))
    match = re.fullmatch(r"([A-Za-z]{3,})\.?,?\s+(\d{4})", text)
    if match:
        month = _MONTHS.get(match.group(1)[:3].lower())
        if month:
            return f"{match.group(2)}-{month:02d}"
        return match.group(2)
    match = re.search(r"\b(19|20)\d{2}\b", text)
    if match:
        return match.group()

    logger.warning("Unrecognized date %r; dropped", text)
    return None


def _year_month(year: str, month: str) -> str:
    m = int(month)
    if 1 <= m <= 12:
        return f"{year}-{m:02d}"
    return year


def is_present(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() in PRESENT_WORDS


_TRUE_WORDS = frozenset({"true", "yes", "y", "1"}) | PRESENT_WORDS
_FALSE_WORDS = frozenset({"false", "no", "n", "0", "", "null", "none", "past"})


def coerce_flag(value: Any, info: ValidationInfo) -> bool:
    """Read a boolean the way a person would; ``"false"`` is false."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    logger.warning("Unreadable %s %r; using false", _field(info), value)
    return False


OptStr = Annotated[str | None, BeforeValidator(blank_to_none)]
Text = Annotated[str, BeforeValidator(text_or_empty)]
StrList = Annotated[list[str], BeforeValidator(coerce_str_list)]
DateStr = Annotated[str | None, BeforeValidator(normalize_date)]
Score = Annotated[int | None, BeforeValidator(clamp_score)]
Gpa = Annotated[float | None, BeforeValidator(gpa_or_none)]
Flag = Annotated[bool, BeforeValidator(coerce_flag)]
