# /backend/app/services/normalization.py

"""
Classification and normalization of extracted record candidates.

Applied AFTER LLM extraction and again after the user edits a candidate at
the review step, BEFORE the category router sees it.

These are pure functions with no I/O. normalize_candidate()
is idempotent: a normalized candidate passes through unchanged.
"""

import re
import logging
from datetime import date, datetime, time
from typing import Any, Optional

from dateutil import parser as date_parser

from app.services.candidate_schema import (
    DEFAULT_RECORD_TYPE,
    DEFAULT_TITLE,
    RECORD_TYPES,
    today_iso,
)

logger = logging.getLogger(__name__)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_record_type(value: Any) -> str:
    """
    Lower-case and match against the closed set of record types.
    Anything else (absent, "health", unknown labels) becomes "medical".
    """
    if _is_blank(value):
        return DEFAULT_RECORD_TYPE

    record_type = str(value).strip().lower()
    if record_type in RECORD_TYPES:
        return record_type

    logger.info(f"Unrecognized record type '{value}', using '{DEFAULT_RECORD_TYPE}'")
    return DEFAULT_RECORD_TYPE


def normalize_date(value: Any, today: Optional[date] = None) -> str:
    """
    Return a YYYY-MM-DD string.

    Absent → today. Already ISO → unchanged. Otherwise parse as a generic
    date and reformat; when that fails the original value is returned
    unchanged (never silently drops data).

    Parts missing from the text come from the first day of today's month,
    so "March 2023" is 2023-03-01 and "March 3" falls in the current year.
    """
    if _is_blank(value):
        return today_iso(today)

    text = str(value).strip()
    if ISO_DATE_PATTERN.match(text):
        return text

    fill = datetime.combine((today or date.today()).replace(day=1), time())
    try:
        return date_parser.parse(text, default=fill).date().isoformat()
    except (ValueError, OverflowError):
        logger.warning(f"Could not normalize date: '{text}'")
        return value


def normalize_candidate(candidate: dict, today: Optional[date] = None) -> dict:
    """
    Apply the defaulting rules to a raw candidate in one pass.

    Args:
        candidate: Raw field mapping from the extraction service or the
                   review step.
        today:     Date used for a missing `date` (defaults to date.today()).

    Returns:
        New dict; the input is left untouched.
    """
    normalized = dict(candidate)

    normalized["recordType"] = normalize_record_type(candidate.get("recordType"))
    normalized["date"] = normalize_date(candidate.get("date"), today=today)

    if _is_blank(candidate.get("title")):
        normalized["title"] = DEFAULT_TITLE

    return normalized
