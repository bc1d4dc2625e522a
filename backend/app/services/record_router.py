# /backend/app/services/record_router.py

"""
Category router and persister.

A confirmed, normalized candidate is routed to exactly one of the five
category collections by RecordCategory.from_record_type(), then written as a
single insert_one. Destination and default-fill rules live together in
_ROW_BUILDERS, keyed by the closed RecordCategory enum. Adding a category
means adding an enum member, a collection and a builder.

The blob URL goes on every row as both document_url and thumbnail_url.
"""

import uuid
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from pymongo.errors import PyMongoError

from app.models.record import RecordCategory
from app.services.candidate_schema import DEFAULT_PROVIDER
from app.utils.errors import PersistenceError
from app.utils.security import UploadContext

logger = logging.getLogger(__name__)


def _value(candidate: dict, field: str, default: Any = None) -> Any:
    """Candidate value, or default when missing/blank."""
    value = candidate.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return value


def _dental_row(candidate: dict) -> dict:
    return {
        "title":       _value(candidate, "title", "Dental Record"),
        "date":        candidate.get("date"),
        "provider":    _value(candidate, "provider", DEFAULT_PROVIDER),
        "record_type": "dental",
        "findings":    _value(candidate, "findings"),
    }


def _vision_row(candidate: dict) -> dict:
    return {
        "title":                _value(candidate, "title", "Vision Record"),
        "date":                 candidate.get("date"),
        "provider":             _value(candidate, "provider", DEFAULT_PROVIDER),
        "record_type":          "vision",
        "prescription_details": _value(candidate, "prescriptionDetails"),
        "contact_lens_details": _value(candidate, "contactLensDetails"),
    }


def _immunization_row(candidate: dict) -> dict:
    return {
        "title":        _value(candidate, "title", "Immunization Record"),
        "date":         candidate.get("date"),
        "provider":     _value(candidate, "provider", DEFAULT_PROVIDER),
        "vaccine":      _value(candidate, "vaccine", "Unknown Vaccine"),
        "vaccine_type": _value(candidate, "vaccineType", "Unknown Type"),
        "dose_number":  str(_value(candidate, "doseNumber", "1")),
        "status":       _value(candidate, "status", "Completed"),
    }


def _medication_row(candidate: dict) -> dict:
    return {
        "title":           _value(candidate, "title", "Medication Record"),
        "date":            candidate.get("date"),
        "name":            _value(candidate, "name", "Unknown Medication"),
        "dosage":          _value(candidate, "dosage", "Unknown Dosage"),
        "frequency":       _value(candidate, "frequency", "Daily"),
        "start_date":      _value(candidate, "startDate", candidate.get("date")),
        "end_date":        _value(candidate, "endDate"),
        "provider":        _value(candidate, "provider", DEFAULT_PROVIDER),
        "prescribed_by":   _value(candidate, "provider", DEFAULT_PROVIDER),
        "medication_type": _value(candidate, "medicationType", "Prescription"),
        "status":          _value(candidate, "status", "Active"),
    }


def _health_row(candidate: dict) -> dict:
    return {
        "title":       _value(candidate, "title", "Health Record"),
        "date":        candidate.get("date"),
        "provider":    _value(candidate, "provider", DEFAULT_PROVIDER),
        "record_type": "general",
        "description": _value(candidate, "description"),
        "notes":       _value(candidate, "notes"),
    }


_ROW_BUILDERS: Dict[RecordCategory, Callable[[dict], dict]] = {
    RecordCategory.MEDICAL:      _health_row,
    RecordCategory.DENTAL:       _dental_row,
    RecordCategory.VISION:       _vision_row,
    RecordCategory.IMMUNIZATION: _immunization_row,
    RecordCategory.MEDICATION:   _medication_row,
}


def route_candidate(candidate: dict) -> RecordCategory:
    return RecordCategory.from_record_type(candidate.get("recordType"))


def build_row(
    category: RecordCategory,
    candidate: dict,
    user_id: str,
    blob_url: str,
    now: Optional[datetime] = None,
) -> dict:
    """Build the single row written for a candidate in its category collection."""
    timestamp = now or datetime.utcnow()
    row = {"_id": str(uuid.uuid4()), "user_id": user_id}
    row.update(_ROW_BUILDERS[category](candidate))
    row.update({
        "document_url":  blob_url,
        "thumbnail_url": blob_url,
        "created_at":    timestamp,
        "updated_at":    timestamp,
    })
    return row


async def persist_candidate(db, candidate: dict, blob_url: str, context: UploadContext) -> dict:
    """
    Write a confirmed candidate to its category collection.

    Returns:
        {"record_id", "category", "collection"} for the inserted row.

    Raises:
        PersistenceError carrying the store's message verbatim.
    """
    category = route_candidate(candidate)
    row = build_row(category, candidate, context.user_id, blob_url)

    logger.info(
        f"Saving {category.value} record to {category.collection} for user {context.user_id}"
    )

    try:
        result = await db[category.collection].insert_one(row)
    except PyMongoError as e:
        logger.error(f"Insert into {category.collection} failed: {e}")
        raise PersistenceError(str(e)) from e

    return {
        "record_id":  str(result.inserted_id),
        "category":   category,
        "collection": category.collection,
    }
