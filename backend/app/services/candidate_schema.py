# /backend/app/services/candidate_schema.py

"""
The candidate schema is the closed set of field names the extraction model
is asked to emit, whatever category the document belongs to.

The extraction prompt is generated from CANDIDATE_FIELDS so the list the
model sees and the list the router reads never drift apart.
"""

from datetime import date
from typing import Optional

RECORD_TYPES = ("medical", "dental", "vision", "immunization", "medication")

DEFAULT_RECORD_TYPE = "medical"
DEFAULT_TITLE = "Medical Report"
DEFAULT_PROVIDER = "Unknown Provider"

FAILED_EXTRACTION_DESCRIPTION = (
    "Could not process this document. Please try again or enter details manually."
)

CANDIDATE_FIELDS = {
    "recordType":          "The type of medical record (e.g., 'medical', 'dental', 'vision', 'immunization', 'medication')",
    "title":               "A concise title for the record",
    "date":                "The date of the record in YYYY-MM-DD format",
    "provider":            "The healthcare provider's name",
    "description":         "A brief description of the record",
    "notes":               "Any additional notes or details",
    "findings":            "Any medical findings (for dental records)",
    "prescriptionDetails": "Details about prescriptions (for vision records)",
    "contactLensDetails":  "Details about contact lenses (for vision records)",
    "vaccine":             "Vaccine name (for immunization records)",
    "vaccineType":         "Type of vaccine (for immunization records)",
    "doseNumber":          "Dose number (for immunization records)",
    "status":              "Status of the record",
    "name":                "Medication name (for medication records)",
    "dosage":              "Medication dosage (for medication records)",
    "frequency":           "Medication frequency (for medication records)",
    "startDate":           "Medication start date (for medication records)",
    "endDate":             "Medication end date (for medication records)",
    "medicationType":      "Type of medication",
}


def today_iso(today: Optional[date] = None) -> str:
    return (today or date.today()).isoformat()


def fallback_candidate(today: Optional[date] = None) -> dict:
    """Minimal candidate used when the extraction response is not valid JSON."""
    return {
        "recordType": DEFAULT_RECORD_TYPE,
        "title":      DEFAULT_TITLE,
        "date":       today_iso(today),
    }


def failed_candidate(today: Optional[date] = None) -> dict:
    """Fully-defaulted candidate used when the model calls themselves fail."""
    candidate = fallback_candidate(today)
    candidate["error"] = "Failed to extract data from document"
    candidate["description"] = FAILED_EXTRACTION_DESCRIPTION
    return candidate


def build_field_instructions() -> str:
    """Render the field list shown to the model in the extraction call."""
    return "\n".join(
        f"- {field}: {description}" for field, description in CANDIDATE_FIELDS.items()
    )
