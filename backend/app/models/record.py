# /backend/app/models/record.py

from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime
from app import database

class RecordCategory(str, Enum):
    """Closed set of category destinations. MEDICAL is the default branch."""

    MEDICAL = "medical"
    DENTAL = "dental"
    VISION = "vision"
    IMMUNIZATION = "immunization"
    MEDICATION = "medication"

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self]

    @classmethod
    def from_record_type(cls, record_type: Any) -> "RecordCategory":
        """Case-insensitive match; no match, "medical" and "health" all land on MEDICAL."""
        if isinstance(record_type, str):
            try:
                return cls(record_type.strip().lower())
            except ValueError:
                pass
        return cls.MEDICAL

_COLLECTIONS = {
    RecordCategory.MEDICAL:      database.HEALTH_RECORDS,
    RecordCategory.DENTAL:       database.DENTAL_RECORDS,
    RecordCategory.VISION:       database.VISION_RECORDS,
    RecordCategory.IMMUNIZATION: database.IMMUNIZATION_RECORDS,
    RecordCategory.MEDICATION:   database.MEDICATIONS,
}

class ReviewStatus(str, Enum):
    PENDING_REVIEW = "pending_review"
    PERSISTING = "persisting"
    CANCELLED = "cancelled"

class UploadReviewResponse(BaseModel):
    session_id: str
    status: ReviewStatus
    filename: str
    document_url: str
    candidate: Optional[Dict[str, Any]] = None
    created_at: datetime

class ConfirmRequest(BaseModel):
    fields: Dict[str, Any] = Field(
        default_factory=dict,
        description="Reviewed values that replace the extracted ones"
    )

class PersistedRecordResponse(BaseModel):
    record_id: str
    category: RecordCategory
    collection: str
    document_url: str

class CancelResponse(BaseModel):
    session_id: str
    status: ReviewStatus

class SweepResponse(BaseModel):
    deleted_blobs: int
