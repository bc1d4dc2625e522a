# /backend/app/routes/uploads.py

"""
Upload + review routes.

  POST   /uploads                       store, extract, open review session
  GET    /uploads/{session_id}          pending candidate
  POST   /uploads/{session_id}/confirm  persist to one category collection
  POST   /uploads/{session_id}/cancel   discard candidate, keep blob
  DELETE /uploads/orphans               remove blobs of cancelled reviews
"""

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status
from typing import Optional
from app.models.record import (
    CancelResponse,
    ConfirmRequest,
    PersistedRecordResponse,
    SweepResponse,
    UploadReviewResponse,
)
from app.services.ingestion_pipeline import ingestion_pipeline
from app.services.review_gate import review_gate
from app.services.storage_service import storage_service
from app.utils.errors import ConfigurationError, PersistenceError, StorageError
from app.utils.file_handler import read_upload_file
from app.utils.security import UploadContext, get_upload_context
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["Uploads"])


def _review_response(session: dict) -> UploadReviewResponse:
    return UploadReviewResponse(
        session_id=session["_id"],
        status=session["status"],
        filename=session["filename"],
        document_url=session["document_url"],
        candidate=session.get("candidate"),
        created_at=session["created_at"],
    )


@router.post("", response_model=UploadReviewResponse, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    context: UploadContext = Depends(get_upload_context)
):
    """
    Upload a health document and extract a record candidate for review

    - Supported formats: PDF, JPG, JPEG, PNG, TXT
    - Max file size: 10MB
    """
    contents = await read_upload_file(file)

    try:
        result = await ingestion_pipeline.ingest(
            context,
            filename=file.filename,
            content_type=file.content_type,
            content=contents,
        )
    except ConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except StorageError as e:
        logger.error(f"Storage failure for {file.filename}: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return _review_response(result.session)


@router.delete("/orphans", response_model=SweepResponse)
async def sweep_orphans(context: UploadContext = Depends(get_upload_context)):
    """Delete stored documents whose review was cancelled"""
    try:
        deleted = await review_gate.sweep_orphans(context, storage_service)
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return SweepResponse(deleted_blobs=deleted)


@router.get("/{session_id}", response_model=UploadReviewResponse)
async def get_upload(
    session_id: str,
    context: UploadContext = Depends(get_upload_context)
):
    """Get an upload session and its extracted candidate"""
    session = await review_gate.get_session(session_id, context)
    return _review_response(session)


@router.post("/{session_id}/confirm", response_model=PersistedRecordResponse, status_code=201)
async def confirm_upload(
    session_id: str,
    request: Optional[ConfirmRequest] = None,
    context: UploadContext = Depends(get_upload_context)
):
    """
    Save the reviewed record

    - **fields**: optional reviewed values replacing the extracted ones
    """
    edits = request.fields if request else {}

    try:
        record = await review_gate.confirm(session_id, context, edits=edits)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return PersistedRecordResponse(**record)


@router.post("/{session_id}/cancel", response_model=CancelResponse)
async def cancel_upload(
    session_id: str,
    context: UploadContext = Depends(get_upload_context)
):
    """Discard the extracted candidate without saving a record"""
    return CancelResponse(**await review_gate.cancel(session_id, context))
