# /backend/app/utils/file_handler.py

from pathlib import Path
from fastapi import UploadFile, HTTPException, status
from app.config import settings

def validate_file(filename: str) -> tuple[bool, str]:
    """Validate uploaded file name"""
    if not filename:
        return False, "Please select a file to upload"

    # Check file extension
    file_ext = Path(filename).suffix.lower()
    if file_ext not in settings.ALLOWED_EXTENSIONS:
        return False, f"File type {file_ext or '(none)'} not allowed. Allowed types: {', '.join(settings.ALLOWED_EXTENSIONS)}"

    return True, "Valid"

async def read_upload_file(file: UploadFile) -> bytes:
    """Validate an uploaded file and return its contents"""
    is_valid, message = validate_file(file.filename)
    if not is_valid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    contents = await file.read()

    # Check file size
    if len(contents) > settings.MAX_FILE_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File size exceeds maximum allowed size of {settings.MAX_FILE_SIZE / (1024*1024)}MB"
        )

    return contents
