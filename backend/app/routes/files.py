# /backend/app/routes/files.py

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse
from app.services.storage_service import storage_service
from app.utils.errors import StorageError

router = APIRouter(prefix="/files", tags=["Files"])

@router.get("/{bucket}/{object_path:path}")
async def download_file(bucket: str, object_path: str):
    """
    Public URL for a stored document

    Persisted records reference this URL as both document and thumbnail.
    """
    if bucket != storage_service.bucket:
        raise HTTPException(status_code=404, detail="Bucket not found")

    try:
        file_path = storage_service.resolve(object_path)
    except StorageError:
        raise HTTPException(status_code=400, detail="Invalid file path")

    if not file_path.is_file():
        raise HTTPException(status_code=404, detail="File not found")

    return FileResponse(path=str(file_path), filename=file_path.name)
