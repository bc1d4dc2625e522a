# /backend/app/services/storage_service.py

"""
Object store gateway for uploaded health documents.

A bucket is a directory under settings.UPLOAD_DIR; objects are stored at
"<bucket>/<user_id>/<token>_<millis>.<ext>" and served back through
GET /api/v1/files/<bucket>/<object_path>, which is the public URL attached
to persisted records.
"""

import asyncio
import logging
import secrets
import string
import time
from pathlib import Path
from typing import Optional

from app.config import settings
from app.utils.errors import StorageError

logger = logging.getLogger(__name__)

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits
_TOKEN_LENGTH = 13


class StorageService:

    def __init__(
        self,
        root_dir: Optional[str] = None,
        bucket: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
    ):
        self.root_dir = Path(root_dir or settings.UPLOAD_DIR)
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.max_retries = settings.UPLOAD_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.UPLOAD_RETRY_DELAY if retry_delay is None else retry_delay

    @property
    def bucket_path(self) -> Path:
        return self.root_dir / self.bucket

    # ------------------------------------------------------------------
    # Bucket
    # ------------------------------------------------------------------

    def bucket_exists(self) -> bool:
        return self.bucket_path.is_dir()

    def ensure_bucket(self) -> Path:
        """Create the bucket directory if it doesn't exist."""
        if self.bucket_exists():
            return self.bucket_path

        logger.info(f"Bucket '{self.bucket}' not found, creating it")
        try:
            self.bucket_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create bucket '{self.bucket}': {e}")
            raise StorageError(f"Failed to create storage bucket: {e}") from e

        return self.bucket_path

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def build_object_path(self, user_id: str, filename: str) -> str:
        """Collision-resistant key: random token plus epoch milliseconds."""
        ext = Path(filename).suffix.lower().lstrip(".")
        token = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(_TOKEN_LENGTH))
        name = f"{token}_{int(time.time() * 1000)}"
        if ext:
            name = f"{name}.{ext}"
        return f"{user_id}/{name}"

    def resolve(self, object_path: str) -> Path:
        """Map an object path to its file, rejecting paths outside the bucket."""
        bucket_root = self.bucket_path.resolve()
        target = (bucket_root / object_path).resolve()
        if target == bucket_root or bucket_root not in target.parents:
            raise StorageError(f"Invalid object path: {object_path}")
        return target

    def _write(self, object_path: str, content: bytes) -> None:
        target = self.resolve(object_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # Overwrite on conflict
        with open(target, "wb") as f:
            f.write(content)

    async def upload(self, object_path: str, content: bytes) -> str:
        """
        Store an object, retrying failed attempts.

        Makes up to 1 + max_retries attempts with a fixed delay between
        them. The last failure is raised as StorageError.
        """
        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                self._write(object_path, content)
                logger.info(f"Stored {object_path} ({len(content)} bytes)")
                return object_path
            except StorageError:
                raise
            except OSError as e:
                last_error = e
                logger.warning(f"Upload attempt {attempt + 1}/{attempts} failed: {e}")
                if attempt < attempts - 1:
                    await asyncio.sleep(self.retry_delay)

        raise StorageError(f"Failed to upload {object_path}: {last_error}") from last_error

    def get_public_url(self, object_path: str) -> str:
        return f"{settings.PUBLIC_BASE_URL}/api/v1/files/{self.bucket}/{object_path}"

    def exists(self, object_path: str) -> bool:
        try:
            return self.resolve(object_path).is_file()
        except StorageError:
            return False

    def delete(self, object_path: str) -> bool:
        """Delete an object. Returns False when it was already gone."""
        target = self.resolve(object_path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error deleting {object_path}: {e}")
            raise StorageError(f"Failed to delete {object_path}: {e}") from e
        return True


# Global singleton
storage_service = StorageService()
