# /backend/app/services/review_gate.py

"""
Review gate: the manual checkpoint between extraction and persistence.

After extraction the candidate is parked in an upload session
(status pending_review) and shown to the user, who either:

  confirm → edits applied, re-normalized, routed to one category
            collection; the session and its candidate are discarded.
  cancel  → candidate discarded, no row written. The stored blob is
            kept; the session is marked cancelled so sweep_orphans()
            can remove the blob later.

Confirm claims the session atomically (pending_review → persisting), so a
double submit writes at most one row. A failed insert releases the claim
and the user can retry.
"""

import uuid
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from pymongo import ReturnDocument

from app.database import get_database, UPLOAD_SESSIONS
from app.models.record import ReviewStatus
from app.services.normalization import normalize_candidate
from app.services.record_router import persist_candidate
from app.services.storage_service import StorageService
from app.utils.security import UploadContext

logger = logging.getLogger(__name__)


class ReviewGate:

    async def open_session(
        self,
        context: UploadContext,
        candidate: Dict[str, Any],
        filename: str,
        object_path: str,
        document_url: str,
    ) -> dict:
        db = get_database()
        now = datetime.utcnow()

        session = {
            "_id":          str(uuid.uuid4()),
            "user_id":      context.user_id,
            "status":       ReviewStatus.PENDING_REVIEW.value,
            "filename":     filename,
            "object_path":  object_path,
            "document_url": document_url,
            "candidate":    candidate,
            "created_at":   now,
            "updated_at":   now,
        }

        await db[UPLOAD_SESSIONS].insert_one(session)
        logger.info(f"Session {session['_id']} submitted for review")
        return session

    async def get_session(self, session_id: str, context: UploadContext) -> dict:
        db = get_database()
        session = await db[UPLOAD_SESSIONS].find_one({
            "_id": session_id,
            "user_id": context.user_id,
        })
        if not session:
            raise HTTPException(status_code=404, detail="Upload session not found")
        return session

    async def _claim(self, session_id: str, context: UploadContext) -> dict:
        db = get_database()
        session = await db[UPLOAD_SESSIONS].find_one_and_update(
            {
                "_id": session_id,
                "user_id": context.user_id,
                "status": ReviewStatus.PENDING_REVIEW.value,
            },
            {"$set": {
                "status": ReviewStatus.PERSISTING.value,
                "updated_at": datetime.utcnow(),
            }},
            return_document=ReturnDocument.AFTER,
        )
        if session:
            return session

        # Distinguish a missing session from one that is no longer pending
        existing = await self.get_session(session_id, context)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Upload session is {existing['status']}, not awaiting review"
        )

    async def confirm(
        self,
        session_id: str,
        context: UploadContext,
        edits: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Persist the reviewed candidate. Raises PersistenceError on insert failure."""
        db = get_database()
        session = await self._claim(session_id, context)

        # Any failure past the claim hands the session back for retry
        try:
            candidate = dict(session.get("candidate") or {})
            candidate.update(edits or {})
            candidate.pop("error", None)
            candidate = normalize_candidate(candidate)

            record = await persist_candidate(
                db, candidate, session["document_url"], context
            )
        except Exception:
            logger.error(f"Session {session_id} not persisted, releasing for retry")
            await db[UPLOAD_SESSIONS].update_one(
                {"_id": session_id},
                {"$set": {
                    "status": ReviewStatus.PENDING_REVIEW.value,
                    "updated_at": datetime.utcnow(),
                }},
            )
            raise

        await db[UPLOAD_SESSIONS].delete_one({"_id": session_id})
        logger.info(
            f"Session {session_id} confirmed → {record['collection']}/{record['record_id']}"
        )

        record["document_url"] = session["document_url"]
        return record

    async def cancel(self, session_id: str, context: UploadContext) -> dict:
        db = get_database()
        result = await db[UPLOAD_SESSIONS].update_one(
            {
                "_id": session_id,
                "user_id": context.user_id,
                "status": ReviewStatus.PENDING_REVIEW.value,
            },
            {
                "$set": {
                    "status": ReviewStatus.CANCELLED.value,
                    "updated_at": datetime.utcnow(),
                },
                "$unset": {"candidate": ""},
            },
        )

        if result.matched_count == 0:
            existing = await self.get_session(session_id, context)
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Upload session is {existing['status']}, not awaiting review"
            )

        logger.info(f"Session {session_id} cancelled, blob kept for sweep")
        return {"session_id": session_id, "status": ReviewStatus.CANCELLED}

    async def sweep_orphans(self, context: UploadContext, storage: StorageService) -> int:
        """Delete blobs left behind by the user's cancelled reviews."""
        db = get_database()
        cursor = db[UPLOAD_SESSIONS].find({
            "user_id": context.user_id,
            "status": ReviewStatus.CANCELLED.value,
        })
        sessions = await cursor.to_list(length=None)

        deleted = 0
        for session in sessions:
            if storage.delete(session["object_path"]):
                deleted += 1
            await db[UPLOAD_SESSIONS].delete_one({"_id": session["_id"]})

        logger.info(f"Swept {deleted} orphaned blob(s) for user {context.user_id}")
        return deleted


review_gate = ReviewGate()
