# /backend/app/services/ingestion_pipeline.py

"""
Document ingestion pipeline, up to the review gate.

Steps (strictly ordered within one upload):
  1. Credential guard     → ConfigurationError before anything is stored
  2. Bucket check/create  → StorageError
  3. Blob upload + retry  → StorageError after the retry budget
  4. Public URL lookup
  5. Text acquisition     → placeholder for images/PDFs
  6. LLM extraction       → normalized candidate (degrades, never raises)
  7. Review session       → candidate parked for confirm/cancel

Uploads are independent: each writes its own generated object key and
opens its own session, so no lock is taken across uploads.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.services.llm_extraction_service import LLMExtractionService, llm_extraction_service
from app.services.review_gate import ReviewGate, review_gate
from app.services.storage_service import StorageService, storage_service
from app.services.text_acquisition import TextAcquisitionService, text_acquisition_service
from app.utils.security import UploadContext

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    session: Dict[str, Any]
    candidate: Dict[str, Any]
    document_url: str

    @property
    def session_id(self) -> str:
        return self.session["_id"]


class IngestionPipeline:

    def __init__(
        self,
        storage: Optional[StorageService] = None,
        text_acquisition: Optional[TextAcquisitionService] = None,
        extraction: Optional[LLMExtractionService] = None,
        gate: Optional[ReviewGate] = None,
    ):
        self.storage = storage or storage_service
        self.text_acquisition = text_acquisition or text_acquisition_service
        self.extraction = extraction or llm_extraction_service
        self.gate = gate or review_gate

    async def ingest(
        self,
        context: UploadContext,
        filename: str,
        content_type: Optional[str],
        content: bytes,
    ) -> IngestionResult:
        logger.info(f"Ingestion started | user={context.user_id} file={filename}")

        # ── 1. Fail fast before storing anything ─────────────────────
        self.extraction.ensure_configured()

        # ── 2–4. Object store ────────────────────────────────────────
        self.storage.ensure_bucket()
        object_path = self.storage.build_object_path(context.user_id, filename)
        await self.storage.upload(object_path, content)
        document_url = self.storage.get_public_url(object_path)

        # No session tracks the blob until step 7, so drop it on failure
        try:
            # ── 5. Text ──────────────────────────────────────────────
            text = self.text_acquisition.acquire_text(filename, content_type, content)
            logger.info(f"Acquired {len(text)} chars of text")

            # ── 6. Extract + normalize ───────────────────────────────
            candidate = await self.extraction.extract(text)
            if candidate.get("error"):
                logger.warning(f"Extraction degraded for {filename}: {candidate['error']}")

            # ── 7. Review gate ───────────────────────────────────────
            session = await self.gate.open_session(
                context,
                candidate,
                filename=filename,
                object_path=object_path,
                document_url=document_url,
            )
        except Exception:
            logger.error(f"Ingestion of {filename} failed after upload, removing {object_path}")
            self.storage.delete(object_path)
            raise

        return IngestionResult(session=session, candidate=candidate, document_url=document_url)


ingestion_pipeline = IngestionPipeline()
