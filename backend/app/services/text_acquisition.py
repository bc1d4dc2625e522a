# /backend/app/services/text_acquisition.py

import logging
import mimetypes
from typing import Optional

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER = "This is a placeholder for OCR text extraction from images"
PDF_PLACEHOLDER = "This is a placeholder for text extraction from PDFs"


def resolve_content_type(filename: str, content_type: Optional[str]) -> str:
    """Use the client-declared type, falling back to a guess from the extension."""
    if content_type and content_type != "application/octet-stream":
        return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "text/plain"


class TextAcquisitionService:
    """
    Best-effort raw text for an uploaded file.

    Images and PDFs get a fixed placeholder (no OCR / PDF parsing);
    everything else is read verbatim as text.
    """

    def acquire_text(self, filename: str, content_type: Optional[str], content: bytes) -> str:
        mime = resolve_content_type(filename, content_type)

        if "image" in mime:
            logger.info(f"Image detected ({filename}) - using OCR placeholder")
            return IMAGE_PLACEHOLDER

        if "pdf" in mime:
            logger.info(f"PDF detected ({filename}) - using PDF placeholder")
            return PDF_PLACEHOLDER

        logger.info(f"Reading text from {filename}")
        # Undecodable bytes become U+FFFD so the document still reaches review
        return content.decode("utf-8", errors="replace")


text_acquisition_service = TextAcquisitionService()
