# /backend/app/services/llm_extraction_service.py

"""
LLM extraction service: turns raw document text into a record candidate.

Two chat-completion calls against an OpenAI-compatible endpoint:

  Call 1, summarize: free-text medical summary, becomes `description`.
  Call 2, extract:   field-enumeration prompt with response_format
                     json_object, parsed into the candidate mapping.

The calls don't depend on each other, so they are issued together and
joined before the merge step. The summary always wins over any
description the extraction call produced.

Failure handling:
  - No API key configured → ConfigurationError (surfaced, not swallowed).
  - Extraction response is not a JSON object → minimal fallback candidate.
  - Any model/network/auth/quota failure → fully-defaulted candidate with
    an explanatory description so the user can finish it at review.
"""

import asyncio
import json
import logging
from datetime import date
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.services.candidate_schema import (
    build_field_instructions,
    failed_candidate,
    fallback_candidate,
)
from app.services.normalization import normalize_candidate
from app.utils.errors import ConfigurationError, ExtractionError

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You are a medical assistant that summarizes medical reports concisely and accurately."
)

EXTRACTION_SYSTEM_PROMPT = (
    "You are a helpful assistant that extracts structured health data from text. "
    "Extract relevant health information and return it as a JSON object with the "
    "following fields where applicable:\n\n" + build_field_instructions()
)


class LLMExtractionService:

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._model = model
        self._timeout = timeout
        self._transport = transport

    # Resolved lazily so env changes after import are honoured
    @property
    def api_key(self) -> Optional[str]:
        return self._api_key if self._api_key is not None else settings.OPENAI_API_KEY

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.OPENAI_BASE_URL).rstrip("/")

    @property
    def model(self) -> str:
        return self._model or settings.OPENAI_MODEL

    @property
    def timeout(self) -> float:
        return self._timeout or settings.LLM_TIMEOUT

    # ------------------------------------------------------------------
    # Configuration guard
    # ------------------------------------------------------------------

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.is_configured():
            logger.error("OpenAI API key is missing. Cannot extract data.")
            raise ConfigurationError(
                "Language model API key is missing. Set OPENAI_API_KEY."
            )

    # ------------------------------------------------------------------
    # Chat completion call
    # ------------------------------------------------------------------

    async def _chat_completion(
        self,
        system_prompt: str,
        user_content: str,
        json_mode: bool = False,
    ) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/chat/completions",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json=payload,
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as e:
            raise ExtractionError(
                f"Model provider returned {e.response.status_code}: {e.response.text[:300]}"
            ) from e
        except httpx.HTTPError as e:
            raise ExtractionError(f"Model provider request failed: {e}") from e
        except ValueError as e:
            raise ExtractionError(f"Model provider returned invalid JSON: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ExtractionError(f"Unexpected completion payload: {str(body)[:300]}") from e

        return content or ""

    async def summarize(self, text: str) -> str:
        logger.info("Requesting summary from model")
        return await self._chat_completion(
            SUMMARY_SYSTEM_PROMPT,
            f"Summarize this medical report and tell me the summary: {text}",
        )

    async def extract_fields(self, text: str) -> str:
        logger.info("Requesting structured data extraction from model")
        return await self._chat_completion(
            EXTRACTION_SYSTEM_PROMPT,
            f"Extract health record information from this text: {text}",
            json_mode=True,
        )

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def _parse_response(self, raw: str, today: Optional[date] = None) -> dict:
        """Parse the extraction response; anything but a JSON object falls back."""
        try:
            parsed = json.loads(raw or "{}")
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error parsing model response as JSON: {e}. Raw preview: {raw[:300]}")
            return fallback_candidate(today)

        if not isinstance(parsed, dict):
            logger.error(f"Model response is not a JSON object: {raw[:300]}")
            return fallback_candidate(today)

        return parsed

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    async def extract(self, raw_text: str, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Full extraction:

        1. Credential guard            → ConfigurationError
        2. Summary + extraction calls  → issued concurrently
        3. JSON parse                  → fallback candidate on failure
        4. Merge                       → summary overwrites description
        5. Normalize                   → recordType, title, date defaults

        Returns:
            Normalized candidate dict (never raises on model failure).
        """
        self.ensure_configured()

        # Both calls run to completion so neither result is left unretrieved
        summary, raw_fields = await asyncio.gather(
            self.summarize(raw_text),
            self.extract_fields(raw_text),
            return_exceptions=True,
        )

        for result in (summary, raw_fields):
            if isinstance(result, ExtractionError):
                logger.error(f"Error extracting data from text: {result}")
                return failed_candidate(today)
            if isinstance(result, Exception):
                logger.error(f"Unexpected extraction failure: {result!r}")
                return failed_candidate(today)
            if isinstance(result, BaseException):
                raise result

        logger.info(f"Structured data received ({len(raw_fields)} chars)")

        candidate = self._parse_response(raw_fields, today=today)
        candidate["description"] = summary

        return normalize_candidate(candidate, today=today)


# Global singleton
llm_extraction_service = LLMExtractionService()
