"""Unit tests for the LLM field extraction service."""

from __future__ import annotations

import json

import httpx
import pytest

from app.services.candidate_schema import FAILED_EXTRACTION_DESCRIPTION
from app.services.llm_extraction_service import LLMExtractionService
from app.utils.errors import ConfigurationError, ExtractionError


class TestConfiguration:
    def test_is_configured_with_key(self, llm_factory) -> None:
        assert llm_factory().is_configured() is True

    def test_is_configured_without_key(self) -> None:
        assert LLMExtractionService(api_key="").is_configured() is False

    @pytest.mark.asyncio
    async def test_missing_key_fails_fast(self, today) -> None:
        requests: list[httpx.Request] = []
        service = LLMExtractionService(
            api_key="",
            transport=httpx.MockTransport(lambda r: requests.append(r) or httpx.Response(200)),
        )

        with pytest.raises(ConfigurationError):
            await service.extract("Dental exam", today=today)

        assert requests == []


class TestRequests:
    @pytest.mark.asyncio
    async def test_issues_summary_and_extraction_calls(self, llm_factory, today) -> None:
        service = llm_factory(extraction={"recordType": "dental"})

        await service.extract("Dental exam on March 3, 2023", today=today)

        assert len(service.requests) == 2
        payloads = [json.loads(r.content) for r in service.requests]
        json_mode = [p for p in payloads if "response_format" in p]
        free_text = [p for p in payloads if "response_format" not in p]

        assert json_mode[0]["response_format"] == {"type": "json_object"}
        assert "recordType" in json_mode[0]["messages"][0]["content"]
        assert "summarizes medical reports" in free_text[0]["messages"][0]["content"]
        for payload in payloads:
            assert payload["model"] == "gpt-test"
            assert "Dental exam on March 3, 2023" in payload["messages"][1]["content"]

        for request in service.requests:
            assert request.url == "https://llm.test/v1/chat/completions"
            assert request.headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_http_error_raises_extraction_error(self) -> None:
        service = LLMExtractionService(
            api_key="sk-test",
            base_url="https://llm.test/v1",
            transport=httpx.MockTransport(lambda r: httpx.Response(429, json={"error": "quota"})),
        )

        with pytest.raises(ExtractionError, match="429"):
            await service.summarize("text")

    @pytest.mark.asyncio
    async def test_unexpected_payload_raises_extraction_error(self) -> None:
        service = LLMExtractionService(
            api_key="sk-test",
            base_url="https://llm.test/v1",
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []})),
        )

        with pytest.raises(ExtractionError):
            await service.summarize("text")


class TestExtract:
    @pytest.mark.asyncio
    async def test_summary_overwrites_description(self, llm_factory, today) -> None:
        service = llm_factory(
            extraction={
                "recordType": "Dental",
                "title": "Checkup",
                "date": "2023-03-03",
                "provider": "Dr. X",
                "description": "from extraction",
            },
            summary="Routine dental checkup, no issues.",
        )

        candidate = await service.extract("Dental exam", today=today)

        assert candidate == {
            "recordType": "dental",
            "title": "Checkup",
            "date": "2023-03-03",
            "provider": "Dr. X",
            "description": "Routine dental checkup, no issues.",
        }

    @pytest.mark.asyncio
    async def test_non_iso_date_normalized(self, llm_factory, today) -> None:
        service = llm_factory(extraction={"recordType": "vision", "date": "March 3, 2023"})

        candidate = await service.extract("Eye exam", today=today)

        assert candidate["date"] == "2023-03-03"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "malformed",
        ["not json at all", '{"recordType": "dental", ', "", '["a", "list"]', "42"],
    )
    async def test_malformed_json_falls_back(self, llm_factory, today, malformed) -> None:
        service = llm_factory(extraction=malformed, summary="A summary.")

        candidate = await service.extract("Some report", today=today)

        assert candidate["recordType"] == "medical"
        assert candidate["title"] == "Medical Report"
        assert candidate["date"] == "2024-01-15"
        assert candidate["description"] == "A summary."

    @pytest.mark.asyncio
    async def test_network_error_returns_default_candidate(self, llm_factory, today) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = llm_factory(handler=handler)

        candidate = await service.extract("Some report", today=today)

        assert candidate["recordType"] == "medical"
        assert candidate["title"] == "Medical Report"
        assert candidate["date"] == "2024-01-15"
        assert candidate["description"] == FAILED_EXTRACTION_DESCRIPTION
        assert candidate["error"]

    @pytest.mark.asyncio
    async def test_one_failed_call_degrades_whole_candidate(self, llm_factory, today) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "response_format" in json.loads(request.content):
                return httpx.Response(500, text="upstream error")
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        service = llm_factory(handler=handler)

        candidate = await service.extract("Some report", today=today)

        assert candidate["description"] == FAILED_EXTRACTION_DESCRIPTION

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "extraction",
        [
            {},
            {"recordType": None, "title": None, "date": None},
            {"recordType": "", "title": "", "date": ""},
            {"recordType": "x-ray", "date": "unknown"},
        ],
    )
    async def test_required_fields_always_present(self, llm_factory, today, extraction) -> None:
        service = llm_factory(extraction=extraction)

        candidate = await service.extract("Some report", today=today)

        for field in ("recordType", "title", "date"):
            assert candidate[field]
