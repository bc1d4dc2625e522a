"""Shared pytest fixtures for the ingestion backend test suite."""

from __future__ import annotations

import copy
import json
import uuid
from datetime import date
from types import SimpleNamespace
from typing import Any, Callable

import httpx
import pytest

from app import database
from app.config import settings
from app.services.llm_extraction_service import LLMExtractionService
from app.services.storage_service import StorageService
from app.utils.security import UploadContext

CATEGORY_COLLECTIONS = (
    database.HEALTH_RECORDS,
    database.DENTAL_RECORDS,
    database.VISION_RECORDS,
    database.IMMUNIZATION_RECORDS,
    database.MEDICATIONS,
)


# ---------------------------------------------------------------------------
# In-memory stand-in for the motor client
# ---------------------------------------------------------------------------


def _matches(doc: dict, query: dict) -> bool:
    return all(doc.get(key) == value for key, value in query.items())


def _apply_update(doc: dict, update: dict, inserting: bool = False) -> None:
    doc.update(update.get("$set", {}))
    for key in update.get("$unset", {}):
        doc.pop(key, None)
    if inserting:
        doc.update(update.get("$setOnInsert", {}))


class FakeCursor:
    def __init__(self, docs: list[dict]) -> None:
        self._docs = docs

    async def to_list(self, length: int | None = None) -> list[dict]:
        return self._docs if length is None else self._docs[:length]


class FakeCollection:
    """Implements the handful of motor collection calls the app makes."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.docs: list[dict] = []
        self.fail_with: Exception | None = None

    def _first(self, query: dict) -> dict | None:
        return next((doc for doc in self.docs if _matches(doc, query)), None)

    async def insert_one(self, document: dict) -> SimpleNamespace:
        if self.fail_with is not None:
            raise self.fail_with
        stored = copy.deepcopy(document)
        stored.setdefault("_id", str(uuid.uuid4()))
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one(self, query: dict) -> dict | None:
        doc = self._first(query)
        return copy.deepcopy(doc) if doc else None

    def find(self, query: dict) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def find_one_and_update(self, query: dict, update: dict, return_document: Any = None) -> dict | None:
        doc = self._first(query)
        if doc is None:
            return None
        before = copy.deepcopy(doc)
        _apply_update(doc, update)
        return copy.deepcopy(doc) if return_document else before

    async def update_one(self, query: dict, update: dict, upsert: bool = False) -> SimpleNamespace:
        doc = self._first(query)
        if doc is not None:
            _apply_update(doc, update)
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            new_doc = dict(query)
            _apply_update(new_doc, update, inserting=True)
            self.docs.append(new_doc)
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=new_doc.get("_id"))
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def delete_one(self, query: dict) -> SimpleNamespace:
        doc = self._first(query)
        if doc is None:
            return SimpleNamespace(deleted_count=0)
        self.docs.remove(doc)
        return SimpleNamespace(deleted_count=1)


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    def __getattr__(self, name: str) -> FakeCollection:
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    def rows(self, name: str) -> list[dict]:
        return self[name].docs


class FakeMongoClient:
    def __init__(self) -> None:
        self.database = FakeDatabase()

    def __getitem__(self, name: str) -> FakeDatabase:
        return self.database

    def close(self) -> None:
        pass


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_db(monkeypatch: pytest.MonkeyPatch) -> FakeDatabase:
    """Point app.database at an in-memory database for the test."""
    client = FakeMongoClient()
    monkeypatch.setattr(database.db, "client", client)
    return client[settings.DATABASE_NAME]


@pytest.fixture
def storage(tmp_path) -> StorageService:
    return StorageService(root_dir=str(tmp_path / "uploads"), retry_delay=0)


@pytest.fixture
def context() -> UploadContext:
    return UploadContext(user_id="user-1")


@pytest.fixture
def today() -> date:
    return date(2024, 1, 15)


def completion(content: str) -> dict:
    """Minimal chat-completion response body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
    }


def make_llm_service(
    extraction: Any = None,
    summary: str = "Patient seen for a routine visit.",
    handler: Callable[[httpx.Request], httpx.Response] | None = None,
) -> LLMExtractionService:
    """Extraction service wired to a mock transport.

    The extraction call is recognized by its response_format; ``extraction``
    may be a dict (serialized to JSON) or a raw string returned verbatim.
    """
    requests: list[httpx.Request] = []

    def default_handler(request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        if "response_format" in payload:
            body = extraction if isinstance(extraction, str) else json.dumps(extraction or {})
            return httpx.Response(200, json=completion(body))
        return httpx.Response(200, json=completion(summary))

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return (handler or default_handler)(request)

    service = LLMExtractionService(
        api_key="sk-test",
        base_url="https://llm.test/v1",
        model="gpt-test",
        transport=httpx.MockTransport(recording_handler),
    )
    service.requests = requests
    return service


@pytest.fixture
def llm_factory() -> Callable[..., LLMExtractionService]:
    return make_llm_service
