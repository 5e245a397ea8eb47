from __future__ import annotations

from datetime import datetime
from typing import Any

import pytest

from app.exceptions import DuplicateTitle, StoreError
from app.models.section_models import KnowledgeBaseCreate, SectionCreate
from app.services.section_store import YamlSectionStore


class FakeExtractionClient:
    """Stands in for the LLM: returns a canned reply and records every call."""

    model_id = "fake/resume-model"

    def __init__(self, reply: str = "{}", error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def complete(self, instruction_text: str, attached_document: dict[str, str] | None = None) -> str:
        self.calls.append({"instruction_text": instruction_text, "attached_document": attached_document})
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingStore(YamlSectionStore):
    """In-memory store that records create calls and can be told to fail."""

    def __init__(self):
        super().__init__(path=None)
        self.create_calls: list[SectionCreate] = []
        self.fail_titles: set[str] = set()
        self.duplicate_titles: set[str] = set()
        self.fail_metadata = False

    async def create_section(self, parent_id: str, data: SectionCreate):
        self.create_calls.append(data)
        if data.title in self.duplicate_titles:
            raise DuplicateTitle(data.title)
        if data.title in self.fail_titles:
            raise StoreError(f"create rejected for {data.title}")
        return await super().create_section(parent_id, data)

    async def update_parent(self, parent_id: str, metadata):
        if self.fail_metadata:
            raise StoreError("metadata backend unavailable")
        return await super().update_parent(parent_id, metadata)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
async def kb_id(store: RecordingStore) -> str:
    kb = await store.create_parent(KnowledgeBaseCreate(title="Main"))
    return kb.id


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 3, 14, 14, 5, 9)


@pytest.fixture
def fake_client() -> FakeExtractionClient:
    return FakeExtractionClient()
