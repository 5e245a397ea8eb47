"""
Section Store — persisted knowledge bases/resumes and their sections.

The reconciler talks to storage only through the SectionStore protocol, so
tests and alternative backends can substitute their own implementation.

YamlSectionStore keeps everything in memory and persists to a YAML file so
data survives server restarts. Section content crosses the storage boundary
exactly once in each direction: encode_content() serializes it to a JSON
string on write, decode_content() turns it back into a structured value on
read. Nothing above this module ever sees the encoded form.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Any, Protocol

import yaml

from app.exceptions import NotFoundError, StoreError
from app.models.section_models import (
    KnowledgeBase,
    KnowledgeBaseCreate,
    ParentKind,
    Section,
    SectionCreate,
)
from app.models.section_templates import DEFAULT_RESUME_SECTIONS, default_content, is_collection

logger = logging.getLogger(__name__)


class SectionStore(Protocol):
    """The narrow CRUD surface the reconciler needs."""

    async def list_sections(self, parent_id: str) -> list[Section]: ...

    async def create_section(self, parent_id: str, data: SectionCreate) -> Section: ...

    async def update_section(self, section_id: str, fields: dict[str, Any]) -> Section: ...

    async def delete_section(self, section_id: str) -> None: ...

    async def get_parent(self, parent_id: str) -> KnowledgeBase: ...

    async def update_parent(self, parent_id: str, metadata: dict[str, Any] | None) -> None: ...


# ── Content Codec ────────────────────────────────────────────────────────────


def encode_content(content: Any) -> str:
    """Serialize section content for storage."""
    return json.dumps(content if content is not None else {}, ensure_ascii=False)


def decode_content(raw: Any, section_type: str, section_id: str = "?") -> Any:
    """
    Normalize stored content into a structured value.

    Strings are JSON-decoded (undecodable ones become ``{}``), and collection
    sections always come back as ``{"items": [...]}``.
    """
    content = raw
    if isinstance(content, str):
        try:
            content = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse content for section {section_id}: {e}")
            content = {}
    if content is None:
        content = {}

    if is_collection(section_type):
        if isinstance(content, list):
            content = {"items": content}
        elif isinstance(content, dict) and not isinstance(content.get("items"), list):
            content = {**content, "items": []}
    return content


# ── YAML Store ───────────────────────────────────────────────────────────────


class YamlSectionStore:
    """
    SectionStore backed by a YAML file.

    ``path=None`` keeps everything in memory only (handy for tests).
    """

    def __init__(self, path: Path | None = None):
        self._path = path
        self._parents: dict[str, dict[str, Any]] | None = None
        self._sections: dict[str, dict[str, Any]] | None = None

    # ── Persistence ──────────────────────────────────────────────────────

    def _load(self) -> None:
        if self._parents is not None:
            return

        raw = None
        if self._path is not None and self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    raw = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise StoreError(f"Failed to read {self._path}: {e}") from e

        self._parents, self._sections = {}, {}
        if not raw or not isinstance(raw, dict):
            return

        for item in raw.get("knowledge_bases") or []:
            if isinstance(item, dict) and item.get("id"):
                self._parents[item["id"]] = item
        for item in raw.get("sections") or []:
            if isinstance(item, dict) and item.get("id") and item.get("parent_id") in self._parents:
                self._sections[item["id"]] = item
        logger.info(
            f"Loaded {len(self._parents)} knowledge bases, {len(self._sections)} sections from {self._path}"
        )

    def _save(self) -> None:
        if self._path is None:
            return
        data = {
            "knowledge_bases": list(self._parents.values()),
            "sections": list(self._sections.values()),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        except OSError as e:
            raise StoreError(f"Failed to save {self._path}: {e}") from e

    # ── Parents ──────────────────────────────────────────────────────────

    async def list_parents(self, kind: ParentKind | None = None) -> list[KnowledgeBase]:
        self._load()
        parents = [_to_parent(p) for p in self._parents.values()]
        if kind is not None:
            parents = [p for p in parents if p.kind == kind]
        return parents

    async def get_parent(self, parent_id: str) -> KnowledgeBase:
        self._load()
        record = self._parents.get(parent_id)
        if record is None:
            raise NotFoundError(f"Knowledge base '{parent_id}' not found")
        return _to_parent(record)

    async def create_parent(self, data: KnowledgeBaseCreate) -> KnowledgeBase:
        """Create a knowledge base or resume. Resumes start with the default sections."""
        self._load()
        record = {
            "id": str(uuid.uuid4()),
            "kind": data.kind.value,
            "title": data.title,
            "description": data.description,
            "metadata": None,
        }
        self._parents[record["id"]] = record

        if data.kind == ParentKind.RESUME:
            for index, (title, section_type) in enumerate(DEFAULT_RESUME_SECTIONS):
                self._insert_section(record["id"], title, section_type, default_content(section_type), index)

        self._save()
        logger.info(f"Created {data.kind.value}: id={record['id']} title={data.title}")
        return _to_parent(record)

    async def update_parent(self, parent_id: str, metadata: dict[str, Any] | None) -> None:
        self._load()
        record = self._parents.get(parent_id)
        if record is None:
            raise NotFoundError(f"Knowledge base '{parent_id}' not found")
        record["metadata"] = encode_content(metadata) if metadata is not None else None
        self._save()
        logger.info(f"Updated metadata for {parent_id}")

    async def delete_parent(self, parent_id: str) -> None:
        """Delete a parent and all of its sections."""
        self._load()
        if self._parents.pop(parent_id, None) is None:
            raise NotFoundError(f"Knowledge base '{parent_id}' not found")
        for section_id in [s["id"] for s in self._sections.values() if s["parent_id"] == parent_id]:
            del self._sections[section_id]
        self._save()
        logger.info(f"Deleted knowledge base {parent_id}")

    # ── Sections ─────────────────────────────────────────────────────────

    async def list_sections(self, parent_id: str) -> list[Section]:
        """Sections of a parent, ordered by ``order``, content decoded."""
        self._load()
        if parent_id not in self._parents:
            raise NotFoundError(f"Knowledge base '{parent_id}' not found")
        sections = [_to_section(s) for s in self._sections.values() if s["parent_id"] == parent_id]
        return sorted(sections, key=lambda s: s.order)

    async def get_section(self, section_id: str) -> Section:
        self._load()
        record = self._sections.get(section_id)
        if record is None:
            raise NotFoundError(f"Section '{section_id}' not found")
        return _to_section(record)

    async def create_section(self, parent_id: str, data: SectionCreate) -> Section:
        self._load()
        if parent_id not in self._parents:
            raise NotFoundError(f"Knowledge base '{parent_id}' not found")
        if not data.title.strip():
            raise StoreError("Section title cannot be empty")
        order = data.order if data.order is not None else self._count(parent_id)
        content = data.content if data.content is not None else default_content(data.type)
        record = self._insert_section(parent_id, data.title, data.type, content, order)
        self._save()
        logger.info(f"Section created: id={record['id']} title={data.title}")
        return _to_section(record)

    async def update_section(self, section_id: str, fields: dict[str, Any]) -> Section:
        self._load()
        record = self._sections.get(section_id)
        if record is None:
            raise NotFoundError(f"Section '{section_id}' not found")

        for key in ("title", "type", "order"):
            if fields.get(key) is not None:
                record[key] = fields[key]
        if fields.get("content") is not None:
            record["content"] = encode_content(fields["content"])

        self._save()
        logger.info(f"Section updated: id={section_id}")
        return _to_section(record)

    async def delete_section(self, section_id: str) -> None:
        self._load()
        if self._sections.pop(section_id, None) is None:
            raise NotFoundError(f"Section '{section_id}' not found")
        self._save()
        logger.info(f"Section deleted: id={section_id}")

    # ── Helpers ──────────────────────────────────────────────────────────

    def _insert_section(self, parent_id: str, title: str, section_type: str, content: Any, order: int) -> dict[str, Any]:
        record = {
            "id": str(uuid.uuid4()),
            "parent_id": parent_id,
            "title": title,
            "type": section_type,
            "content": encode_content(content),
            "order": order,
        }
        self._sections[record["id"]] = record
        return record

    def _count(self, parent_id: str) -> int:
        return sum(1 for s in self._sections.values() if s["parent_id"] == parent_id)


def _to_section(record: dict[str, Any]) -> Section:
    return Section(
        id=record["id"],
        parent_id=record["parent_id"],
        title=record.get("title", ""),
        type=record.get("type", "custom"),
        content=decode_content(record.get("content"), record.get("type", "custom"), record["id"]),
        order=record.get("order") or 0,
    )


def _to_parent(record: dict[str, Any]) -> KnowledgeBase:
    metadata = record.get("metadata")
    if isinstance(metadata, str):
        try:
            metadata = json.loads(metadata)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse metadata for {record['id']}: {e}")
            metadata = None
    return KnowledgeBase(
        id=record["id"],
        kind=ParentKind(record.get("kind", ParentKind.KNOWLEDGE_BASE.value)),
        title=record.get("title") or "My Knowledge Base",
        description=record.get("description"),
        metadata=metadata if isinstance(metadata, dict) else None,
    )
