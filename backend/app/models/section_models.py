from pydantic import BaseModel
from typing import Any, Optional
from enum import Enum

from app.models.resume_models import ResumeDocument


class ParentKind(str, Enum):
    """What owns a set of sections."""

    KNOWLEDGE_BASE = "knowledge_base"
    RESUME = "resume"


class ReconcileMode(str, Enum):
    """How a proposed section set is merged into storage."""

    IMPORT = "import"  # group by type, suffix-and-retry on collisions, never delete
    SYNC = "sync"  # full diff against the proposed set, including deletes


class ImportStatus(str, Enum):
    """States of a single import operation."""

    UPLOADED = "uploaded"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    MAPPING = "mapping"
    MAPPED = "mapped"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


# ── Persisted Records ───────────────────────────────────────────────────────


class Section(BaseModel):
    """A persisted section. ``content`` is always a decoded structured value."""

    id: str
    parent_id: str
    title: str
    type: str
    content: Any = {}
    order: int = 0


class SectionCreate(BaseModel):
    """Input for creating a section."""

    title: str
    type: str
    content: Optional[Any] = None
    order: Optional[int] = None


class SectionUpdate(BaseModel):
    """Input for updating a section. Only set fields are applied."""

    title: Optional[str] = None
    type: Optional[str] = None
    content: Optional[Any] = None
    order: Optional[int] = None


class KnowledgeBase(BaseModel):
    """A parent record (knowledge base or assembled resume)."""

    id: str
    kind: ParentKind = ParentKind.KNOWLEDGE_BASE
    title: str = "My Knowledge Base"
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class KnowledgeBaseCreate(BaseModel):
    """Input for creating a knowledge base or resume."""

    title: str = "My Knowledge Base"
    description: Optional[str] = None
    kind: ParentKind = ParentKind.KNOWLEDGE_BASE


# ── Reconciliation Results ──────────────────────────────────────────────────


class SectionFailure(BaseModel):
    """One section that could not be created/updated/deleted."""

    title: str
    type: Optional[str] = None
    operation: str  # "create" | "update" | "delete"
    error: str


class ReconcileReport(BaseModel):
    """Best-effort summary of one reconciliation pass."""

    created: list[Section] = []
    updated: list[Section] = []
    deleted: list[str] = []
    failures: list[SectionFailure] = []
    metadata_error: Optional[str] = None

    @property
    def all_failed(self) -> bool:
        """True when sections were attempted and no create/update succeeded."""
        return bool(self.failures) and not (self.created or self.updated)


class ImportResult(BaseModel):
    """Outcome of one import operation, including the states it went through."""

    status: ImportStatus
    history: list[ImportStatus] = []
    document: Optional[ResumeDocument] = None
    report: Optional[ReconcileReport] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
