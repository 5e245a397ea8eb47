from fastapi import APIRouter, Depends

from app.api.errors import to_http_error
from app.exceptions import ResumeImportError
from app.models.resume_models import ResumeDocument
from app.models.section_models import (
    KnowledgeBase,
    KnowledgeBaseCreate,
    ParentKind,
    ReconcileReport,
    Section,
    SectionCreate,
    SectionUpdate,
)
from app.models.section_templates import TEMPLATES, SectionTemplate
from app.services import reconciler
from app.services.import_service import load_document, sync_document
from app.services.section_store import YamlSectionStore
from app.utils.dependencies import get_section_store

router = APIRouter()


# ── Knowledge Bases ──────────────────────────────────────────────────────────


@router.get("/", response_model=list[KnowledgeBase])
async def list_knowledge_bases(
    kind: ParentKind | None = None,
    store: YamlSectionStore = Depends(get_section_store),
):
    """List knowledge bases (and/or resumes)."""
    return await store.list_parents(kind)


@router.post("/", response_model=KnowledgeBase, status_code=201)
async def create_knowledge_base(
    data: KnowledgeBaseCreate,
    store: YamlSectionStore = Depends(get_section_store),
):
    """Create a knowledge base, or a resume seeded with the default sections."""
    return await store.create_parent(data)


@router.get("/templates", response_model=dict[str, SectionTemplate])
async def list_section_templates():
    """Field definitions for every known section type."""
    return TEMPLATES


@router.get("/{kb_id}", response_model=KnowledgeBase)
async def get_knowledge_base(kb_id: str, store: YamlSectionStore = Depends(get_section_store)):
    try:
        return await store.get_parent(kb_id)
    except ResumeImportError as e:
        raise to_http_error(e)


@router.delete("/{kb_id}")
async def delete_knowledge_base(kb_id: str, store: YamlSectionStore = Depends(get_section_store)):
    """Delete a knowledge base and all of its sections."""
    try:
        await store.delete_parent(kb_id)
    except ResumeImportError as e:
        raise to_http_error(e)
    return {"deleted": True, "id": kb_id}


@router.get("/{kb_id}/document", response_model=ResumeDocument)
async def get_knowledge_base_document(kb_id: str, store: YamlSectionStore = Depends(get_section_store)):
    """The knowledge base as one ResumeDocument (stored profile + sections with their ids)."""
    try:
        return await load_document(store=store, parent_id=kb_id)
    except ResumeImportError as e:
        raise to_http_error(e)


@router.put("/{kb_id}/document", response_model=ReconcileReport)
async def sync_knowledge_base_document(
    kb_id: str,
    document: ResumeDocument,
    store: YamlSectionStore = Depends(get_section_store),
):
    """Make the knowledge base match a hand-edited ResumeDocument (creates, updates, deletes)."""
    try:
        return await sync_document(store=store, parent_id=kb_id, document=document)
    except ResumeImportError as e:
        raise to_http_error(e)


# ── Sections ─────────────────────────────────────────────────────────────────


@router.get("/{kb_id}/sections", response_model=list[Section])
async def list_sections(kb_id: str, store: YamlSectionStore = Depends(get_section_store)):
    """Sections of a knowledge base, ordered, with content decoded."""
    try:
        return await store.list_sections(kb_id)
    except ResumeImportError as e:
        raise to_http_error(e)


@router.post("/{kb_id}/sections", response_model=Section, status_code=201)
async def create_section(
    kb_id: str,
    data: SectionCreate,
    store: YamlSectionStore = Depends(get_section_store),
):
    """Add one section. A duplicate title (case-insensitive) is rejected with 409."""
    try:
        return await reconciler.create_section(store, kb_id, data)
    except ResumeImportError as e:
        raise to_http_error(e)


@router.put("/{kb_id}/sections/{section_id}", response_model=Section)
async def update_section(
    kb_id: str,
    section_id: str,
    data: SectionUpdate,
    store: YamlSectionStore = Depends(get_section_store),
):
    """Update a section. Renaming onto another section's title is rejected with 409."""
    try:
        return await reconciler.update_section(store, kb_id, section_id, data)
    except ResumeImportError as e:
        raise to_http_error(e)


@router.delete("/{kb_id}/sections/{section_id}")
async def delete_section(
    kb_id: str,
    section_id: str,
    store: YamlSectionStore = Depends(get_section_store),
):
    try:
        await reconciler.delete_section(store, kb_id, section_id)
    except ResumeImportError as e:
        raise to_http_error(e)
    return {"deleted": True, "id": section_id}
