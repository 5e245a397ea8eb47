"""
Import Service — upload → ResumeDocument → persisted sections.

Pipeline steps:
  1. Extract file content (text or base64 payload)
  2. Ask the extraction model for the canonical JSON
  3. Map the JSON onto a ResumeDocument
  4. Reconcile the document's sections into the knowledge base (import mode)

State machine for one import:
  Uploaded → Extracting → Extracted → Mapping → Mapped → Reconciling → Done
  with Failed reachable from Extracting, Mapping, or Reconciling (only when
  every section failed). Nothing is written before Reconciling, so abandoning
  an import earlier has no side effects.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError

from app.config import settings
from app.exceptions import ResumeImportError
from app.models.resume_models import (
    DocumentMeta,
    ExtractedContent,
    PersonName,
    Profile,
    ResumeDocument,
    ResumeSection,
)
from app.models.section_models import ImportResult, ImportStatus, ReconcileMode, ReconcileReport, Section
from app.models.section_templates import is_collection
from app.services.file_extractor import extract_file_content
from app.services.llm_service import ExtractionClient, parse_json_response, request_extraction
from app.services.reconciler import Clock, reconcile_sections, sync_metadata
from app.services.resume_mapper import UNKNOWN_NAME, map_to_resume_document
from app.services.section_store import SectionStore
from app.utils.file_hash import document_id

logger = logging.getLogger(__name__)


# ── Public API ───────────────────────────────────────────────────────────────


async def parse_resume_file(
    *,
    file_bytes: bytes,
    file_name: str,
    content_type: str | None,
    client: ExtractionClient,
) -> ResumeDocument:
    """Parse an upload into a ResumeDocument without touching storage (review step)."""
    extracted, raw = await _extract(file_bytes, file_name, content_type, client)
    return _map(extracted, raw, file_bytes, client)


async def import_resume(
    *,
    file_bytes: bytes,
    file_name: str,
    content_type: str | None,
    parent_id: str,
    client: ExtractionClient,
    store: SectionStore,
    now: Clock | None = None,
) -> ImportResult:
    """
    Run the full import for one uploaded file.

    Hard failures end in ``FAILED`` with the message and error type recorded;
    partial section failures still end in ``DONE`` with ``report.failures`` set.
    """
    result = ImportResult(status=ImportStatus.UPLOADED, history=[ImportStatus.UPLOADED])
    logger.info(f"Import started: '{file_name}' → {parent_id}")

    try:
        _advance(result, ImportStatus.EXTRACTING)
        extracted, raw = await _extract(file_bytes, file_name, content_type, client)
        _advance(result, ImportStatus.EXTRACTED)

        _advance(result, ImportStatus.MAPPING)
        result.document = _map(extracted, raw, file_bytes, client)
        _advance(result, ImportStatus.MAPPED)

        _advance(result, ImportStatus.RECONCILING)
        report = await import_document(store=store, parent_id=parent_id, document=result.document, now=now)
    except ResumeImportError as e:
        return _fail(result, e)

    result.report = report
    if report.all_failed:
        result.error = failure_summary(report)
        result.error_type = "PartialReconciliationFailure"
        _advance(result, ImportStatus.FAILED)
        return result

    _advance(result, ImportStatus.DONE)
    return result


async def import_document(
    *,
    store: SectionStore,
    parent_id: str,
    document: ResumeDocument,
    now: Clock | None = None,
) -> ReconcileReport:
    """Merge an (already reviewed) document into a knowledge base."""
    metadata_error = await sync_metadata(store, parent_id, document)
    report = await reconcile_sections(store, parent_id, document.sections, mode=ReconcileMode.IMPORT, now=now)
    report.metadata_error = metadata_error
    return report


async def sync_document(
    *,
    store: SectionStore,
    parent_id: str,
    document: ResumeDocument,
) -> ReconcileReport:
    """Make a knowledge base match a hand-edited document exactly."""
    metadata_error = await sync_metadata(store, parent_id, document)
    report = await reconcile_sections(store, parent_id, document.sections, mode=ReconcileMode.SYNC)
    report.metadata_error = metadata_error
    return report


async def load_document(*, store: SectionStore, parent_id: str) -> ResumeDocument:
    """
    Rebuild a ResumeDocument from a parent's stored metadata and its sections.

    Sections keep their persisted ids, so the result can be edited and sent
    straight back through sync_document().
    """
    parent = await store.get_parent(parent_id)
    sections = [_to_resume_section(s) for s in await store.list_sections(parent_id)]

    metadata = parent.metadata or {}
    try:
        return ResumeDocument.model_validate({**metadata, "sections": sections})
    except ValidationError as e:
        if metadata:
            logger.warning(f"Stored metadata for {parent_id} is not a valid document, using defaults: {e}")

    now = datetime.now(timezone.utc).isoformat()
    return ResumeDocument(
        schema_version=settings.schema_version,
        document=DocumentMeta(resume_id=parent_id, created_at=now, updated_at=now),
        profile=Profile(name=PersonName(full=UNKNOWN_NAME)),
        sections=sections,
    )


def failure_summary(report: ReconcileReport) -> str:
    """One-line message for an import where every section failed."""
    return "Every section failed to import: " + "; ".join(f"{f.title}: {f.error}" for f in report.failures)


# ── Stages ───────────────────────────────────────────────────────────────────


async def _extract(
    file_bytes: bytes,
    file_name: str,
    content_type: str | None,
    client: ExtractionClient,
) -> tuple[ExtractedContent, str]:
    extracted = extract_file_content(file_bytes, file_name, content_type)
    raw = await request_extraction(
        client,
        resume_text=extracted.resume_text,
        encoded_file=extracted.encoded_file,
        content_type=extracted.content_type,
    )
    return extracted, raw


def _map(
    extracted: ExtractedContent,
    raw: str,
    file_bytes: bytes,
    client: ExtractionClient,
) -> ResumeDocument:
    data = parse_json_response(raw)
    return map_to_resume_document(
        data,
        raw_text=raw,
        file_name=extracted.file_name,
        source_type=extracted.source_type,
        page_count=extracted.page_count,
        model_id=getattr(client, "model_id", None),
        resume_id=document_id(file_bytes),
    )


# ── Helpers ──────────────────────────────────────────────────────────────────


def _to_resume_section(section: Section) -> ResumeSection:
    content = section.content if isinstance(section.content, dict) else {}
    if is_collection(section.type):
        items = [item for item in content.get("items") or [] if isinstance(item, dict)]
    else:
        items = [content] if content else []
    return ResumeSection(id=section.id, type=section.type, label=section.title, order=section.order, items=items)


def _advance(result: ImportResult, status: ImportStatus) -> None:
    result.status = status
    result.history.append(status)
    logger.info(f"Import → {status.value}")


def _fail(result: ImportResult, error: ResumeImportError) -> ImportResult:
    failed_at = result.status
    result.error = str(error)
    result.error_type = type(error).__name__
    _advance(result, ImportStatus.FAILED)
    logger.error(f"Import failed while {failed_at.value}: {result.error_type}: {error}")
    return result
