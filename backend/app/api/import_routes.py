from fastapi import APIRouter, HTTPException, UploadFile, File, Depends
import logging

from app.api.errors import STATUS_BY_ERROR_TYPE, to_http_error
from app.config import settings
from app.exceptions import ResumeImportError
from app.models.resume_models import ResumeDocument
from app.models.section_models import ImportResult, ImportStatus, ReconcileReport
from app.services.import_service import failure_summary, import_document, import_resume, parse_resume_file
from app.services.llm_service import LLMExtractionClient
from app.services.section_store import YamlSectionStore
from app.utils.dependencies import get_extraction_client, get_section_store

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    file_bytes = await file.read()
    if len(file_bytes) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=400,
            detail=f"File too large (max {settings.max_upload_bytes // (1024 * 1024)} MB)",
        )
    return file_bytes


@router.post("/parse", response_model=ResumeDocument)
async def parse_upload(
    file: UploadFile = File(...),
    client: LLMExtractionClient = Depends(get_extraction_client),
):
    """Parse an uploaded resume (PDF/DOCX/TXT/image) for review. Nothing is saved."""
    file_bytes = await _read_upload(file)
    try:
        return await parse_resume_file(
            file_bytes=file_bytes,
            file_name=file.filename,
            content_type=file.content_type,
            client=client,
        )
    except ResumeImportError as e:
        raise to_http_error(e)


@router.post("/knowledge-bases/{kb_id}", response_model=ImportResult)
async def import_upload(
    kb_id: str,
    file: UploadFile = File(...),
    client: LLMExtractionClient = Depends(get_extraction_client),
    store: YamlSectionStore = Depends(get_section_store),
):
    """Parse an uploaded resume and merge its sections into a knowledge base."""
    file_bytes = await _read_upload(file)
    result = await import_resume(
        file_bytes=file_bytes,
        file_name=file.filename,
        content_type=file.content_type,
        parent_id=kb_id,
        client=client,
        store=store,
    )
    if result.status == ImportStatus.FAILED:
        raise HTTPException(
            status_code=STATUS_BY_ERROR_TYPE.get(result.error_type, 500),
            detail=result.error,
        )
    return result


@router.post("/knowledge-bases/{kb_id}/confirm", response_model=ReconcileReport)
async def confirm_import(
    kb_id: str,
    document: ResumeDocument,
    store: YamlSectionStore = Depends(get_section_store),
):
    """Merge a reviewed ResumeDocument into a knowledge base (bulk import rules)."""
    try:
        report = await import_document(store=store, parent_id=kb_id, document=document)
    except ResumeImportError as e:
        raise to_http_error(e)
    if report.all_failed:
        raise HTTPException(
            status_code=500,
            detail=failure_summary(report),
        )
    return report
