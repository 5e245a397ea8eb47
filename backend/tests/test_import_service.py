import base64
import json

import pytest

from app.exceptions import NotFoundError, ServiceError
from app.models.section_models import ImportStatus, KnowledgeBaseCreate, ParentKind, SectionCreate
from app.services import reconciler
from app.services.import_service import import_resume, load_document, parse_resume_file, sync_document
from app.utils.file_hash import document_id
from conftest import FakeExtractionClient

EXTRACTION = {
    "contact_info": {"fullName": "Jane Doe", "email": "jane@example.com"},
    "summary": {"heading": "Backend Engineer", "summary": "Ships things."},
    "work_experience": [{"role": "Dev", "company": "Acme"}],
    "skills": [{"category": "Languages", "items": "Python"}],
}

RESUME_TXT = b"Jane Doe\njane@example.com\nBackend Engineer at Acme"

HAPPY_PATH = [
    ImportStatus.UPLOADED,
    ImportStatus.EXTRACTING,
    ImportStatus.EXTRACTED,
    ImportStatus.MAPPING,
    ImportStatus.MAPPED,
    ImportStatus.RECONCILING,
    ImportStatus.DONE,
]


async def _import(store, kb_id, client, data=RESUME_TXT, file_name="resume.txt", content_type="text/plain", **kwargs):
    return await import_resume(
        file_bytes=data,
        file_name=file_name,
        content_type=content_type,
        parent_id=kb_id,
        client=client,
        store=store,
        **kwargs,
    )


async def test_successful_import_walks_every_state(store, kb_id):
    client = FakeExtractionClient(reply="```json\n" + json.dumps(EXTRACTION) + "\n```")

    result = await _import(store, kb_id, client)

    assert result.status == ImportStatus.DONE
    assert result.history == HAPPY_PATH
    assert result.error is None
    assert [s.title for s in result.report.created] == ["Work Experience", "Skills"]
    assert result.document.profile.name.full == "Jane Doe"
    assert result.document.document.parse_meta.model == "fake/resume-model"

    sections = await store.list_sections(kb_id)
    assert sections[0].content == {"items": [{"role": "Dev", "company": "Acme"}]}
    metadata = (await store.get_parent(kb_id)).metadata
    assert metadata["profile"]["headline"] == "Backend Engineer"


async def test_text_upload_is_sent_inline(store, kb_id):
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    await _import(store, kb_id, client)

    call = client.calls[0]
    assert call["attached_document"] is None
    assert "Backend Engineer at Acme" in call["instruction_text"]


async def test_pdf_upload_is_attached(store, kb_id):
    data = b"%PDF-1.4 fake"
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    result = await _import(store, kb_id, client, data=data, file_name="cv.pdf", content_type="application/pdf")

    assert result.status == ImportStatus.DONE
    assert client.calls[0]["attached_document"] == {
        "base64": base64.b64encode(data).decode("ascii"),
        "media_type": "application/pdf",
    }
    assert result.document.document.resume_id == document_id(data)
    assert result.document.document.source.type == "pdf"


async def test_unreadable_file_fails_while_extracting(store, kb_id):
    client = FakeExtractionClient()

    result = await _import(store, kb_id, client, data=b"", file_name="resume.pdf", content_type="application/pdf")

    assert result.status == ImportStatus.FAILED
    assert result.history[-2:] == [ImportStatus.EXTRACTING, ImportStatus.FAILED]
    assert result.error_type == "UnreadableFileError"
    assert client.calls == []
    assert store.create_calls == []


async def test_service_error_fails_while_extracting(store, kb_id):
    client = FakeExtractionClient(error=ServiceError("Error parsing resume: quota exceeded"))

    result = await _import(store, kb_id, client)

    assert result.status == ImportStatus.FAILED
    assert result.history[-2:] == [ImportStatus.EXTRACTING, ImportStatus.FAILED]
    assert result.error_type == "ServiceError"
    assert "quota exceeded" in result.error
    assert store.create_calls == []
    assert (await store.get_parent(kb_id)).metadata is None


async def test_malformed_reply_fails_while_mapping(store, kb_id):
    client = FakeExtractionClient(reply="Sorry, I can't help with that.")

    result = await _import(store, kb_id, client)

    assert result.status == ImportStatus.FAILED
    assert result.history[-2:] == [ImportStatus.MAPPING, ImportStatus.FAILED]
    assert result.error_type == "MalformedResponse"
    assert result.document is None
    assert store.create_calls == []


async def test_unknown_parent_fails_while_reconciling(store):
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    result = await _import(store, "missing", client)

    assert result.status == ImportStatus.FAILED
    assert result.history[-2:] == [ImportStatus.RECONCILING, ImportStatus.FAILED]
    assert result.error_type == "NotFoundError"


async def test_partial_failure_is_still_done(store, kb_id):
    store.fail_titles.add("Skills")
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    result = await _import(store, kb_id, client)

    assert result.status == ImportStatus.DONE
    assert [s.title for s in result.report.created] == ["Work Experience"]
    assert [f.title for f in result.report.failures] == ["Skills"]


async def test_every_section_failing_marks_the_import_failed(store, kb_id):
    store.fail_titles.update({"Work Experience", "Skills"})
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    result = await _import(store, kb_id, client)

    assert result.status == ImportStatus.FAILED
    assert result.history[-2:] == [ImportStatus.RECONCILING, ImportStatus.FAILED]
    assert result.error_type == "PartialReconciliationFailure"
    assert "Work Experience" in result.error
    assert result.report is not None


async def test_metadata_failure_does_not_block_sections(store, kb_id):
    store.fail_metadata = True
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    result = await _import(store, kb_id, client)

    assert result.status == ImportStatus.DONE
    assert result.report.metadata_error
    assert len(result.report.created) == 2


async def test_reimport_keeps_both_copies(store, kb_id, fixed_clock):
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    await _import(store, kb_id, client, now=fixed_clock)
    result = await _import(store, kb_id, client, now=fixed_clock)

    assert [s.title for s in result.report.created] == [
        "Work Experience (Imported 14:05:09)",
        "Skills (Imported 14:05:09)",
    ]
    assert len(await store.list_sections(kb_id)) == 4


async def test_parse_resume_file_writes_nothing(store, kb_id):
    client = FakeExtractionClient(reply=json.dumps(EXTRACTION))

    document = await parse_resume_file(
        file_bytes=RESUME_TXT, file_name="resume.txt", content_type="text/plain", client=client
    )

    assert [s.type for s in document.sections] == ["experience", "skills"]
    assert document.document.source.filename == "resume.txt"
    assert store.create_calls == []
    assert await store.list_sections(kb_id) == []


async def test_sync_document_replaces_sections(store, kb_id):
    await reconciler.create_section(store, kb_id, SectionCreate(title="Awards", type="custom"))
    document = await parse_resume_file(
        file_bytes=RESUME_TXT,
        file_name="resume.txt",
        content_type="text/plain",
        client=FakeExtractionClient(reply=json.dumps(EXTRACTION)),
    )

    report = await sync_document(store=store, parent_id=kb_id, document=document)

    assert len(report.deleted) == 1
    assert [s.title for s in await store.list_sections(kb_id)] == ["Work Experience", "Skills"]


async def test_every_section_failing_reports_each_error(store, kb_id):
    store.fail_titles.update({"Work Experience", "Skills"})

    result = await _import(store, kb_id, FakeExtractionClient(reply=json.dumps(EXTRACTION)))

    assert "Work Experience: create rejected for Work Experience" in result.error
    assert "Skills: create rejected for Skills" in result.error


async def test_load_document_merges_metadata_and_sections(store, kb_id):
    await _import(store, kb_id, FakeExtractionClient(reply=json.dumps(EXTRACTION)))
    persisted = await store.list_sections(kb_id)

    document = await load_document(store=store, parent_id=kb_id)

    assert document.profile.name.full == "Jane Doe"
    assert document.profile.headline == "Backend Engineer"
    assert [(s.id, s.label, s.type) for s in document.sections] == [(s.id, s.title, s.type) for s in persisted]
    assert document.sections[0].items == [{"role": "Dev", "company": "Acme"}]


async def test_load_document_without_metadata_uses_defaults(store):
    resume = await store.create_parent(KnowledgeBaseCreate(title="CV", kind=ParentKind.RESUME))

    document = await load_document(store=store, parent_id=resume.id)

    assert document.document.resume_id == resume.id
    assert document.profile.name.full
    by_type = {s.type: s for s in document.sections}
    assert by_type["contact_info"].items == [{
        "fullName": "", "email": "", "phone": "", "location": "", "linkedin": "", "portfolio": "",
    }]
    assert by_type["experience"].items == []


async def test_loaded_document_syncs_back_unchanged(store):
    resume = await store.create_parent(KnowledgeBaseCreate(title="CV", kind=ParentKind.RESUME))
    contact = (await store.list_sections(resume.id))[0]
    await store.update_section(contact.id, {"content": {"fullName": "Ada", "email": "a@x"}})
    before = await store.list_sections(resume.id)

    document = await load_document(store=store, parent_id=resume.id)
    report = await sync_document(store=store, parent_id=resume.id, document=document)

    assert report.failures == [] and report.deleted == [] and report.created == []
    assert len(report.updated) == len(before)
    after = await store.list_sections(resume.id)
    assert [(s.id, s.title, s.content) for s in after] == [(s.id, s.title, s.content) for s in before]


async def test_load_document_unknown_parent(store):
    with pytest.raises(NotFoundError):
        await load_document(store=store, parent_id="missing")
