import json

import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.exceptions import ServiceError
from app.main import app
from app.utils.dependencies import get_extraction_client, get_section_store
from conftest import FakeExtractionClient, RecordingStore

EXTRACTION = {
    "contact_info": {"fullName": "Jane Doe"},
    "work_experience": [{"role": "Dev"}],
    "education": [{"degree": "BSc"}],
}

UPLOAD = {"file": ("resume.txt", b"Jane Doe\nDev at Acme", "text/plain")}


@pytest.fixture
def api_store():
    return RecordingStore()


@pytest.fixture
def llm():
    return FakeExtractionClient(reply=json.dumps(EXTRACTION))


@pytest.fixture
def client(api_store, llm):
    app.dependency_overrides[get_section_store] = lambda: api_store
    app.dependency_overrides[get_extraction_client] = lambda: llm
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def kb(client):
    response = client.post("/api/knowledge-bases/", json={"title": "Main"})
    assert response.status_code == 201
    return response.json()["id"]


def test_health(client):
    assert client.get("/api/health").json()["status"] == "healthy"


# ── Knowledge Bases ──────────────────────────────────────────────────────────


def test_create_resume_is_seeded(client):
    response = client.post("/api/knowledge-bases/", json={"title": "CV", "kind": "resume"})
    resume_id = response.json()["id"]

    sections = client.get(f"/api/knowledge-bases/{resume_id}/sections").json()

    assert response.json()["kind"] == "resume"
    assert sections[0]["title"] == "Contact"
    assert len(sections) == 8


def test_list_filters_by_kind(client, kb):
    client.post("/api/knowledge-bases/", json={"title": "CV", "kind": "resume"})

    assert [p["id"] for p in client.get("/api/knowledge-bases/", params={"kind": "knowledge_base"}).json()] == [kb]
    assert len(client.get("/api/knowledge-bases/").json()) == 2


def test_templates(client):
    templates = client.get("/api/knowledge-bases/templates").json()

    assert templates["experience"]["label"] == "Work Experience"
    assert templates["summary"]["is_collection"] is False


def test_unknown_knowledge_base_is_404(client):
    assert client.get("/api/knowledge-bases/missing").status_code == 404
    assert client.get("/api/knowledge-bases/missing/sections").status_code == 404
    assert client.delete("/api/knowledge-bases/missing").status_code == 404


def test_delete_knowledge_base(client, kb):
    assert client.delete(f"/api/knowledge-bases/{kb}").json() == {"deleted": True, "id": kb}
    assert client.get(f"/api/knowledge-bases/{kb}").status_code == 404


# ── Sections ─────────────────────────────────────────────────────────────────


def test_section_crud(client, kb):
    created = client.post(f"/api/knowledge-bases/{kb}/sections", json={"title": "Skills", "type": "skills"})
    assert created.status_code == 201
    section_id = created.json()["id"]
    assert created.json()["content"] == {"items": []}

    updated = client.put(
        f"/api/knowledge-bases/{kb}/sections/{section_id}",
        json={"content": {"items": [{"category": "Languages", "items": "Python"}]}},
    )
    assert updated.status_code == 200
    assert updated.json()["title"] == "Skills"
    assert updated.json()["content"]["items"][0]["category"] == "Languages"

    assert client.delete(f"/api/knowledge-bases/{kb}/sections/{section_id}").status_code == 200
    assert client.get(f"/api/knowledge-bases/{kb}/sections").json() == []


def test_duplicate_section_title_is_409(client, api_store, kb):
    client.post(f"/api/knowledge-bases/{kb}/sections", json={"title": "Skills", "type": "skills"})
    api_store.create_calls.clear()

    response = client.post(f"/api/knowledge-bases/{kb}/sections", json={"title": "SKILLS", "type": "skills"})

    assert response.status_code == 409
    assert response.json()["detail"] == 'A section with the name "SKILLS" already exists.'
    assert api_store.create_calls == []


def test_blank_section_title_is_422(client, kb):
    response = client.post(f"/api/knowledge-bases/{kb}/sections", json={"title": " ", "type": "skills"})

    assert response.status_code == 422


def test_rename_collision_is_409(client, kb):
    client.post(f"/api/knowledge-bases/{kb}/sections", json={"title": "Skills", "type": "skills"})
    awards = client.post(f"/api/knowledge-bases/{kb}/sections", json={"title": "Awards", "type": "custom"}).json()

    response = client.put(f"/api/knowledge-bases/{kb}/sections/{awards['id']}", json={"title": "skills"})

    assert response.status_code == 409


def test_unknown_section_is_404(client, kb):
    assert client.put(f"/api/knowledge-bases/{kb}/sections/nope", json={"title": "x"}).status_code == 404
    assert client.delete(f"/api/knowledge-bases/{kb}/sections/nope").status_code == 404


# ── Import ───────────────────────────────────────────────────────────────────


def test_parse_returns_document_without_saving(client, api_store, llm):
    response = client.post("/api/import/parse", files=UPLOAD)

    assert response.status_code == 200
    body = response.json()
    assert body["profile"]["name"]["full"] == "Jane Doe"
    assert [s["type"] for s in body["sections"]] == ["experience", "education"]
    assert api_store.create_calls == []
    assert len(llm.calls) == 1


def test_import_upload(client, kb):
    response = client.post(f"/api/import/knowledge-bases/{kb}", files=UPLOAD)

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "done"
    assert body["history"][0] == "uploaded"
    assert [s["title"] for s in body["report"]["created"]] == ["Work Experience", "Education"]
    assert len(client.get(f"/api/knowledge-bases/{kb}/sections").json()) == 2


def test_import_into_unknown_knowledge_base_is_404(client):
    assert client.post("/api/import/knowledge-bases/missing", files=UPLOAD).status_code == 404


def test_extraction_service_failure_is_502(client, llm, kb):
    llm.error = ServiceError("Error parsing resume: upstream timeout")

    response = client.post(f"/api/import/knowledge-bases/{kb}", files=UPLOAD)

    assert response.status_code == 502
    assert response.json()["detail"] == "Error parsing resume: upstream timeout"


def test_malformed_reply_is_502(client, llm):
    llm.reply = "no json here"

    assert client.post("/api/import/parse", files=UPLOAD).status_code == 502


def test_empty_upload_is_422(client):
    response = client.post("/api/import/parse", files={"file": ("resume.pdf", b"", "application/pdf")})

    assert response.status_code == 422
    assert "empty" in response.json()["detail"]


def test_oversized_upload_is_400(client, monkeypatch):
    monkeypatch.setattr(settings, "max_upload_bytes", 10)

    response = client.post("/api/import/parse", files=UPLOAD)

    assert response.status_code == 400
    assert "too large" in response.json()["detail"]


def test_confirm_and_sync_reviewed_document(client, kb):
    document = client.post("/api/import/parse", files=UPLOAD).json()

    confirmed = client.post(f"/api/import/knowledge-bases/{kb}/confirm", json=document)
    assert confirmed.status_code == 200
    assert len(confirmed.json()["created"]) == 2

    sections = client.get(f"/api/knowledge-bases/{kb}/sections").json()
    document["sections"] = [
        {"id": sections[0]["id"], "type": "experience", "label": "Jobs", "order": 0, "items": [{"role": "Lead"}]}
    ]
    synced = client.put(f"/api/knowledge-bases/{kb}/document", json=document)

    assert synced.status_code == 200
    assert [s["title"] for s in synced.json()["updated"]] == ["Jobs"]
    assert synced.json()["deleted"] == [sections[1]["id"]]
    assert client.get(f"/api/knowledge-bases/{kb}").json()["metadata"]["profile"]["name"]["full"] == "Jane Doe"


def test_confirm_with_every_section_failing_is_500(client, api_store, kb):
    document = client.post("/api/import/parse", files=UPLOAD).json()
    api_store.fail_titles.update({"Work Experience", "Education"})

    response = client.post(f"/api/import/knowledge-bases/{kb}/confirm", json=document)

    assert response.status_code == 500
    assert "Every section failed" in response.json()["detail"]


def test_upload_with_every_section_failing_lists_each_error(client, api_store, kb):
    api_store.fail_titles.update({"Work Experience", "Education"})

    response = client.post(f"/api/import/knowledge-bases/{kb}", files=UPLOAD)

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert "Work Experience: create rejected for Work Experience" in detail
    assert "Education: create rejected for Education" in detail


def test_get_document_and_put_it_back(client, kb):
    client.post(f"/api/import/knowledge-bases/{kb}", files=UPLOAD)
    sections = client.get(f"/api/knowledge-bases/{kb}/sections").json()

    document = client.get(f"/api/knowledge-bases/{kb}/document")

    assert document.status_code == 200
    body = document.json()
    assert body["profile"]["name"]["full"] == "Jane Doe"
    assert [(s["id"], s["label"]) for s in body["sections"]] == [(s["id"], s["title"]) for s in sections]

    synced = client.put(f"/api/knowledge-bases/{kb}/document", json=body).json()

    assert synced["deleted"] == [] and synced["created"] == [] and synced["failures"] == []
    assert client.get(f"/api/knowledge-bases/{kb}/sections").json() == sections


def test_document_of_unknown_knowledge_base_is_404(client):
    assert client.get("/api/knowledge-bases/missing/document").status_code == 404


# ── Extraction Client Dependency ─────────────────────────────────────────────


def test_missing_api_key_is_400(api_store, monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    app.dependency_overrides[get_section_store] = lambda: api_store
    try:
        response = TestClient(app).post("/api/import/parse", files=UPLOAD, headers={"X-LLM-Provider": "google"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 400
    assert "Missing API key" in response.json()["detail"]


def test_unknown_model_is_400(api_store):
    app.dependency_overrides[get_section_store] = lambda: api_store
    try:
        response = TestClient(app).post(
            "/api/import/parse",
            files=UPLOAD,
            headers={"X-LLM-Provider": "groq", "X-LLM-Model": "not-a-model", "X-LLM-Key": "k"},
        )
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 400
    assert "Unknown model" in response.json()["detail"]


def test_providers_listing(client):
    providers = {p["id"]: p for p in client.get("/api/llm/providers").json()["providers"]}

    google = {m["key"]: m for m in providers["google"]["models"]}
    groq = {m["key"]: m for m in providers["groq"]["models"]}
    assert google["gemini-2.0-flash"]["supports_documents"] is True
    assert groq["llama-3.3-70b"]["supports_documents"] is False
