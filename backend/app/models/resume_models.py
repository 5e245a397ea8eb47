from pydantic import BaseModel, Field
from typing import Any, Optional


# ── Document Metadata ───────────────────────────────────────────────────────


class SourceInfo(BaseModel):
    """Where the document came from."""

    type: str  # "pdf" | "docx" | "txt" | "image" | ...
    filename: str
    page_count: Optional[int] = None


class ParseMeta(BaseModel):
    """Which parser/model produced the document, plus free-text debug notes."""

    parser: str
    model: Optional[str] = None
    debug_notes: Optional[str] = None


class DocumentMeta(BaseModel):
    resume_id: str
    language: str = "en"
    created_at: str
    updated_at: str
    source: Optional[SourceInfo] = None
    parse_meta: Optional[ParseMeta] = None


# ── Profile ─────────────────────────────────────────────────────────────────


class PersonName(BaseModel):
    full: str
    first: Optional[str] = None
    last: Optional[str] = None


class Location(BaseModel):
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None


class LabeledLink(BaseModel):
    label: str
    url: str


class Contacts(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin: Optional[str] = None
    other_links: list[LabeledLink] = []


class Profile(BaseModel):
    """Contact and identity fields."""

    name: PersonName
    headline: Optional[str] = None
    summary: Optional[str] = None
    location: Location = Field(default_factory=Location)
    contacts: Contacts = Field(default_factory=Contacts)


# ── Sections ────────────────────────────────────────────────────────────────


class ResumeSection(BaseModel):
    """One titled, typed grouping of items.

    ``id`` is empty for sections that have not been persisted yet; mapper ids
    are provisional and never reused by the store.
    """

    id: Optional[str] = None
    type: str
    label: str
    order: int = 0
    items: list[dict[str, Any]] = []


# ── Main Document Model ─────────────────────────────────────────────────────


class ResumeDocument(BaseModel):
    """Canonical output of the import pipeline."""

    schema_version: str
    document: DocumentMeta
    profile: Profile
    sections: list[ResumeSection] = []


# ── Extraction Intermediates ────────────────────────────────────────────────


class ExtractedContent(BaseModel):
    """File content ready for the extraction service.

    Exactly one branch is populated: ``resume_text`` for plain text and
    word-processor files, ``encoded_file`` + ``content_type`` for the rest.
    """

    resume_text: Optional[str] = None
    encoded_file: Optional[str] = None
    content_type: Optional[str] = None
    file_name: str
    source_type: str
    page_count: Optional[int] = None

