"""
Resume Mapper — loosely-typed extraction JSON → canonical ResumeDocument.

The model's output has no guaranteed shape, so every field is read with an
explicit presence/type check and a default. The output is fully populated:
downstream code never has to re-check optionality of the required parts.

Rules:
  • profile.name.full ← contact_info.fullName (placeholder "Unknown Name")
  • profile.location.city ← contact_info.location (composite string, not split)
  • portfolio → a single "Portfolio" entry in contacts.other_links
  • one section per non-empty known array, none for empty/absent ones
  • one section per custom section with items, type derived from its heading
"""

from __future__ import annotations

import itertools
import json
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any

from app.config import settings
from app.exceptions import MalformedResponse
from app.models.resume_models import (
    Contacts,
    DocumentMeta,
    LabeledLink,
    Location,
    ParseMeta,
    PersonName,
    Profile,
    ResumeDocument,
    ResumeSection,
    SourceInfo,
)
from app.models.section_templates import get_template
from app.utils.file_hash import document_id
from app.utils.text_cleanup import truncate

logger = logging.getLogger(__name__)

PARSER_NAME = "llm-resume-parser"
UNKNOWN_NAME = "Unknown Name"

# Extraction key → section type, in emission order
KNOWN_SECTIONS: list[tuple[str, str]] = [
    ("work_experience", "experience"),
    ("education", "education"),
    ("skills", "skills"),
    ("projects", "projects"),
    ("certifications", "certifications"),
    ("volunteer", "volunteer"),
]

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_DEBUG_NOTES_CHARS = 500

_section_counter = itertools.count(1)


# ── Public API ───────────────────────────────────────────────────────────────


def map_to_resume_document(
    data: Any,
    *,
    raw_text: str = "",
    file_name: str = "resume",
    source_type: str = "txt",
    page_count: int | None = None,
    model_id: str | None = None,
    resume_id: str | None = None,
) -> ResumeDocument:
    """
    Build a ResumeDocument from parsed extraction output.

    Raises:
        MalformedResponse: only when ``data`` cannot be read as a JSON object.
    """
    d = _coerce_object(data)
    now = datetime.now(timezone.utc).isoformat()

    document = DocumentMeta(
        resume_id=resume_id or document_id(raw_text or json.dumps(d, sort_keys=True)),
        language=_str_or_none(d.get("language")) or "en",
        created_at=now,
        updated_at=now,
        source=SourceInfo(type=source_type, filename=file_name, page_count=page_count),
        parse_meta=ParseMeta(
            parser=PARSER_NAME,
            model=model_id,
            debug_notes=_debug_notes(d, raw_text),
        ),
    )

    sections = map_sections(d)
    logger.info(
        f"Mapped resume '{file_name}': {len(sections)} sections "
        f"({', '.join(s.type for s in sections) or 'none'})"
    )

    return ResumeDocument(
        schema_version=settings.schema_version,
        document=document,
        profile=map_profile(d),
        sections=sections,
    )


def map_profile(d: dict[str, Any]) -> Profile:
    """contact_info + summary → Profile."""
    contact = _ensure_dict(d.get("contact_info"))

    summary_block = d.get("summary")
    if isinstance(summary_block, str):
        # Some models flatten the summary object into a plain string
        summary_block = {"summary": summary_block}
    summary_block = _ensure_dict(summary_block)

    other_links: list[LabeledLink] = []
    portfolio = _str_or_none(contact.get("portfolio"))
    if portfolio:
        other_links.append(LabeledLink(label="Portfolio", url=portfolio))

    return Profile(
        name=PersonName(full=_str_or_none(contact.get("fullName")) or UNKNOWN_NAME),
        headline=_str_or_none(summary_block.get("heading")),
        summary=_str_or_none(summary_block.get("summary")),
        location=Location(city=_str_or_none(contact.get("location"))),
        contacts=Contacts(
            email=_str_or_none(contact.get("email")),
            phone=_str_or_none(contact.get("phone")),
            linkedin=_str_or_none(contact.get("linkedin")),
            other_links=other_links,
        ),
    )


def map_sections(d: dict[str, Any]) -> list[ResumeSection]:
    """Known arrays first (fixed order), then custom sections in input order."""
    sections: list[ResumeSection] = []

    for key, section_type in KNOWN_SECTIONS:
        items = _ensure_items(d.get(key))
        if not items:
            continue
        sections.append(ResumeSection(
            id=new_section_id(),
            type=section_type,
            label=get_template(section_type).label,
            order=len(sections),
            items=items,
        ))

    for custom in _ensure_list(d.get("custom_sections")):
        if not isinstance(custom, dict):
            continue
        items = _ensure_items(custom.get("items"))
        if not items:
            continue
        heading = _str_or_none(custom.get("heading")) or "Custom Section"
        sections.append(ResumeSection(
            id=new_section_id(),
            type=custom_section_type(heading),
            label=heading,
            order=len(sections),
            items=items,
        ))

    return sections


def custom_section_type(heading: str) -> str:
    """'Publications & Talks' → 'publicationstalks'; nothing usable → 'custom'."""
    return _NON_ALNUM_RE.sub("", heading.lower()) or "custom"


def new_section_id() -> str:
    """Provisional section id: unique within the process, replaced on persist."""
    return f"section-{next(_section_counter)}-{time.time_ns():x}"


# ── Helpers ──────────────────────────────────────────────────────────────────


def _coerce_object(data: Any) -> dict[str, Any]:
    """Accept a dict, a JSON string of one, or a list whose first element is one."""
    if isinstance(data, (str, bytes)):
        try:
            data = json.loads(data)
        except json.JSONDecodeError as e:
            raise MalformedResponse(
                f"Extraction output is not valid JSON: {e}",
                snippet=truncate(str(data)),
            ) from e
    if isinstance(data, list):
        data = data[0] if data else {}
    if not isinstance(data, dict):
        raise MalformedResponse(
            f"Extraction output is not a JSON object (got {type(data).__name__})",
            snippet=truncate(repr(data)),
        )
    return data


def _debug_notes(d: dict[str, Any], raw_text: str) -> str:
    existing = d.get("debug_notes")
    if existing is None:
        existing = _ensure_dict(d.get("parse_meta")).get("debug_notes")
    if existing:
        return str(existing)
    return f"Raw response: {truncate(raw_text.strip(), _DEBUG_NOTES_CHARS)}"


def _ensure_items(val: Any) -> list[dict[str, Any]]:
    """List of item records; bare scalars are wrapped as {"value": ...}."""
    items: list[dict[str, Any]] = []
    for v in _ensure_list(val):
        if isinstance(v, dict):
            if v:
                items.append(v)
        elif v is not None and str(v).strip():
            items.append({"value": str(v).strip()})
    return items


def _ensure_list(val: Any) -> list:
    if isinstance(val, list):
        return val
    return []


def _ensure_dict(val: Any) -> dict[str, Any]:
    if isinstance(val, dict):
        return val
    return {}


def _str_or_none(val: Any) -> str | None:
    """Non-empty stripped string, or None for null/blank/non-scalar values."""
    if val is None or isinstance(val, (dict, list)):
        return None
    text = str(val).strip()
    return text or None
