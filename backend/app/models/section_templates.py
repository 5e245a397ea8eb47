"""
Section templates — display labels, collection/singleton shape and field
definitions for every known section type.

Collection-type sections store ``{"items": [...]}``; singletons store one
record keyed by field name. Unknown (custom) types fall back to "custom".
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class FieldDefinition(BaseModel):
    name: str
    label: str
    type: str = "text"  # text | textarea | date | checkbox | url | email | tel
    required: bool = False
    placeholder: str | None = None


class SectionTemplate(BaseModel):
    type: str
    label: str
    description: str
    is_collection: bool
    item_label: str | None = None
    fields: list[FieldDefinition]


def _f(name: str, label: str, type: str = "text", required: bool = False, placeholder: str | None = None) -> FieldDefinition:
    return FieldDefinition(name=name, label=label, type=type, required=required, placeholder=placeholder)


TEMPLATES: dict[str, SectionTemplate] = {
    "contact_info": SectionTemplate(
        type="contact_info",
        label="Contact Information",
        description="Your personal details and how to reach you.",
        is_collection=False,
        fields=[
            _f("fullName", "Full Name", required=True),
            _f("email", "Email", "email", required=True),
            _f("phone", "Phone", "tel"),
            _f("location", "Location", placeholder="e.g. New York, NY"),
            _f("linkedin", "LinkedIn URL", "url"),
            _f("portfolio", "Portfolio URL", "url"),
        ],
    ),
    "summary": SectionTemplate(
        type="summary",
        label="Professional Summary",
        description="A brief overview of your career and goals.",
        is_collection=False,
        fields=[
            _f("heading", "Heading", placeholder="e.g. Senior Software Engineer"),
            _f("summary", "Summary", "textarea", required=True),
        ],
    ),
    "experience": SectionTemplate(
        type="experience",
        label="Work Experience",
        description="Your past roles and employment history.",
        is_collection=True,
        item_label="Role",
        fields=[
            _f("role", "Job Title", required=True),
            _f("company", "Company", required=True),
            _f("location", "Location"),
            _f("startDate", "Start Date", "date", required=True),
            _f("endDate", "End Date", "date"),
            _f("isCurrent", "I currently work here", "checkbox"),
            _f("description", "Description", "textarea"),
        ],
    ),
    "education": SectionTemplate(
        type="education",
        label="Education",
        description="Degrees, schools, and academic achievements.",
        is_collection=True,
        item_label="School",
        fields=[
            _f("institution", "Institution", required=True),
            _f("degree", "Degree", required=True),
            _f("fieldOfStudy", "Field of Study"),
            _f("location", "Location"),
            _f("graduationDate", "Graduation Date", "date"),
            _f("details", "Additional Details", "textarea", placeholder="GPA, Honors, etc."),
        ],
    ),
    "skills": SectionTemplate(
        type="skills",
        label="Skills",
        description="Technical and professional skills.",
        is_collection=True,
        item_label="Skill Category",
        fields=[
            _f("category", "Category", placeholder="e.g. Programming Languages"),
            _f("items", "Skills", placeholder="Comma separated list (e.g. JS, React, Node)"),
        ],
    ),
    "projects": SectionTemplate(
        type="projects",
        label="Projects",
        description="Personal or professional projects.",
        is_collection=True,
        item_label="Project",
        fields=[
            _f("title", "Project Title", required=True),
            _f("link", "Link", "url"),
            _f("description", "Description", "textarea"),
            _f("technologies", "Technologies"),
        ],
    ),
    "certifications": SectionTemplate(
        type="certifications",
        label="Certifications",
        description="Professional certificates and licenses.",
        is_collection=True,
        item_label="Certificate",
        fields=[
            _f("name", "Certification Name", required=True),
            _f("issuer", "Issuer", required=True),
            _f("date", "Date", "date"),
            _f("expirationDate", "Expiration", "date"),
            _f("url", "Credential URL", "url"),
        ],
    ),
    "volunteer": SectionTemplate(
        type="volunteer",
        label="Volunteer Work",
        description="Community service and volunteer roles.",
        is_collection=True,
        item_label="Role",
        fields=[
            _f("role", "Role", required=True),
            _f("organization", "Organization", required=True),
            _f("startDate", "Start Date", "date"),
            _f("endDate", "End Date", "date"),
            _f("description", "Description", "textarea"),
        ],
    ),
    "custom": SectionTemplate(
        type="custom",
        label="Custom Section",
        description="Create your own section.",
        is_collection=True,
        item_label="Item",
        fields=[
            _f("title", "Title"),
            _f("description", "Description", "textarea"),
            _f("date", "Date"),
        ],
    ),
}

# Sections seeded into every newly created resume, in display order
DEFAULT_RESUME_SECTIONS: list[tuple[str, str]] = [
    ("Contact", "contact_info"),
    ("Summary", "summary"),
    ("Experience", "experience"),
    ("Education", "education"),
    ("Skills", "skills"),
    ("Projects", "projects"),
    ("Certifications", "certifications"),
    ("Awards", "custom"),
]


def get_template(section_type: str) -> SectionTemplate:
    """Template for a section type; unknown types use the custom template."""
    return TEMPLATES.get(section_type, TEMPLATES["custom"])


def is_collection(section_type: str) -> bool:
    return get_template(section_type).is_collection


def default_content(section_type: str) -> dict[str, Any]:
    """Empty content for a brand-new section of the given type."""
    template = get_template(section_type)
    if template.is_collection:
        return {"items": []}
    return {f.name: "" for f in template.fields}
