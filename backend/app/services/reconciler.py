"""
Reconciler — merge a proposed section set into a parent's persisted sections.

Two paths:
  • Single explicit edits (create/update/delete one section): a title that
    collides case-insensitively with another section fails with DuplicateTitle.
  • Bulk reconciliation (reconcile_sections):
      IMPORT — sections are grouped by type with their items concatenated
               (known types take their template title), a
               colliding title gets one retry with an " (Imported HH:MM:SS)"
               suffix, nothing existing is deleted.
      SYNC   — full diff: persisted ids absent from the proposal are deleted,
               matching ids are updated, everything else is created.

Bulk passes are best-effort: each section's outcome is independent and
failures are collected into the ReconcileReport instead of aborting the pass.
Deletions always run before creates/updates. There is no rollback.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from app.exceptions import DuplicateTitle, InputError, NotFoundError
from app.models.resume_models import ResumeDocument, ResumeSection
from app.models.section_models import (
    ReconcileMode,
    ReconcileReport,
    Section,
    SectionCreate,
    SectionFailure,
    SectionUpdate,
)
from app.models.section_templates import TEMPLATES, get_template, is_collection
from app.services.section_store import SectionStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


# ── Single-Section Edits ─────────────────────────────────────────────────────


async def create_section(store: SectionStore, parent_id: str, data: SectionCreate) -> Section:
    """
    Create one section from a direct user edit.

    Raises:
        InputError: blank title.
        DuplicateTitle: the title is already used in this parent (no write happens).
    """
    title = _clean_title(data.title)
    existing = await store.list_sections(parent_id)
    if _title_taken(existing, title):
        raise DuplicateTitle(title)

    order = data.order if data.order is not None else len(existing)
    section = await store.create_section(
        parent_id,
        SectionCreate(title=title, type=data.type, content=data.content, order=order),
    )
    logger.info(f"Created section '{title}' ({data.type}) in {parent_id}")
    return section


async def update_section(
    store: SectionStore,
    parent_id: str,
    section_id: str,
    updates: SectionUpdate,
) -> Section:
    """
    Apply a partial update to one section.

    Raises:
        NotFoundError: the section does not belong to this parent.
        DuplicateTitle: a rename collides with a different section.
    """
    fields: dict[str, Any] = updates.model_dump(exclude_none=True)
    existing = await store.list_sections(parent_id)
    if not any(s.id == section_id for s in existing):
        raise NotFoundError(f"Section '{section_id}' not found")

    if "title" in fields:
        fields["title"] = _clean_title(fields["title"])
        if _title_taken(existing, fields["title"], exclude_id=section_id):
            raise DuplicateTitle(fields["title"])

    return await store.update_section(section_id, fields)


async def delete_section(store: SectionStore, parent_id: str, section_id: str) -> None:
    existing = await store.list_sections(parent_id)
    if not any(s.id == section_id for s in existing):
        raise NotFoundError(f"Section '{section_id}' not found")
    await store.delete_section(section_id)


# ── Bulk Reconciliation ──────────────────────────────────────────────────────


async def reconcile_sections(
    store: SectionStore,
    parent_id: str,
    proposed: list[ResumeSection],
    *,
    mode: ReconcileMode = ReconcileMode.IMPORT,
    now: Clock | None = None,
) -> ReconcileReport:
    """
    Reconcile ``proposed`` against the parent's persisted sections.

    Only the initial listing can fail the whole pass; per-section failures
    end up in ``report.failures``.
    """
    existing = await store.list_sections(parent_id)
    report = ReconcileReport()

    if mode == ReconcileMode.SYNC:
        await _sync(store, parent_id, proposed, existing, report)
    else:
        await _import(store, parent_id, proposed, existing, report, now or datetime.now)

    logger.info(
        f"Reconciled {parent_id} ({mode.value}): created={len(report.created)} "
        f"updated={len(report.updated)} deleted={len(report.deleted)} failed={len(report.failures)}"
    )
    return report


async def sync_metadata(store: SectionStore, parent_id: str, document: ResumeDocument) -> str | None:
    """
    Persist the non-section part of a document on the parent record.

    Returns an error message instead of raising: section sync goes ahead
    regardless of whether this write worked.
    """
    metadata = document.model_dump(mode="json", exclude={"sections"})
    try:
        await store.update_parent(parent_id, metadata)
    except Exception as e:
        logger.warning(f"Metadata update failed for {parent_id} (continuing with sections): {e}")
        return f"Failed to save profile metadata: {e}"
    return None


async def _import(
    store: SectionStore,
    parent_id: str,
    proposed: list[ResumeSection],
    existing: list[Section],
    report: ReconcileReport,
    now: Clock,
) -> None:
    taken = {s.title.casefold() for s in existing}
    next_order = max((s.order for s in existing), default=-1) + 1

    for group in group_by_type(proposed):
        if not group.items:
            continue
        title = group.label.strip() or get_template(group.type).label
        data = SectionCreate(
            title=title,
            type=group.type,
            content=section_content(group),
            order=next_order,
        )
        try:
            created = await _create_with_retry(store, parent_id, data, taken, now)
        except Exception as e:
            logger.warning(f"Import of section '{title}' failed: {e}")
            report.failures.append(SectionFailure(title=title, type=group.type, operation="create", error=str(e)))
            continue

        taken.add(created.title.casefold())
        report.created.append(created)
        next_order += 1


async def _create_with_retry(
    store: SectionStore,
    parent_id: str,
    data: SectionCreate,
    taken: set[str],
    now: Clock,
) -> Section:
    """First attempt with the proposed title, one retry with a timestamp suffix."""
    try:
        if data.title.casefold() in taken:
            raise DuplicateTitle(data.title)
        return await store.create_section(parent_id, data)
    except DuplicateTitle:
        suffixed = f"{data.title} (Imported {now():%H:%M:%S})"
        logger.warning(f"Section '{data.title}' already exists, retrying as '{suffixed}'")

    if suffixed.casefold() in taken:
        raise DuplicateTitle(suffixed)
    return await store.create_section(parent_id, data.model_copy(update={"title": suffixed}))


async def _sync(
    store: SectionStore,
    parent_id: str,
    proposed: list[ResumeSection],
    existing: list[Section],
    report: ReconcileReport,
) -> None:
    persisted_ids = {s.id for s in existing}
    retained = {p.id for p in proposed if p.id and p.id in persisted_ids}

    # Deletes first, so a rename-via-replace can't leave a stale duplicate
    live: dict[str, Section] = {}
    for section in existing:
        if section.id in retained:
            live[section.id] = section
            continue
        try:
            await store.delete_section(section.id)
            report.deleted.append(section.id)
        except Exception as e:
            logger.warning(f"Delete of section '{section.title}' failed: {e}")
            report.failures.append(SectionFailure(title=section.title, type=section.type, operation="delete", error=str(e)))
            live[section.id] = section

    for index, proposal in enumerate(proposed):
        is_update = proposal.id in retained
        operation = "update" if is_update else "create"
        title = proposal.label.strip()
        try:
            if not title:
                raise InputError("Section title cannot be empty")
            if _title_taken(live.values(), title, exclude_id=proposal.id if is_update else None):
                raise DuplicateTitle(title)

            fields = {"title": title, "type": proposal.type, "order": proposal.order, "content": section_content(proposal)}
            if is_update:
                section = await store.update_section(proposal.id, fields)
                report.updated.append(section)
            else:
                section = await store.create_section(parent_id, SectionCreate(**fields))
                report.created.append(section)
            live[section.id] = section
        except Exception as e:
            logger.warning(f"Sync {operation} of section '{title or index}' failed: {e}")
            report.failures.append(SectionFailure(title=title, type=proposal.type, operation=operation, error=str(e)))


def group_by_type(sections: list[ResumeSection]) -> list[ResumeSection]:
    """
    Merge same-type sections into one, concatenating their items.

    Known types are titled with the template label; custom types keep the
    first section's label. The first section of each type sets the position.
    """
    groups: dict[str, ResumeSection] = {}
    for section in sorted(sections, key=lambda s: s.order):
        if section.type in groups:
            groups[section.type].items.extend(section.items)
            continue
        label = section.label
        if section.type in TEMPLATES and section.type != "custom":
            label = TEMPLATES[section.type].label
        groups[section.type] = section.model_copy(
            update={"id": None, "label": label, "items": list(section.items)}
        )
    return list(groups.values())


def section_content(section: ResumeSection) -> dict[str, Any]:
    """Stored content for a document section: ``{"items": [...]}`` or a single record."""
    if is_collection(section.type):
        return {"items": section.items}
    return dict(section.items[0]) if section.items else {}


# ── Helpers ──────────────────────────────────────────────────────────────────


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise InputError("Section title cannot be empty")
    return cleaned


def _title_taken(sections, title: str, exclude_id: str | None = None) -> bool:
    """Case-insensitive title check, optionally ignoring one section."""
    folded = title.casefold()
    return any(s.id != exclude_id and s.title.casefold() == folded for s in sections)
