"""
Error taxonomy for the resume import pipeline and section store.

Hard failures (InputError, ServiceError, MalformedResponse) abort an import
before anything is written. DuplicateTitle is raised on the single-section
path; bulk imports resolve it internally. StoreError covers the persisted
store's own transport/validation failures.
"""

from __future__ import annotations


class ResumeImportError(Exception):
    """Base class for all pipeline errors."""


class InputError(ResumeImportError, ValueError):
    """Missing or invalid input — reported before any external call."""


class UnreadableFileError(InputError):
    """The uploaded file could not be read into text or a payload."""


class ServiceError(ResumeImportError):
    """The extraction service failed (network, quota, provider error)."""


class MalformedResponse(ResumeImportError):
    """The extraction service returned text with no recoverable JSON object."""

    def __init__(self, message: str, snippet: str = ""):
        super().__init__(message)
        self.snippet = snippet


class DuplicateTitle(ResumeImportError):
    """A section title collides (case-insensitively) with an existing one."""

    def __init__(self, title: str):
        super().__init__(f'A section with the name "{title}" already exists.')
        self.title = title


class StoreError(ResumeImportError):
    """The persisted store rejected or failed a call."""


class NotFoundError(StoreError):
    """A knowledge base, resume or section id does not exist."""
