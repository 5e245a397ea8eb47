"""
Translate pipeline/store errors into HTTP errors. Messages pass through verbatim.
"""

from __future__ import annotations

from fastapi import HTTPException

from app.exceptions import (
    DuplicateTitle,
    InputError,
    MalformedResponse,
    NotFoundError,
    ResumeImportError,
    ServiceError,
    StoreError,
)

# Most specific first
_STATUS_CODES: list[tuple[type[ResumeImportError], int]] = [
    (DuplicateTitle, 409),
    (InputError, 422),
    (NotFoundError, 404),
    (ServiceError, 502),
    (MalformedResponse, 502),
    (StoreError, 500),
]

# Same mapping by class name, for ImportResult.error_type
STATUS_BY_ERROR_TYPE = {cls.__name__: code for cls, code in _STATUS_CODES}
STATUS_BY_ERROR_TYPE["UnreadableFileError"] = 422
STATUS_BY_ERROR_TYPE["PartialReconciliationFailure"] = 500


def to_http_error(error: ResumeImportError) -> HTTPException:
    for cls, code in _STATUS_CODES:
        if isinstance(error, cls):
            return HTTPException(status_code=code, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))
