from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import Query, UploadFile
from fastapi.responses import JSONResponse

from identity_hub.services.attachments import UploadedFile
from identity_hub.utils.base import Result, unwrap
from identity_hub.utils.response import envelope


def respond(result: Result[Any]) -> JSONResponse:
    """Raise the carried error of an Err, wrap an Ok in the response envelope."""
    value = unwrap(result)
    return JSONResponse(status_code=result.status_code, content=envelope(result.status_code, result.message, value))


def list_query(
    name: Optional[str] = None,
    is_active: Optional[bool] = None,
    created_by: Optional[str] = None,
    updated_by: Optional[str] = None,
    created_at: Optional[date] = None,
    updated_at: Optional[date] = None,
    sort_by: Optional[str] = Query(None, description="field:asc|desc"),
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
) -> tuple[dict, dict]:
    """Shared list-endpoint query params split into (filters, options)."""
    filters = {
        "name": name,
        "is_active": is_active,
        "created_by": created_by,
        "updated_by": updated_by,
        "created_at": created_at,
        "updated_at": updated_at,
    }
    options = {"sort_by": sort_by, "limit": limit, "page": page}
    return {k: v for k, v in filters.items() if v is not None}, options


def read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None or not upload.filename:
        return None
    return UploadedFile(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        content=upload.file.read(),
    )
