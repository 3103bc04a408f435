from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder


def envelope(status_code: int, message: str, data: Any = None, success: bool | None = None) -> dict:
    """Wrap a payload in the `{success, statusCode, message, data}` envelope."""
    if success is None:
        success = status_code < 400
    return {
        "success": success,
        "statusCode": status_code,
        "message": message,
        "data": jsonable_encoder(data if data is not None else {}),
    }
