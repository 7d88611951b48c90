"""Shared helpers for consistent HTTP error detail formatting."""

from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException

from vibetorrent.services.errors import ServiceError

_SERVICE_CODE_TO_STATUS = {
    "NOT_FOUND": 404,
    "CONNECTION_FAILED": 502,
    "SAVE_FAILED": 500,
}


def unknown_error_detail(exc: Exception | None) -> str:
    """Format generic unknown-error detail consistently across endpoints."""
    return str(exc) if exc else "Unknown error"


def raise_service_http_error(exc: ServiceError) -> NoReturn:
    """Translate a service-layer error into an HTTPException (400 by default)."""
    status_code = _SERVICE_CODE_TO_STATUS.get(exc.code, 400)
    raise HTTPException(status_code=status_code, detail={"error": exc.code, "message": exc.message}) from exc
