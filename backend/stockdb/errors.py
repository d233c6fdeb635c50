"""
Error taxonomy shared by every stockdb service.

Services raise these; the HTTP layer maps them to JSON responses via
``register_exception_handlers``. Nothing here is retried automatically.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaValidationError

logger = logging.getLogger(__name__)

ErrorDetail = List[Dict[str, str]]


class InventoryError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "inventory_error"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        detail: Optional[ErrorDetail] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.detail: ErrorDetail = list(detail or [])

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "detail": self.detail}


class ValidationError(InventoryError):
    """Malformed input: negative quantity, missing field, self-transfer..."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "validation_error"


class NotFoundError(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class ConflictError(InventoryError):
    """Optimistic check failed on a quantity write; re-read and retry."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"


class InvalidTransitionError(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "invalid_transition"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
        if exc.status_code >= status.HTTP_409_CONFLICT:
            logger.warning(
                "Request rejected",
                extra={"path": request.url.path, "code": exc.code, "error_message": exc.message},
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(SchemaValidationError)
    async def schema_error_handler(request: Request, exc: SchemaValidationError) -> JSONResponse:
        # Filters built inside endpoints from raw query strings.
        return JSONResponse(
            status_code=ValidationError.status_code,
            content=from_schema_error(exc).to_dict(),
        )


def from_schema_error(exc: SchemaValidationError) -> ValidationError:
    detail = [
        {"field": ".".join(str(part) for part in err.get("loc", ())) or "__root__", "reason": err.get("msg", "")}
        for err in exc.errors()
    ]
    return ValidationError("Invalid request parameters.", detail=detail)
