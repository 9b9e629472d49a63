"""HTTP status codes for error payloads."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from tallyup.pipeline.services import Services

_STATUS_BY_ERROR: dict[str, int] = {
    "ValidationError": 400,
    "InvalidTimezoneError": 400,
    "ConfigNotFoundError": 404,
    "ClaimConflictError": 409,
    "NoPendingRecordError": 409,
    "DuplicateTriggerError": 409,
}


def status_for(error_type: str) -> int:
    return _STATUS_BY_ERROR.get(error_type, 500)


def payload_response(payload: BaseModel) -> JSONResponse:
    """Serialize a typed payload; failed payloads get their mapped status code."""
    content = payload.model_dump(mode="json", by_alias=True)
    status_code = 200
    if content.get("success") is False:
        status_code = status_for(content.get("errorType", ""))
    return JSONResponse(status_code=status_code, content=content)


def get_services(request: Request) -> Services:
    return request.app.state.services
