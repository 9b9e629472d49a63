"""Pipeline management endpoints: tagged actions and status."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from tallyup.api.errors import get_services, payload_response
from tallyup.pipeline.services import Services

router = APIRouter(tags=["pipelines"])


@router.post("/actions")
def run_action(payload: Any = Body(...), services: Services = Depends(get_services)) -> JSONResponse:
    """Dispatch a create/update/delete/status/setup_all request body."""
    return payload_response(services.orchestrator.handle(payload))


@router.get("/{merchant_id}/status")
def pipeline_status(merchant_id: str, services: Services = Depends(get_services)) -> JSONResponse:
    # Status always answers 200; "not configured" is part of the payload
    status = services.orchestrator.get_status(merchant_id)
    return JSONResponse(content=status.model_dump(mode="json", by_alias=True))
