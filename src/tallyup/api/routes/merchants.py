"""Merchant settings endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tallyup.api.errors import get_services, payload_response
from tallyup.models.api import MerchantSettingsRequest
from tallyup.pipeline.services import Services

router = APIRouter(tags=["merchants"])


@router.put("/{merchant_id}/settings")
def put_settings(merchant_id: str, body: MerchantSettingsRequest,
                 services: Services = Depends(get_services)) -> JSONResponse:
    """Save report settings and recompile the merchant's triggers if the schedule moved."""
    config = body.to_config(merchant_id)
    return payload_response(services.orchestrator.sync_settings(config))
