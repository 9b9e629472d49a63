"""HTTP-invoked stage triggers."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tallyup.api.errors import get_services
from tallyup.pipeline.services import Services

router = APIRouter(tags=["stages"])


class StageInvocation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    merchant_id: str


@router.post("/{handler_id}")
def run_stage(handler_id: str, body: StageInvocation,
              services: Services = Depends(get_services)) -> JSONResponse:
    # Stage errors propagate to the app's TallyUpError handler
    result = services.stages.run(handler_id, body.merchant_id)
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
