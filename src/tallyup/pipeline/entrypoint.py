"""Trigger entrypoint: EventBridge Scheduler -> Lambda -> stage handler.

The schedule target's input is ``{"merchantId": ..., "handlerId": ...}``.
Failures are re-raised so the scheduler records the invocation as failed.
"""

from __future__ import annotations

import logging
from typing import Any

from tallyup.core.config import AppSettings
from tallyup.core.exceptions import ValidationError
from tallyup.core.logging_config import configure_logging
from tallyup.core.types import JsonDict
from tallyup.pipeline.services import create_services
from tallyup.pipeline.stages import StageHandlers

logger = logging.getLogger(__name__)


def parse_trigger_event(event: Any) -> tuple[str, str]:
    """Return (handler_id, merchant_id) from a scheduler event."""
    if not isinstance(event, dict):
        raise ValidationError("Trigger event must be a JSON object")
    # EventBridge rules wrap the payload in "detail"; Scheduler passes it as-is
    body = event.get("detail", event)
    handler = body.get("handlerId") or body.get("handler_id")
    merchant_id = body.get("merchantId") or body.get("merchant_id")
    if not handler or not merchant_id:
        raise ValidationError("Trigger event requires merchantId and handlerId")
    return str(handler), str(merchant_id)


def handle_trigger(event: Any, context: Any = None, stages: StageHandlers | None = None) -> JsonDict:
    handler, merchant_id = parse_trigger_event(event)
    if stages is None:
        settings = AppSettings()
        configure_logging(settings.log_level)
        stages = create_services(settings).stages

    logger.info("Trigger %s fired for merchant %s", handler, merchant_id)
    try:
        result = stages.run(handler, merchant_id)
    except Exception:
        logger.exception("Stage %s failed for merchant %s", handler, merchant_id)
        raise
    return result.model_dump(mode="json", by_alias=True)
