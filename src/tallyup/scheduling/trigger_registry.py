"""TriggerRegistry: create and remove named recurring triggers."""

from __future__ import annotations

import logging

from tallyup.core.exceptions import TriggerNotFoundError
from tallyup.core.protocols import ITriggerService
from tallyup.core.types import CronExpression, HandlerId, JobName, MerchantId
from tallyup.models.schedule import Trigger
from tallyup.scheduling.cron import parse_cron
from tallyup.scheduling.job_names import all_job_names

logger = logging.getLogger(__name__)


class TriggerRegistry:
    """Thin adapter over the external trigger execution service.

    Triggers are never modified in place: an update is a delete followed by a create.
    """

    def __init__(self, service: ITriggerService) -> None:
        self._service = service

    def create(self, job_name: JobName, cron_expression: CronExpression, merchant_id: MerchantId,
               handler_id: HandlerId) -> Trigger:
        """Register a trigger; raises DuplicateTriggerError if the name is taken."""
        parse_cron(cron_expression)
        trigger = Trigger(
            job_name=job_name,
            cron_expression=cron_expression,
            merchant_id=merchant_id,
            handler_id=handler_id,
        )
        self._service.register(trigger)
        logger.info("Created trigger %s (%s) -> %s", job_name, cron_expression, handler_id)
        return trigger

    def delete(self, job_name: JobName) -> bool:
        """Remove a trigger. Returns False when it did not exist."""
        try:
            self._service.unregister(job_name)
        except TriggerNotFoundError:
            logger.debug("Trigger %s not found, nothing to delete", job_name)
            return False
        logger.info("Deleted trigger %s", job_name)
        return True

    def list_for_merchant(self, merchant_id: MerchantId) -> list[Trigger]:
        """Every registered trigger under a current or retired name for this merchant."""
        triggers: list[Trigger] = []
        for name in all_job_names(merchant_id):
            trigger = self._service.describe(name)
            if trigger is not None:
                triggers.append(trigger)
        return triggers
