"""Wire the orchestrator and stage handlers to their production backends."""

from __future__ import annotations

from tallyup.core.config import AppSettings
from tallyup.core.protocols import ICacheBackend, IReportRenderer, ISalesDataProvider, ITriggerService
from tallyup.models.schedule import StepName
from tallyup.persistence import create_persistence
from tallyup.pipeline.orchestrator import PipelineOrchestrator
from tallyup.pipeline.stages import StageHandlers
from tallyup.providers.http_providers import HttpReportRenderer, HttpSalesDataProvider
from tallyup.scheduling.eventbridge_backend import EventBridgeTriggerService
from tallyup.scheduling.job_names import HANDLER_IDS
from tallyup.scheduling.trigger_registry import TriggerRegistry


class Services:
    """The long-lived collaborators of one deployment."""

    def __init__(self, orchestrator: PipelineOrchestrator, stages: StageHandlers,
                 cache: ICacheBackend | None = None) -> None:
        self.orchestrator = orchestrator
        self.stages = stages
        self.cache = cache


def create_trigger_service(settings: AppSettings) -> EventBridgeTriggerService:
    cfg = settings.scheduler
    target_arns = {
        HANDLER_IDS[StepName.SCHEDULE]: cfg.schedule_target_arn,
        HANDLER_IDS[StepName.FETCH]: cfg.fetch_target_arn,
        HANDLER_IDS[StepName.GENERATE]: cfg.generate_target_arn,
    }
    return EventBridgeTriggerService(
        role_arn=cfg.role_arn,
        target_arns=target_arns,
        group_name=cfg.group_name,
        region=cfg.region,
        endpoint_url=cfg.endpoint_url,
    )


def create_services(
    settings: AppSettings | None = None,
    *,
    trigger_service: ITriggerService | None = None,
    sales_provider: ISalesDataProvider | None = None,
    renderer: IReportRenderer | None = None,
) -> Services:
    """Build services from settings; any collaborator can be overridden."""
    if settings is None:
        settings = AppSettings()

    config_store, status_store, cache, file_store = create_persistence(settings)
    providers = settings.providers

    orchestrator = PipelineOrchestrator(
        registry=TriggerRegistry(trigger_service or create_trigger_service(settings)),
        config_store=config_store,
        status_store=status_store,
        defaults=settings.pipeline,
    )
    stages = StageHandlers(
        config_store=config_store,
        status_store=status_store,
        sales_provider=sales_provider or HttpSalesDataProvider(
            providers.sales_base_url, api_key=providers.api_key, timeout=providers.timeout,
        ),
        renderer=renderer or HttpReportRenderer(
            providers.renderer_base_url, api_key=providers.api_key, timeout=providers.timeout,
        ),
        file_store=file_store,
        default_lookback_hours=settings.pipeline.default_lookback_hours,
    )
    return Services(orchestrator, stages, cache)
