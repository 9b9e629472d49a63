"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "TALLYUP_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    settings_table: str = "tallyup-merchant-settings"
    status_table: str = "tallyup-pipeline-status"


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "TALLYUP_REDIS_"}

    enabled: bool = True
    host: str = "localhost"
    port: int = 6379
    db: int = 0


class S3Config(BaseSettings):
    """S3 storage for sales snapshots and rendered reports."""

    model_config = {"env_prefix": "TALLYUP_S3_"}

    bucket: str = "tallyup-reports"
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class SchedulerConfig(BaseSettings):
    """EventBridge Scheduler (trigger execution service) configuration."""

    model_config = {"env_prefix": "TALLYUP_SCHEDULER_"}

    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    group_name: str = "default"
    role_arn: str = ""
    schedule_target_arn: str = ""
    fetch_target_arn: str = ""
    generate_target_arn: str = ""


class ProvidersConfig(BaseSettings):
    """Sales data provider and report renderer HTTP endpoints."""

    model_config = {"env_prefix": "TALLYUP_PROVIDERS_"}

    sales_base_url: str = "http://localhost:8081"
    renderer_base_url: str = "http://localhost:8082"
    api_key: str = ""
    timeout: float = 30.0


class PipelineConfig(BaseSettings):
    """Report pipeline timing defaults."""

    model_config = {"env_prefix": "TALLYUP_PIPELINE_"}

    default_fetch_delay_minutes: int = 1
    default_report_delay_minutes: int = 2
    default_lookback_hours: int = 24
    config_cache_ttl: int = 300


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "TALLYUP_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    s3: S3Config = S3Config()
    scheduler: SchedulerConfig = SchedulerConfig()
    providers: ProvidersConfig = ProvidersConfig()
    pipeline: PipelineConfig = PipelineConfig()
