"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from tallyup.core.config import AppSettings
from tallyup.persistence.dynamodb_backend import DynamoDBMerchantConfigStore, DynamoDBPipelineStatusStore
from tallyup.persistence.protocols import ICacheBackend, IFileStore, IMerchantConfigStore, IPipelineStatusStore
from tallyup.persistence.redis_backend import RedisCacheBackend
from tallyup.persistence.s3_backend import S3FileStore


def create_persistence(
    settings: AppSettings | None = None,
) -> tuple[IMerchantConfigStore, IPipelineStatusStore, ICacheBackend | None, IFileStore]:
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (config_store, status_store, cache, file_store). ``cache`` is
        None when Redis is disabled.
    """
    if settings is None:
        settings = AppSettings()

    cache: ICacheBackend | None = None
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )

    suffix = settings.dynamodb.table_suffix
    config_store = DynamoDBMerchantConfigStore(
        table_name=f"{settings.dynamodb.settings_table}{suffix}",
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        cache=cache,
        cache_ttl=settings.pipeline.config_cache_ttl,
    )

    status_store = DynamoDBPipelineStatusStore(
        table_name=f"{settings.dynamodb.status_table}{suffix}",
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    file_store = S3FileStore(
        bucket=settings.s3.bucket,
        region=settings.s3.region,
        endpoint_url=settings.s3.endpoint_url,
    )

    return config_store, status_store, cache, file_store
