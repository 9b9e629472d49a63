"""S3 storage for sales snapshots and rendered commission reports."""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from tallyup.core.exceptions import StorageError


class S3FileStore:
    """Production IFileStore backed by S3."""

    def __init__(self, bucket: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._bucket = bucket
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("s3", **kwargs)

    def read(self, path: str) -> bytes:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=path)
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 read failed for {path!r}: {exc}") from exc

    def write(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> str:
        try:
            self._client.put_object(
                Bucket=self._bucket, Key=path, Body=data, ContentType=content_type,
            )
            return path
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 write failed for {path!r}: {exc}") from exc

    def uri(self, path: str) -> str:
        return f"s3://{self._bucket}/{path}"
