"""S3-compatible object store (Cloudflare R2, MinIO, AWS S3) on aioboto3."""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List

import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError

from ..core.config import StoreSettings
from ..core.error_handling import error_code, retry_store_operation
from ..core.logging_config import get_logger
from ..core.models import HeadResult, ObjectInfo

DELETE_BATCH_SIZE = 1000
NOT_FOUND_CODES = ("404", "NoSuchKey", "NotFound")


class S3ObjectStore:
    """Object store backed by one bucket of an S3-compatible service."""

    def __init__(self, client: Any, bucket: str, store_attempts: int = 3):
        self.client = client
        self.bucket = bucket
        self.store_attempts = store_attempts
        self.logger = get_logger("media-ingest.store")

    @classmethod
    @asynccontextmanager
    async def connect(
        cls, settings: StoreSettings, store_attempts: int = 3
    ) -> AsyncIterator["S3ObjectStore"]:
        """Open a client for the configured bucket and close it on exit."""
        session = aioboto3.Session(
            aws_access_key_id=settings.access_key,
            aws_secret_access_key=settings.secret_key,
        )
        async with session.client(  # type: ignore[reportUnknownMemberType]
            "s3",
            endpoint_url=settings.resolved_endpoint,
            region_name=settings.region,
            config=Config(retries={"max_attempts": 1, "mode": "standard"}),
        ) as client:
            yield cls(client, settings.bucket, store_attempts)

    @retry_store_operation()
    async def upload(self, key: str, data: bytes, content_type: str) -> None:
        self.logger.debug(f"PUT {key} ({len(data)} bytes, {content_type})")
        await self.client.put_object(
            Bucket=self.bucket, Key=key, Body=data, ContentType=content_type
        )

    @retry_store_operation()
    async def _delete_chunk(self, keys: List[str]) -> int:
        response = await self.client.delete_objects(
            Bucket=self.bucket,
            Delete={"Objects": [{"Key": k} for k in keys], "Quiet": False},
        )
        for error in response.get("Errors", []):
            self.logger.warning(f"Could not delete {error.get('Key')}: {error.get('Message')}")
        return len(response.get("Deleted", []))

    async def batch_delete(self, keys: List[str]) -> int:
        """Delete keys in chunks of 1000; returns the number deleted."""
        deleted = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            deleted += await self._delete_chunk(keys[start : start + DELETE_BATCH_SIZE])
        return deleted

    @retry_store_operation()
    async def list(self, prefix: str) -> List[ObjectInfo]:
        paginator = self.client.get_paginator("list_objects_v2")
        objects: List[ObjectInfo] = []
        async for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for item in page.get("Contents", []):
                objects.append(
                    ObjectInfo(
                        key=item["Key"],
                        size=item.get("Size", 0),
                        last_modified=item.get("LastModified"),
                    )
                )
        return objects

    @retry_store_operation()
    async def head(self, key: str) -> HeadResult:
        try:
            response = await self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if error_code(exc) in NOT_FOUND_CODES:
                return HeadResult(exists=False)
            raise
        return HeadResult(
            exists=True,
            size=response.get("ContentLength"),
            content_type=response.get("ContentType"),
        )

    @retry_store_operation()
    async def list_prefixes(self, prefix: str) -> List[str]:
        paginator = self.client.get_paginator("list_objects_v2")
        prefixes: List[str] = []
        async for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix, Delimiter="/"):
            for entry in page.get("CommonPrefixes", []):
                prefixes.append(entry["Prefix"])
        return prefixes
