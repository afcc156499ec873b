"""
S3 blob store implementation using boto3
"""
import asyncio
import time
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from coffeebot.storage.base import BlobStoreInterface
from coffeebot.core.config import settings
from coffeebot.core.logging_config import get_logger


class S3BlobStore(BlobStoreInterface):
    """Uploads backup artifacts to an S3 bucket.

    boto3 is blocking, so calls run in the default executor.
    """

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        client: Any = None,
    ):
        self.logger = get_logger("coffeebot.storage.s3")
        self.bucket_name = bucket_name or settings.AWS_BUCKET_NAME
        if not self.bucket_name:
            raise ValueError("AWS_BUCKET_NAME not set in config")

        self._client = client or boto3.client(
            "s3",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_KEY,
            region_name=settings.AWS_REGION,
        )
        self.logger.info(f"S3 blob store initialized for bucket {self.bucket_name}")

    async def put(self, key: str, body: bytes, content_type: Optional[str] = None) -> str:
        params = {"Bucket": self.bucket_name, "Key": key, "Body": body}
        if content_type:
            params["ContentType"] = content_type
        await asyncio.to_thread(self._client.put_object, **params)
        self.logger.info(f"Uploaded {len(body)} bytes to s3://{self.bucket_name}/{key}")
        return f"s3://{self.bucket_name}/{key}"

    async def health_check(self) -> Dict[str, Any]:
        try:
            start_time = time.time()
            await asyncio.to_thread(self._client.head_bucket, Bucket=self.bucket_name)
            response_time = (time.time() - start_time) * 1000  # ms
            return {
                "status": "healthy",
                "backend": "s3",
                "bucket": self.bucket_name,
                "response_time_ms": round(response_time, 2),
                "timestamp": time.time()
            }
        except (BotoCoreError, ClientError) as e:
            self.logger.error(f"S3 health check failed: {e}")
            return {
                "status": "unhealthy",
                "backend": "s3",
                "bucket": self.bucket_name,
                "error": str(e),
                "timestamp": time.time()
            }
