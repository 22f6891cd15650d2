"""
S3-compatible object store client.

Works against AWS S3 and S3-compatible endpoints (Supabase Storage, MinIO)
via ``endpoint_url``.
"""

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from quoteportal.errors import UpstreamUnavailable
from quoteportal.integrations.contracts.interfaces import ObjectStore

logger = logging.getLogger(__name__)


class S3ObjectStore(ObjectStore):
    def __init__(
        self,
        bucket: str,
        region: str = "ap-south-1",
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ) -> None:
        if not bucket:
            raise ValueError("Storage bucket is not configured")
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client

    @property
    def client(self):
        if self._client is None:
            cfg = Config(
                region_name=self.region,
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "standard"},
                connect_timeout=3,
                read_timeout=10,
            )
            self._client = boto3.client("s3", endpoint_url=self.endpoint_url, config=cfg)
            logger.info("S3 client initialized region=%s bucket=%s", self.region, self.bucket)
        return self._client

    def create_signed_url(self, path: str, ttl_seconds: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=int(ttl_seconds),
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to sign %s: %s", path, exc)
            raise UpstreamUnavailable(f"Object store unavailable: {exc}") from exc
