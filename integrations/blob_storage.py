"""
Blob storage for catalog images.

Images are public objects in an S3 bucket; callers only see put/delete and
the resulting public URL.
"""

from typing import Optional, Protocol
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
import structlog

from config import settings
from exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)


class BlobStore(Protocol):
    """Opaque object store."""

    def put(self, data: bytes, content_type: str, key: str) -> str:
        """Store data under key and return its public URL."""
        ...

    def delete(self, key: str) -> None:
        """Remove the object stored under key."""
        ...

    def key_from_url(self, url: str) -> str:
        """Recover the object key from a public URL."""
        ...


class S3BlobStore:
    """
    S3-backed blob store.

    Works with AWS S3 and S3-compatible services.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "eu-central-1",
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
    ):
        self.bucket = bucket
        self.region = region

        client_kwargs = {
            "service_name": "s3",
            "region_name": region,
            "config": Config(signature_version="s3v4"),
        }

        if access_key and secret_key:
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key

        self.client = boto3.client(**client_kwargs)

        logger.info("s3_blob_store_initialized", bucket=bucket, region=region)

    def public_url(self, key: str) -> str:
        """Public URL of an object in the bucket."""
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def put(self, data: bytes, content_type: str, key: str) -> str:
        """Upload bytes with a long-lived public cache header."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl="public, max-age=31536000",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("s3_put_failed", bucket=self.bucket, key=key, error=str(e))
            raise ExternalServiceError("s3", f"Upload failed: {e}")

        logger.info("s3_object_written", bucket=self.bucket, key=key, size=len(data))
        return self.public_url(key)

    def delete(self, key: str) -> None:
        """Delete an object; deleting a missing key is not an error in S3."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            logger.error("s3_delete_failed", bucket=self.bucket, key=key, error=str(e))
            raise ExternalServiceError("s3", f"Delete failed: {e}")

        logger.info("s3_object_deleted", bucket=self.bucket, key=key)

    def key_from_url(self, url: str) -> str:
        """'https://bucket.s3.amazonaws.com/sectors/x/a.png' → 'sectors/x/a.png'"""
        return urlparse(url).path.lstrip("/")


_blob_store: Optional[BlobStore] = None

def get_blob_store() -> BlobStore:
    """
    Get or create the configured blob store.

    Raises:
        ExternalServiceError: If no bucket is configured
    """
    global _blob_store
    if _blob_store is None:
        if not settings.aws_s3_bucket:
            raise ExternalServiceError("s3", "AWS_S3_BUCKET is not configured")
        _blob_store = S3BlobStore(
            bucket=settings.aws_s3_bucket,
            region=settings.aws_region,
            access_key=settings.aws_access_key_id,
            secret_key=settings.aws_secret_access_key,
        )
    return _blob_store
