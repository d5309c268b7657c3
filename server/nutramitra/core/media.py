import io
import logging
from typing import Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from starlette.concurrency import run_in_threadpool

from nutramitra.core.config import settings
from nutramitra.core.exceptions import MediaUploadError

logger = logging.getLogger(__name__)


class S3MediaHost:
    """Public image storage in an S3 compatible bucket."""

    def __init__(self, access_key: Optional[str], secret_key: Optional[str], bucket: Optional[str],
                 region: str = "us-east-1", endpoint_url: Optional[str] = None,
                 public_url: Optional[str] = None, timeout: float = 10, max_attempts: int = 3):
        self.access_key = access_key
        self.secret_key = secret_key
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_url = public_url
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._client = None

    @property
    def configured(self) -> bool:
        return bool(self.access_key and self.secret_key and self.bucket)

    def get_client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                config=Config(
                    connect_timeout=self.timeout,
                    read_timeout=self.timeout,
                    retries={"max_attempts": self.max_attempts, "mode": "standard"},
                ),
            )
        return self._client

    def url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            if "digitaloceanspaces" in self.endpoint_url:
                return f"https://{self.bucket}.{self.region}.digitaloceanspaces.com/{key}"
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def _put(self, key: str, data: bytes, content_type: str):
        self.get_client().put_object(
            Bucket=self.bucket,
            Key=key,
            Body=io.BytesIO(data),
            ContentType=content_type,
            ACL="public-read",
        )

    async def upload(self, key: str, data: bytes, content_type: str) -> dict:
        """Store `data` under `key`, replacing any previous object. Returns url and public id."""
        if not self.configured:
            logger.error("Media host credentials are not configured")
            raise MediaUploadError("Server configuration error")

        try:
            await run_in_threadpool(self._put, key, data, content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s failed: %s", key, e)
            raise MediaUploadError() from e

        url = self.url_for(key)
        logger.info("Uploaded %s (%d bytes)", key, len(data))
        return {"url": url, "public_id": key}


media_host = S3MediaHost(
    access_key=settings.S3_ACCESS_KEY,
    secret_key=settings.S3_SECRET_KEY,
    bucket=settings.S3_BUCKET_NAME,
    region=settings.S3_REGION,
    endpoint_url=settings.S3_ENDPOINT_URL,
    public_url=settings.S3_PUBLIC_URL,
    timeout=settings.MEDIA_TIMEOUT,
    max_attempts=settings.MEDIA_MAX_ATTEMPTS,
)


def get_media_host():
    return media_host
