import asyncio
import logging
from urllib.parse import unquote, urlparse

import boto3

from app.config import settings

logger = logging.getLogger(__name__)


class ObjectStorage:
    """
    Thin async facade over a boto3 S3 client (S3, R2 or MinIO).

    boto3 is blocking, so every call is pushed to a worker thread.  The
    client is created lazily by ``connect()``; tests assign ``_client``
    directly with an in-memory stand-in.
    """

    def __init__(self) -> None:
        self._client = None
        self.bucket = settings.STORAGE_BUCKET
        self.prefix = settings.STORAGE_PREFIX.strip("/")
        self.public_url = settings.STORAGE_PUBLIC_URL.rstrip("/")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> None:
        """Create the S3 client.  Called once at application startup."""
        self._client = boto3.client(
            "s3",
            endpoint_url=settings.STORAGE_ENDPOINT,
            region_name=settings.STORAGE_REGION,
            aws_access_key_id=settings.STORAGE_ACCESS_KEY_ID,
            aws_secret_access_key=settings.STORAGE_SECRET_ACCESS_KEY,
        )
        logger.info(
            "Object storage client ready: bucket=%s endpoint=%s",
            self.bucket,
            settings.STORAGE_ENDPOINT or "aws-default",
        )

    @property
    def client(self):
        if self._client is None:
            self.connect()
        return self._client

    # ------------------------------------------------------------------
    # Object operations
    # ------------------------------------------------------------------

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "CacheControl": "max-age=3600",
        }
        if content_type:
            params["ContentType"] = content_type
        if not settings.STORAGE_ALLOW_OVERWRITE:
            # Conditional write: fail instead of replacing an existing object.
            params["IfNoneMatch"] = "*"
        await asyncio.to_thread(self.client.put_object, **params)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def key_for(self, filename: str) -> str:
        return f"{self.prefix}/{filename}"

    def public_address(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    def key_from_address(self, address: str) -> str | None:
        """
        Return the object key embedded in a public *address*, or None when
        the address does not point into our prefix (bundled defaults,
        third-party images, garbage).

        Addresses under our own public base are resolved by stripping it.
        Anything else (an older base URL, a proxy URL) falls back to the
        path from the first segment equal to the prefix, so
        ``/storage/v1/object/public/blog-images/x.png`` resolves to
        ``blog-images/x.png``.
        """
        base = f"{self.public_url}/"
        if address.startswith(base):
            key = unquote(address[len(base):].split("?", 1)[0])
            if key.startswith(f"{self.prefix}/") and len(key) > len(self.prefix) + 1:
                return key
            return None

        path = urlparse(address).path
        segments = [unquote(s) for s in path.split("/") if s]
        if self.prefix not in segments:
            return None
        start = segments.index(self.prefix)
        if start == len(segments) - 1:
            return None
        return "/".join(segments[start:])


# Module-level singleton shared across all request handlers.
storage = ObjectStorage()
