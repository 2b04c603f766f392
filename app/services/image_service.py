"""
Image service: cover-image lifecycle in object storage.

Upload and removal are deliberately asymmetric.  ``upload_image`` raises
``UploadError`` and the caller must not write a post that references a
failed upload.  ``remove_image`` is advisory: it never raises and
reports the outcome as a ``CleanupResult`` that callers log and move on.
"""
import logging
import os
import secrets
import time
from dataclasses import dataclass

from app.config import settings
from app.errors import UploadError, ValidationError
from app.storage import storage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageFile:
    """An image supplied by a caller, already read into memory."""

    filename: str
    data: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of an advisory removal.  Never raised, only reported."""

    ok: bool
    key: str | None = None
    error: str | None = None


def _unique_name(filename: str) -> str:
    """``{random token}-{epoch millis}.{ext}``, keeping the original extension."""
    ext = os.path.splitext(filename)[1].lstrip(".").lower() or "bin"
    return f"{secrets.token_hex(6)}-{int(time.time() * 1000)}.{ext}"


def check_image(image: ImageFile) -> None:
    """Reject non-image uploads and files over ``MAX_IMAGE_BYTES``."""
    if not image.content_type or not image.content_type.startswith("image/"):
        raise ValidationError("Please select an image file")
    if len(image.data) > settings.MAX_IMAGE_BYTES:
        limit_mb = settings.MAX_IMAGE_BYTES // (1024 * 1024)
        raise ValidationError(f"Image must be less than {limit_mb}MB")
    if not image.data:
        raise ValidationError("Image file is empty")


async def upload_image(image: ImageFile) -> str:
    """Store *image* under a fresh unique key and return its public address."""
    check_image(image)
    key = storage.key_for(_unique_name(image.filename))
    try:
        await storage.put(key, image.data, image.content_type)
    except Exception as exc:
        logger.error("Error uploading image %r: %s", image.filename, exc)
        raise UploadError(f"Failed to upload image: {exc}") from exc

    address = storage.public_address(key)
    logger.info("Uploaded image %s (%d bytes)", key, len(image.data))
    return address


async def remove_image(address: str | None) -> CleanupResult:
    """
    Best-effort removal of the object behind a public *address*.

    Addresses outside our prefix (bundled defaults, external images) are
    left alone.  Store failures are logged at WARNING and returned.
    """
    if not address:
        return CleanupResult(ok=False, error="no address")

    key = storage.key_from_address(address)
    if key is None:
        logger.warning("Not removing image %r: not a managed address", address)
        return CleanupResult(ok=False, error="not a managed address")

    try:
        await storage.delete(key)
    except Exception as exc:
        logger.warning("Error deleting image %s: %s", key, exc)
        return CleanupResult(ok=False, key=key, error=str(exc))

    logger.info("Removed image %s", key)
    return CleanupResult(ok=True, key=key)
