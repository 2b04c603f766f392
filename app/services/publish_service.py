"""
Publish service: the validated write path for posts.

Every mutation coming from the HTTP layer goes through here.  The order
of operations is fixed:

1. validate required fields (``ValidationError``),
2. upload a new cover image, if any (``UploadError`` aborts before the
   store is touched),
3. write through ``post_service`` and commit, which drops the read views,
4. remove images that are no longer referenced, best-effort.

A freshly uploaded image is removed again if the write or its commit
fails for any reason.
"""
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import BlogError, NotFoundError, ValidationError
from app.schemas import PostCreate, PostUpdate
from app.services import image_service, post_service
from app.services.image_service import ImageFile

logger = logging.getLogger(__name__)


def _require_text(value: str | None, field: str) -> None:
    if value is None or not value.strip():
        raise ValidationError(f"{field.capitalize()} is required")


def validate_create(data: PostCreate) -> None:
    _require_text(data.title, "title")
    _require_text(data.content, "content")


def validate_update(data: PostUpdate) -> None:
    # Title and content may be omitted from a partial update but never
    # cleared or blanked.
    sent = data.model_dump(exclude_unset=True)
    for field in ("title", "content"):
        if field in sent:
            _require_text(sent[field], field)


async def _discard(address: str | None, reason: str) -> None:
    result = await image_service.remove_image(address)
    if not result.ok:
        logger.warning("Image cleanup skipped (%s): %s", reason, result.error)


async def _with_slug(db: AsyncSession, data: PostCreate) -> PostCreate:
    slug = data.slug
    if slug is None and settings.AUTO_SLUG:
        slug = post_service.slugify(data.title) or None
    if slug is None:
        return data
    return data.model_copy(update={"slug": await post_service.unique_slug(db, slug)})


async def publish_post(
    db: AsyncSession, data: PostCreate, image: ImageFile | None = None
) -> dict:
    """
    Validate, upload the cover (if any) and create the post.

    A slug already used by another post gets a timestamp suffix, so every
    published slug resolves to exactly one post.
    """
    validate_create(data)
    data = await _with_slug(db, data)

    if image is not None:
        data = data.model_copy(update={"image_cover": await image_service.upload_image(image)})

    try:
        created = await post_service.create_post(db, data)
        await post_service.commit_changes(db)
    except BlogError:
        if image is not None:
            await _discard(data.image_cover, "create failed")
        raise
    return created


async def revise_post(
    db: AsyncSession,
    post_id: str | uuid.UUID,
    data: PostUpdate,
    image: ImageFile | None = None,
) -> dict:
    """
    Validate and apply a partial update.

    A supplied *image* is uploaded first and replaces ``image_cover``;
    the cover it replaces is removed once the write has been committed.
    """
    validate_update(data)
    previous = await post_service.get_post_by_id(db, post_id)

    if image is not None:
        data = data.model_copy(update={"image_cover": await image_service.upload_image(image)})

    try:
        updated = await post_service.update_post(db, post_id, data)
        await post_service.commit_changes(db)
    except BlogError:
        if image is not None:
            await _discard(data.image_cover, "update failed")
        raise

    old_cover = previous["image_cover"]
    if old_cover and old_cover != updated["image_cover"]:
        await _discard(old_cover, "cover replaced")
    return updated


async def clear_cover(db: AsyncSession, post_id: str | uuid.UUID) -> dict:
    """Detach the cover image from a post and remove the object."""
    return await revise_post(db, post_id, PostUpdate(image_cover=None))


async def retract_post(db: AsyncSession, post_id: str | uuid.UUID) -> None:
    """
    Delete a post, then remove its cover image once the delete is committed.

    The delete is strict; the image removal can fail without affecting it.
    """
    try:
        previous = await post_service.get_post_by_id(db, post_id)
    except NotFoundError:
        previous = None
    await post_service.delete_post(db, post_id)
    await post_service.commit_changes(db)
    if previous and previous["image_cover"]:
        await _discard(previous["image_cover"], "post deleted")
