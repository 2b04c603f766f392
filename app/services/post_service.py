"""
Post service: the content repository for the Post aggregate.

Design notes
------------
- This module is the only place that issues SQL against ``blog_posts``.
  It does not validate payloads: required-field checks live in
  ``publish_service``, the single entry point every writer goes through.
- Every SQLAlchemy failure is re-raised as ``StoreError`` with the driver
  exception chained, so callers see one error taxonomy.
- Service functions flush but do not commit; the transaction boundary
  is owned by the ``get_db`` dependency in the router layer.
- Successful create / update / delete calls mark the session
  (``POSTS_CHANGED``); the read views are dropped only after the commit
  (``commit_changes`` or ``get_db``), so no reader can re-cache the
  pre-write state.
"""
import enum
import logging
import re
import time
import uuid
from dataclasses import dataclass

from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import POSTS_CHANGED, commit
from app.errors import NotFoundError, StoreError
from app.models import Post
from app.schemas import PostCreate, PostUpdate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# ASCII letters and digits survive; accented letters are dropped, not
# transliterated.  Any Unicode whitespace separates words.
_SLUG_STRIP_RE = re.compile(r"[^A-Za-z0-9_\s-]")
_SLUG_SEPARATOR_RE = re.compile(r"[\s_-]+")

# Fields the update path may write; slug and metadata are fixed at creation.
_UPDATABLE_FIELDS: frozenset[str] = frozenset({"title", "content", "image_cover"})


def slugify(title: str) -> str:
    """Return a URL-safe, lowercase slug derived from *title*."""
    text = _SLUG_STRIP_RE.sub("", title.lower().strip())
    text = _SLUG_SEPARATOR_RE.sub("-", text)
    return text.strip("-")


# ---------------------------------------------------------------------------
# Lookup policy
# ---------------------------------------------------------------------------

_IDENTIFIER_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)


class LookupBy(str, enum.Enum):
    ID = "id"
    SLUG = "slug"


@dataclass(frozen=True)
class Lookup:
    by: LookupBy
    key: str


def resolve_lookup(key: str) -> Lookup:
    """
    Decide whether *key* is an identifier or a slug.

    Anything shaped like a canonical identifier (8-4-4-4-12 hex digits,
    any case) is looked up by id; everything else by slug.  A slug that
    happens to have that exact shape is therefore unreachable through
    ``get_post``; it is routed to the id lookup and reported as not found.
    """
    if _IDENTIFIER_RE.match(key):
        return Lookup(LookupBy.ID, key)
    return Lookup(LookupBy.SLUG, key)


def _parse_id(post_id: str | uuid.UUID) -> uuid.UUID | None:
    if isinstance(post_id, uuid.UUID):
        return post_id
    try:
        return uuid.UUID(str(post_id))
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def post_to_dict(post: Post) -> dict:
    """Serialise a Post ORM instance to a plain, JSON-safe dict."""
    return {
        "id": str(post.id),
        "created_at": post.created_at.isoformat() if post.created_at else None,
        "title": post.title,
        "content": post.content,
        "image_cover": post.image_cover,
        "slug": post.slug,
        "description": post.description,
        "excerpt": post.excerpt,
        "author_name": post.author_name,
        "author_email": post.author_email,
        "category": post.category,
    }


async def _fetch_one(db: AsyncSession, post_id: uuid.UUID) -> Post | None:
    try:
        result = await db.execute(select(Post).where(Post.id == post_id))
    except SQLAlchemyError as exc:
        logger.error("Error fetching blog post %s: %s", post_id, exc)
        raise StoreError(f"Failed to fetch post {post_id}") from exc
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def list_posts(db: AsyncSession) -> list[dict]:
    """
    Return every post, newest first.

    Ties on ``created_at`` are broken by ``id`` so a response is always
    in a stable order.  Pagination is the caller's concern.
    """
    q = select(Post).order_by(desc(Post.created_at), desc(Post.id))
    try:
        result = await db.execute(q)
    except SQLAlchemyError as exc:
        logger.error("Error fetching blog posts: %s", exc)
        raise StoreError("Failed to fetch posts") from exc
    return [post_to_dict(p) for p in result.scalars().all()]


async def create_post(db: AsyncSession, data: PostCreate) -> dict:
    """
    Insert a new post and return it with its generated id and timestamp.

    *data* is trusted: title/content were checked by the caller.
    """
    post = Post(**data.model_dump())
    try:
        db.add(post)
        await db.flush()
        await db.refresh(post)
    except SQLAlchemyError as exc:
        logger.error("Error creating blog post: %s", exc)
        raise StoreError("Failed to create post") from exc

    db.info[POSTS_CHANGED] = True
    logger.info("Created blog post %s", post.id)
    return post_to_dict(post)


async def get_post_by_id(db: AsyncSession, post_id: str | uuid.UUID) -> dict:
    """Return the post with exactly this *post_id* or raise NotFoundError."""
    parsed = _parse_id(post_id)
    if parsed is None:
        raise NotFoundError(f"Post {post_id} not found")
    post = await _fetch_one(db, parsed)
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")
    return post_to_dict(post)


async def get_post_by_slug(db: AsyncSession, slug: str) -> dict:
    """
    Return the single post carrying *slug*.

    Slugs are not unique; more than one match is reported as a store
    error rather than picking one arbitrarily.
    """
    try:
        result = await db.execute(select(Post).where(Post.slug == slug).limit(2))
    except SQLAlchemyError as exc:
        logger.error("Error fetching blog post by slug %r: %s", slug, exc)
        raise StoreError(f"Failed to fetch post {slug!r}") from exc
    matches = result.scalars().all()
    if not matches:
        raise NotFoundError(f"Post {slug!r} not found")
    if len(matches) > 1:
        raise StoreError(f"Slug {slug!r} matches more than one post")
    return post_to_dict(matches[0])


async def get_post(db: AsyncSession, key: str) -> dict:
    """Resolve *key* as an identifier or a slug (see ``resolve_lookup``)."""
    lookup = resolve_lookup(key)
    if lookup.by is LookupBy.ID:
        return await get_post_by_id(db, lookup.key)
    return await get_post_by_slug(db, lookup.key)


async def slug_exists(db: AsyncSession, slug: str) -> bool:
    try:
        result = await db.execute(select(Post.id).where(Post.slug == slug).limit(1))
    except SQLAlchemyError as exc:
        logger.error("Error checking slug %r: %s", slug, exc)
        raise StoreError(f"Failed to check slug {slug!r}") from exc
    return result.first() is not None


async def unique_slug(db: AsyncSession, slug: str) -> str:
    """
    Return *slug*, or a suffixed variant if another post already has it.

    The first fallback appends a Unix timestamp; posts created within the
    same second get a further ``-2``, ``-3``... counter.
    """
    if not await slug_exists(db, slug):
        return slug
    stamped = f"{slug}-{int(time.time())}"
    candidate = stamped
    n = 1
    while await slug_exists(db, candidate):
        n += 1
        candidate = f"{stamped}-{n}"
    return candidate


async def update_post(db: AsyncSession, post_id: str | uuid.UUID, data: PostUpdate) -> dict:
    """
    Partially update a post and return the new state.

    Only fields explicitly set in the payload are written
    (``model_dump(exclude_unset=True)``); ``None`` clears a field.
    """
    parsed = _parse_id(post_id)
    if parsed is None:
        raise NotFoundError(f"Post {post_id} not found")
    post = await _fetch_one(db, parsed)
    if post is None:
        raise NotFoundError(f"Post {post_id} not found")

    changes = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if field in _UPDATABLE_FIELDS
    }
    for field, value in changes.items():
        setattr(post, field, value)

    try:
        await db.flush()
    except SQLAlchemyError as exc:
        logger.error("Error updating blog post %s: %s", post_id, exc)
        raise StoreError(f"Failed to update post {post_id}") from exc

    db.info[POSTS_CHANGED] = True
    logger.info("Updated blog post %s (%s)", post.id, ", ".join(sorted(changes)) or "no changes")
    return post_to_dict(post)


async def delete_post(db: AsyncSession, post_id: str | uuid.UUID) -> None:
    """
    Delete the post identified by *post_id*.

    Strict: a missing or malformed id is a StoreError, not a no-op.
    """
    parsed = _parse_id(post_id)
    if parsed is None:
        raise StoreError(f"Cannot delete post {post_id}: malformed identifier")
    try:
        result = await db.execute(delete(Post).where(Post.id == parsed))
    except SQLAlchemyError as exc:
        logger.error("Error deleting blog post %s: %s", post_id, exc)
        raise StoreError(f"Failed to delete post {post_id}") from exc
    if result.rowcount == 0:
        raise StoreError(f"Cannot delete post {post_id}: no such row")

    db.info[POSTS_CHANGED] = True
    logger.info("Deleted blog post %s", parsed)


async def commit_changes(db: AsyncSession) -> None:
    """
    Commit the session's pending writes, then drop the post read views.

    Used by the write path so that cleanup of replaced images happens only
    once the new state is durable.
    """
    try:
        await commit(db)
    except SQLAlchemyError as exc:
        logger.error("Error committing blog post changes: %s", exc)
        raise StoreError("Failed to save post changes") from exc
