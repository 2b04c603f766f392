"""
Feed service: cached read views over the post repository.

Each view is one cache partition (see ``app.cache``).  All of them read
the full newest-first list from ``post_service`` on a miss; pagination is
plain slicing of that list.  Writes never touch these entries directly,
``post_service`` drops every partition after each successful mutation.
"""
import math

from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import DETAIL_VIEW, LIST_VIEW, MANAGEMENT_VIEW, RECENT_VIEW, cache
from app.config import settings
from app.schemas import PaginatedResponse
from app.services import post_service

UNTITLED = "Untitled"


def to_card(post: dict) -> dict:
    """
    Project a post onto what list and preview cards display.

    Missing title → ``"Untitled"``; missing slug → the identifier;
    excerpt wins over description; missing cover → the bundled default.
    """
    return {
        "id": post["id"],
        "created_at": post["created_at"],
        "display_title": post["title"] or UNTITLED,
        "link_slug": post["slug"] or post["id"],
        "summary": post["excerpt"] or post["description"] or "",
        "cover": post["image_cover"] or settings.DEFAULT_COVER_IMAGE,
        "content": post["content"] or "",
    }


def paginate(items: list, page: int, page_size: int) -> PaginatedResponse:
    total = len(items)
    start = (page - 1) * page_size
    return PaginatedResponse(
        items=items[start:start + page_size],
        total=total,
        page=page,
        page_size=page_size,
        pages=math.ceil(total / page_size) if total > 0 else 0,
    )


async def get_recent_posts(
    db: AsyncSession, page: int = 1, page_size: int | None = None
) -> PaginatedResponse:
    """Paginated cards for the home-page blog section."""
    page_size = min(page_size or settings.RECENT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
    cache_key = f"{RECENT_VIEW}:{page}:{page_size}"
    cached = await cache.get(cache_key)
    if cached is not None:
        return PaginatedResponse(**cached)

    cards = [to_card(p) for p in await post_service.list_posts(db)]
    response = paginate(cards, page, page_size)
    await cache.set(cache_key, response.model_dump(), ttl=settings.CACHE_TTL_LIST)
    return response


async def get_blog_posts(db: AsyncSession) -> list[dict]:
    """Cards for the full blog index page."""
    cached = await cache.get(LIST_VIEW)
    if cached is not None:
        return cached

    cards = [to_card(p) for p in await post_service.list_posts(db)]
    await cache.set(LIST_VIEW, cards, ttl=settings.CACHE_TTL_LIST)
    return cards


async def get_management_posts(db: AsyncSession) -> list[dict]:
    """Raw post records for the management table."""
    cached = await cache.get(MANAGEMENT_VIEW)
    if cached is not None:
        return cached

    posts = await post_service.list_posts(db)
    await cache.set(MANAGEMENT_VIEW, posts, ttl=settings.CACHE_TTL_LIST)
    return posts


async def get_post_view(db: AsyncSession, key: str) -> dict:
    """Single post by slug or identifier.  NotFoundError is never cached."""
    cache_key = f"{DETAIL_VIEW}:{key}"
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    post = await post_service.get_post(db, key)
    await cache.set(cache_key, post, ttl=settings.CACHE_TTL_DETAIL)
    return post
