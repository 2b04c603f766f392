from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# --- Post ---

class PostCreate(BaseModel):
    title: str
    content: str
    image_cover: str | None = None
    # Only writable at creation time.
    slug: str | None = None
    description: str | None = None
    excerpt: str | None = None
    author_name: str | None = None
    author_email: str | None = None
    category: str | None = None


class PostUpdate(BaseModel):
    """
    Partial update payload.  Only keys the caller actually sent are
    written (``model_dump(exclude_unset=True)``); an explicit ``null``
    clears the field.
    """

    title: str | None = None
    content: str | None = None
    image_cover: str | None = None

    model_config = ConfigDict(extra="forbid")


class PostResponse(BaseModel):
    id: UUID
    created_at: datetime
    title: str | None
    content: str | None
    image_cover: str | None
    slug: str | None = None
    description: str | None = None
    excerpt: str | None = None
    author_name: str | None = None
    author_email: str | None = None
    category: str | None = None
    model_config = ConfigDict(from_attributes=True)


class PostCard(BaseModel):
    """Display projection used by the list and recent views."""

    id: str
    created_at: str | None
    display_title: str
    link_slug: str
    summary: str
    cover: str
    content: str


# --- Images ---

class ImageUploadResponse(BaseModel):
    url: str


class CleanupResponse(BaseModel):
    ok: bool
    key: str | None = None
    error: str | None = None


# --- Pagination ---

class PaginatedResponse(BaseModel):
    items: list
    total: int
    page: int
    page_size: int = Field(ge=1)
    pages: int


# --- Errors ---

class ErrorResponse(BaseModel):
    detail: str
    kind: str
