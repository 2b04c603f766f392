from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import PaginationParams, read_image
from app.errors import ValidationError
from app.schemas import (
    ErrorResponse,
    PaginatedResponse,
    PostCard,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from app.services import feed_service, publish_service

router = APIRouter(
    prefix="/api/v1/posts",
    tags=["posts"],
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)

# Read views. Static paths are declared before "/{key}" so they win.

@router.get("", response_model=list[PostCard])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return await feed_service.get_blog_posts(db)

@router.get("/recent", response_model=PaginatedResponse)
async def recent_posts(
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await feed_service.get_recent_posts(db, pagination.page, pagination.page_size)

@router.get("/manage", response_model=list[PostResponse])
async def management_posts(db: AsyncSession = Depends(get_db)):
    return await feed_service.get_management_posts(db)

@router.get("/{key}", response_model=PostResponse)
async def get_post(key: str, db: AsyncSession = Depends(get_db)):
    return await feed_service.get_post_view(db, key)

# Writes

@router.post("", status_code=201, response_model=PostResponse)
async def create_post(
    title: str = Form(""),
    content: str = Form(""),
    image_cover: str | None = Form(None),
    slug: str | None = Form(None),
    description: str | None = Form(None),
    excerpt: str | None = Form(None),
    author_name: str | None = Form(None),
    author_email: str | None = Form(None),
    category: str | None = Form(None),
    image: UploadFile | None = File(None),
    db: AsyncSession = Depends(get_db),
):
    data = PostCreate(
        title=title,
        content=content,
        image_cover=image_cover or None,
        slug=slug or None,
        description=description,
        excerpt=excerpt,
        author_name=author_name,
        author_email=author_email,
        category=category,
    )
    return await publish_service.publish_post(db, data, await read_image(image))

@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(post_id: str, data: PostUpdate, db: AsyncSession = Depends(get_db)):
    return await publish_service.revise_post(db, post_id, data)

@router.put("/{post_id}/image", response_model=PostResponse)
async def replace_cover(
    post_id: str,
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    image_file = await read_image(image)
    if image_file is None:
        raise ValidationError("Please select an image file")
    return await publish_service.revise_post(db, post_id, PostUpdate(), image_file)

@router.delete("/{post_id}/image", response_model=PostResponse)
async def clear_cover(post_id: str, db: AsyncSession = Depends(get_db)):
    return await publish_service.clear_cover(db, post_id)

@router.delete("/{post_id}", status_code=204)
async def delete_post(post_id: str, db: AsyncSession = Depends(get_db)):
    await publish_service.retract_post(db, post_id)
