from fastapi import Query, UploadFile

from app.config import settings
from app.services.image_service import ImageFile


class PaginationParams:
    """
    Reusable FastAPI dependency for the recent-posts view.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Posts per page.  Defaults to ``settings.RECENT_PAGE_SIZE`` and is
        clamped to ``settings.MAX_PAGE_SIZE`` regardless of the value
        supplied by the caller.
    """

    def __init__(
        self,
        page: int = Query(
            1,
            ge=1,
            description="Page number (1-based).",
        ),
        page_size: int | None = Query(
            None,
            ge=1,
            description="Number of posts per page.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size or settings.RECENT_PAGE_SIZE, settings.MAX_PAGE_SIZE)


async def read_image(upload: UploadFile | None) -> ImageFile | None:
    """Read a multipart upload into an ``ImageFile`` (None when absent)."""
    if upload is None or not upload.filename:
        return None
    data = await upload.read()
    return ImageFile(filename=upload.filename, data=data, content_type=upload.content_type)
