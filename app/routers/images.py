from fastapi import APIRouter, File, Query, UploadFile

from app.dependencies import read_image
from app.errors import ValidationError
from app.schemas import CleanupResponse, ErrorResponse, ImageUploadResponse
from app.services import image_service

router = APIRouter(
    prefix="/api/v1/images",
    tags=["images"],
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)

@router.post("", status_code=201, response_model=ImageUploadResponse)
async def upload_image(image: UploadFile = File(...)):
    image_file = await read_image(image)
    if image_file is None:
        raise ValidationError("Please select an image file")
    return ImageUploadResponse(url=await image_service.upload_image(image_file))

@router.delete("", response_model=CleanupResponse)
async def delete_image(url: str = Query(..., description="Public address of the image.")):
    # Advisory: always 200, the body says whether anything was removed.
    result = await image_service.remove_image(url)
    return CleanupResponse(ok=result.ok, key=result.key, error=result.error)
