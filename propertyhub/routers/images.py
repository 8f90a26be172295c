"""
Image management API endpoints.
Handles photo uploads, externally hosted image URLs, ordering and deletion.
"""

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from typing import List, Optional
from uuid import UUID

from propertyhub.models.user import User
from propertyhub.services.image import ImageService
from propertyhub.schemas.error import get_common_error_responses, get_crud_error_responses, get_error_responses
from propertyhub.schemas.image import (
    ImageListResponse,
    ImageReorderRequest,
    ImageResponse,
    ImageUpdate,
    ImageUrlCreate,
)
from propertyhub.utils.dependencies import get_current_active_user, get_image_service

router = APIRouter(tags=["Images"])


def _image_list(images) -> ImageListResponse:
    return ImageListResponse(
        images=[ImageResponse.model_validate(image.to_dict()) for image in images],
        total=len(images)
    )


@router.get(
    "/properties/{property_id}/images",
    response_model=ImageListResponse,
    summary="List property images",
    description="Gallery of a property in display order",
    responses=get_error_responses(404, 422)
)
async def list_property_images(
    property_id: UUID,
    image_service: ImageService = Depends(get_image_service)
) -> ImageListResponse:
    return _image_list(await image_service.list_images(property_id))


@router.post(
    "/properties/{property_id}/images",
    response_model=ImageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload image for property",
    description="Upload a JPEG, PNG or WebP photo (5MB max). It is added at the end of the gallery.",
    responses=get_crud_error_responses()
)
async def upload_property_image(
    property_id: UUID,
    file: UploadFile = File(..., description="Image file to upload"),
    alt: Optional[str] = Form(None, max_length=255, description="Alternative text"),
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> ImageResponse:
    image = await image_service.upload_image(property_id, file, current_user, alt=alt)
    return ImageResponse.model_validate(image.to_dict())


@router.post(
    "/properties/{property_id}/images/urls",
    response_model=List[ImageResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Add image URLs",
    description="Attach externally hosted images to a property",
    responses=get_crud_error_responses()
)
async def add_property_image_urls(
    property_id: UUID,
    payload: ImageUrlCreate,
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> List[ImageResponse]:
    images = await image_service.add_image_urls(property_id, payload.images, current_user)
    return [ImageResponse.model_validate(image.to_dict()) for image in images]


@router.put(
    "/properties/{property_id}/images/reorder",
    response_model=ImageListResponse,
    summary="Reorder images",
    description="Listed images go first in the given order; the rest keep their relative order",
    responses=get_common_error_responses()
)
async def reorder_property_images(
    property_id: UUID,
    payload: ImageReorderRequest,
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> ImageListResponse:
    images = await image_service.reorder_images(property_id, payload.image_ids, current_user)
    return _image_list(images)


@router.put(
    "/images/{image_id}",
    response_model=ImageResponse,
    summary="Update image",
    description="Change alternative text or gallery position",
    responses=get_common_error_responses()
)
async def update_image(
    image_id: UUID,
    payload: ImageUpdate,
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> ImageResponse:
    image = await image_service.update_image(image_id, payload, current_user)
    return ImageResponse.model_validate(image.to_dict())


@router.delete(
    "/images/{image_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete image",
    description="Delete an image and, for uploads, the stored file",
    responses=get_common_error_responses()
)
async def delete_image(
    image_id: UUID,
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> None:
    await image_service.delete_image(image_id, current_user)


@router.delete(
    "/properties/{property_id}/images",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete all property images",
    description="Clear the gallery of a property, removing stored uploads",
    responses=get_common_error_responses()
)
async def delete_property_images(
    property_id: UUID,
    current_user: User = Depends(get_current_active_user),
    image_service: ImageService = Depends(get_image_service)
) -> None:
    await image_service.delete_property_images(property_id, current_user)
