"""
Image service for property photo galleries.
Handles uploads, externally hosted image URLs, ordering and cleanup of stored files.
"""

import uuid
import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.config import settings
from propertyhub.models.image import PropertyImage
from propertyhub.models.property import Property
from propertyhub.models.user import User
from propertyhub.repositories.image import PropertyImageRepository
from propertyhub.repositories.property import PropertyRepository
from propertyhub.schemas.image import ImageUpdate, ImageUrlItem
from propertyhub.utils.exceptions import (
    BadRequestError,
    InsufficientPermissionsError,
    NotFoundError,
    ResourceLimitExceededError,
)
from propertyhub.utils.file_utils import FileStorage, FileValidator

logger = logging.getLogger(__name__)


class ImageService:
    """Service for managing property images."""

    def __init__(self, db_session: AsyncSession, storage: Optional[FileStorage] = None):
        self.db = db_session
        self.image_repo = PropertyImageRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.storage = storage or FileStorage()

    async def _get_managed_property(self, property_id: uuid.UUID, current_user: User, action: str) -> Property:
        property_obj = await self.property_repo.get_by_id(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        if not current_user.can_manage_property(property_obj.agent_id):
            raise InsufficientPermissionsError(action)
        return property_obj

    async def _check_capacity(self, property_id: uuid.UUID, adding: int) -> None:
        current = await self.image_repo.count_by_property(property_id)
        if current + adding > settings.max_images_per_property:
            raise ResourceLimitExceededError("Images per property", settings.max_images_per_property)

    async def upload_image(
        self,
        property_id: uuid.UUID,
        file: UploadFile,
        current_user: User,
        alt: Optional[str] = None
    ) -> PropertyImage:
        """
        Validate, store and register an uploaded photo at the end of the gallery.

        Args:
            property_id: Property the photo belongs to
            file: Uploaded file
            current_user: Owner of the property or an administrator
            alt: Optional alternative text

        Returns:
            Created image record

        Raises:
            NotFoundError: If the property doesn't exist
            InsufficientPermissionsError: If the caller does not manage the property
            ResourceLimitExceededError: If the gallery is full
            UnsupportedFileTypeError, FileSizeExceededError, FileUploadError: On invalid files
        """
        await self._get_managed_property(property_id, current_user, "upload images for this property")
        await self._check_capacity(property_id, 1)

        image = await FileValidator.validate_upload_file(file)

        file_path = self.storage.generate_file_path(property_id, image.extension)
        file_size = await self.storage.save_bytes(image.content, file_path)
        relative_path = self.storage.get_relative_path(file_path)

        try:
            next_order = await self.image_repo.get_max_order(property_id) + 1
            image_record = await self.image_repo.create({
                "property_id": property_id,
                "url": self.storage.public_url(relative_path),
                "alt": alt,
                "order": next_order,
                "filename": file.filename,
                "file_path": relative_path,
                "file_size": file_size,
                "mime_type": image.mime_type,
                "width": image.width,
                "height": image.height,
            })
        except Exception:
            # Keep disk and database consistent
            self.storage.delete_file(relative_path)
            raise

        logger.info(f"Image uploaded for property {property_id}: {relative_path} ({file_size} bytes)")
        return image_record

    async def add_image_urls(
        self,
        property_id: uuid.UUID,
        images: List[ImageUrlItem],
        current_user: User
    ) -> List[PropertyImage]:
        """Attach externally hosted images after the existing ones."""
        await self._get_managed_property(property_id, current_user, "add images to this property")
        await self._check_capacity(property_id, len(images))

        start = await self.image_repo.get_max_order(property_id) + 1
        created = await self.image_repo.create_many([
            {"property_id": property_id, "url": item.url, "alt": item.alt, "order": start + index}
            for index, item in enumerate(images)
        ])
        logger.info(f"Added {len(created)} image URLs to property {property_id}")
        return created

    async def list_images(self, property_id: uuid.UUID) -> List[PropertyImage]:
        if not await self.property_repo.exists(property_id):
            raise NotFoundError("Property", str(property_id))
        return await self.image_repo.find_by_property(property_id)

    async def reorder_images(
        self,
        property_id: uuid.UUID,
        image_ids: List[uuid.UUID],
        current_user: User
    ) -> List[PropertyImage]:
        """
        Put the given images first, in the given order.

        Images not listed keep their relative order after the listed ones.

        Raises:
            BadRequestError: If an id does not belong to the property
        """
        await self._get_managed_property(property_id, current_user, "reorder images for this property")

        current_images = await self.image_repo.find_by_property(property_id)
        known_ids = {image.id for image in current_images}
        unknown = [str(image_id) for image_id in image_ids if image_id not in known_ids]
        if unknown:
            raise BadRequestError(
                "Some images do not belong to this property",
                details={"image_ids": unknown}
            )

        listed = set(image_ids)
        ordered_ids = list(image_ids) + [image.id for image in current_images if image.id not in listed]
        await self.image_repo.update_many_orders([(image_id, order) for order, image_id in enumerate(ordered_ids)])

        logger.info(f"Reordered {len(ordered_ids)} images for property {property_id}")
        return await self.image_repo.find_by_property(property_id)

    async def _get_managed_image(self, image_id: uuid.UUID, current_user: User, action: str) -> PropertyImage:
        image = await self.image_repo.find_by_id(image_id)
        if not image:
            raise NotFoundError("Image", str(image_id))
        await self._get_managed_property(image.property_id, current_user, action)
        return image

    async def update_image(self, image_id: uuid.UUID, data: ImageUpdate, current_user: User) -> PropertyImage:
        await self._get_managed_image(image_id, current_user, "update this image")

        update_data = data.model_dump(exclude_unset=True)
        if not update_data:
            raise BadRequestError("No valid fields provided for update")

        return await self.image_repo.update(image_id, update_data)

    async def delete_image(self, image_id: uuid.UUID, current_user: User) -> bool:
        """Delete an image record and, for uploads, the stored file."""
        image = await self._get_managed_image(image_id, current_user, "delete this image")
        property_id = image.property_id
        file_path = image.file_path

        deleted = await self.image_repo.delete(image_id)
        if deleted and file_path:
            self.storage.delete_file(file_path)
            self.storage.cleanup_empty_directories(property_id)

        logger.info(f"Image {image_id} deleted from property {property_id} by {current_user.email}")
        return deleted

    async def delete_property_images(self, property_id: uuid.UUID, current_user: User) -> int:
        """
        Delete every image of a property, including stored files.

        Returns:
            Number of images deleted
        """
        await self._get_managed_property(property_id, current_user, "delete images of this property")
        images = await self.image_repo.delete_by_property(property_id)
        self.remove_stored_files(property_id, [image.file_path for image in images])
        return len(images)

    def remove_stored_files(self, property_id: uuid.UUID, file_paths: List[Optional[str]]) -> int:
        """Delete uploaded files after their rows are gone; URL-only images have no file."""
        removed = sum(1 for path in file_paths if path and self.storage.delete_file(path))
        self.storage.cleanup_empty_directories(property_id)
        return removed
