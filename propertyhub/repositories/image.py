"""
Repository for PropertyImage model operations.
"""

import uuid
from typing import List, Optional, Dict, Any, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.models.image import PropertyImage
from propertyhub.repositories.base import BaseRepository


class PropertyImageRepository(BaseRepository[PropertyImage]):
    """Repository for listing photos, kept in gallery order."""

    def __init__(self, db: AsyncSession):
        super().__init__(PropertyImage, db)

    async def create_many(self, images: List[Dict[str, Any]]) -> List[PropertyImage]:
        return await self.bulk_create(images)

    async def find_by_property(self, property_id: uuid.UUID) -> List[PropertyImage]:
        """Images of a property ordered by their gallery position."""
        result = await self.db.execute(
            select(PropertyImage)
            .where(PropertyImage.property_id == property_id)
            .order_by(PropertyImage.order.asc(), PropertyImage.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def find_by_id(self, image_id: uuid.UUID) -> Optional[PropertyImage]:
        return await self.get_by_id(image_id)

    async def update_many_orders(self, orders: List[Tuple[uuid.UUID, int]]) -> int:
        """
        Set gallery positions for several images in one transaction.

        Args:
            orders: ``(image_id, order)`` pairs
        """
        return await self.bulk_update([(image_id, {"order": order}) for image_id, order in orders])

    async def delete_by_property(self, property_id: uuid.UUID) -> List[PropertyImage]:
        """
        Delete every image of a property.

        Returns:
            The deleted images, so stored files can be removed afterwards
        """
        images = await self.find_by_property(property_id)
        for image in images:
            await self.db.delete(image)
        await self.db.commit()
        return images

    async def count_by_property(self, property_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(PropertyImage.id)).where(PropertyImage.property_id == property_id)
        )
        return result.scalar() or 0

    async def get_max_order(self, property_id: uuid.UUID) -> int:
        """Highest gallery position in use, or -1 for a property without images."""
        result = await self.db.execute(
            select(func.max(PropertyImage.order)).where(PropertyImage.property_id == property_id)
        )
        max_order = result.scalar()
        return -1 if max_order is None else max_order
