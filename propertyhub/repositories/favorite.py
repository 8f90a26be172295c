"""
Favorite repository: saved properties per user.
"""

import uuid
from typing import Dict, List, Optional, Tuple
from sqlalchemy import select, delete, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from propertyhub.models.favorite import Favorite
from propertyhub.repositories.base import BaseRepository


class FavoriteRepository(BaseRepository[Favorite]):

    def __init__(self, db: AsyncSession):
        super().__init__(Favorite, db)

    async def find(self, user_id: uuid.UUID, property_id: uuid.UUID) -> Optional[Favorite]:
        result = await self.db.execute(
            select(Favorite).where(and_(
                Favorite.user_id == user_id,
                Favorite.property_id == property_id,
            ))
        )
        return result.scalar_one_or_none()

    async def add(self, user_id: uuid.UUID, property_id: uuid.UUID) -> Favorite:
        return await self.create({"user_id": user_id, "property_id": property_id})

    async def remove(self, user_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        favorite = await self.find(user_id, property_id)
        if favorite is None:
            return False
        await self.db.delete(favorite)
        await self.db.commit()
        return True

    async def is_favorite(self, user_id: uuid.UUID, property_id: uuid.UUID) -> bool:
        return await self.find(user_id, property_id) is not None

    async def get_user_favorites(
        self,
        user_id: uuid.UUID,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Favorite], int]:
        """
        Favorites of a user, most recently saved first, with their properties loaded.

        Returns:
            Tuple of (favorites list, total count)
        """
        total = await self.get_user_favorite_count(user_id)
        result = await self.db.execute(
            select(Favorite)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc())
            .offset(skip)
            .limit(take)
        )
        return list(result.scalars().all()), total

    async def get_user_favorite_count(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Favorite.id)).where(Favorite.user_id == user_id)
        )
        return result.scalar() or 0

    async def get_favorite_count(self, property_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.count(Favorite.id)).where(Favorite.property_id == property_id)
        )
        return result.scalar() or 0

    async def get_favorite_counts(self, property_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        """Favorite counts for several properties; ids without favorites map to 0."""
        counts = {property_id: 0 for property_id in property_ids}
        if not property_ids:
            return counts

        result = await self.db.execute(
            select(Favorite.property_id, func.count(Favorite.id))
            .where(Favorite.property_id.in_(property_ids))
            .group_by(Favorite.property_id)
        )
        for property_id, count in result.all():
            counts[property_id] = count
        return counts

    async def get_favorite_property_ids(self, user_id: uuid.UUID) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(Favorite.property_id).where(Favorite.user_id == user_id)
        )
        return list(result.scalars().all())

    async def clear_user_favorites(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            delete(Favorite)
            .where(Favorite.user_id == user_id)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return result.rowcount
