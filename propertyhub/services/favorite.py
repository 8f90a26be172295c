"""
Favorite service: saving properties to a user's list.
"""

from typing import Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.models.favorite import Favorite
from propertyhub.models.user import User
from propertyhub.repositories.favorite import FavoriteRepository
from propertyhub.repositories.property import PropertyRepository
from propertyhub.utils.exceptions import ConflictError, NotFoundError
import uuid
import logging

logger = logging.getLogger(__name__)


class FavoriteService:

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.favorite_repo = FavoriteRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def _ensure_property(self, property_id: uuid.UUID) -> None:
        if not await self.property_repo.exists(property_id):
            raise NotFoundError("Property", str(property_id))

    async def add_favorite(self, user: User, property_id: uuid.UUID) -> Favorite:
        """
        Save a property for a user.

        Raises:
            NotFoundError: If the property doesn't exist
            ConflictError: If it is already saved
        """
        await self._ensure_property(property_id)

        if await self.favorite_repo.is_favorite(user.id, property_id):
            raise ConflictError("Property already in favorites")

        try:
            favorite = await self.favorite_repo.add(user.id, property_id)
        except IntegrityError:
            # Lost a race with a concurrent request for the same pair
            raise ConflictError("Property already in favorites")

        logger.info(f"User {user.id} saved property {property_id}")
        return favorite

    async def remove_favorite(self, user: User, property_id: uuid.UUID) -> None:
        """
        Raises:
            NotFoundError: If the property is not in the user's favorites
        """
        removed = await self.favorite_repo.remove(user.id, property_id)
        if not removed:
            raise NotFoundError("Favorite")
        logger.info(f"User {user.id} removed property {property_id} from favorites")

    async def toggle_favorite(self, user: User, property_id: uuid.UUID) -> bool:
        """
        Add the property if it is not saved, remove it otherwise.

        Returns:
            Whether the property is a favorite after the call
        """
        await self._ensure_property(property_id)

        if await self.favorite_repo.is_favorite(user.id, property_id):
            await self.favorite_repo.remove(user.id, property_id)
            return False

        await self.favorite_repo.add(user.id, property_id)
        return True

    async def is_favorite(self, user: Optional[User], property_id: uuid.UUID) -> bool:
        """Anonymous visitors have no favorites."""
        if user is None:
            return False
        return await self.favorite_repo.is_favorite(user.id, property_id)

    async def get_user_favorites(self, user: User, skip: int = 0, take: int = 20) -> Tuple[List[Favorite], int]:
        return await self.favorite_repo.get_user_favorites(user.id, skip=skip, take=take)

    async def get_favorite_count(self, property_id: uuid.UUID) -> int:
        return await self.favorite_repo.get_favorite_count(property_id)

    async def get_favorite_counts(self, property_ids: List[uuid.UUID]) -> Dict[uuid.UUID, int]:
        return await self.favorite_repo.get_favorite_counts(property_ids)

    async def get_favorite_property_ids(self, user: User) -> List[uuid.UUID]:
        return await self.favorite_repo.get_favorite_property_ids(user.id)

    async def clear_favorites(self, user: User) -> int:
        """Remove every favorite of a user and return how many were removed."""
        removed = await self.favorite_repo.clear_user_favorites(user.id)
        logger.info(f"User {user.id} cleared {removed} favorites")
        return removed
