"""
Property service for managing listings with business logic validation.
Handles CRUD operations, ownership checks, search, map browsing and price statistics.
"""

from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.repositories.property import PropertyRepository, PropertySearchFilters
from propertyhub.repositories.user import UserRepository
from propertyhub.models.property import Property, PropertyStatus
from propertyhub.models.user import User
from propertyhub.schemas.property import MapBounds, PropertyCreate, PropertyUpdate
from propertyhub.utils.exceptions import (
    APIException,
    BadRequestError,
    ForbiddenError,
    InsufficientPermissionsError,
    NotFoundError,
    ValidationError,
)
from propertyhub.utils.slugs import is_slug_valid, parse_id_slug
import uuid
import logging

logger = logging.getLogger(__name__)

MAP_RESULT_LIMIT = 1000
MAX_NEARBY_RADIUS_KM = 100


class PropertyService:
    """
    Property service for managing listings.
    Agents manage their own listings; administrators manage all of them.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.user_repo = UserRepository(db_session)

    async def create_property(self, property_data: PropertyCreate, current_user: User) -> Property:
        """
        Create a new listing owned by the caller.

        Administrators may publish on behalf of another agent by passing
        ``agent_id``; the target must be an active agent or admin.

        Raises:
            InsufficientPermissionsError: If the caller is not an agent or admin
            BadRequestError: If the target agent is invalid
        """
        try:
            if not current_user.can_publish:
                raise InsufficientPermissionsError("create properties")

            if not current_user.is_active:
                raise ForbiddenError("Inactive users cannot create properties")

            create_data = property_data.model_dump(exclude={"agent_id"})
            create_data["agent_id"] = current_user.id

            if property_data.agent_id and property_data.agent_id != current_user.id:
                if not current_user.is_admin:
                    raise ForbiddenError("Only administrators can publish for another agent")
                agent = await self.user_repo.get_by_id(property_data.agent_id)
                if not agent or not agent.can_publish or not agent.is_active:
                    raise BadRequestError("Assigned agent must be an active agent or administrator")
                create_data["agent_id"] = agent.id

            property_obj = await self.property_repo.create(create_data)

            logger.info(
                f"Property created by user {current_user.email}: {property_obj.title} (ID: {property_obj.id})"
            )
            return await self.get_property(property_obj.id)

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to create property for user {current_user.id}: {e}")
            raise BadRequestError(f"Failed to create property: {str(e)}")

    async def get_property(self, property_id: uuid.UUID) -> Property:
        """
        Get a property with its agent and images.

        Raises:
            NotFoundError: If property doesn't exist
        """
        property_obj = await self.property_repo.get_with_details(property_id)
        if not property_obj:
            raise NotFoundError("Property", str(property_id))
        return property_obj

    async def get_property_by_slug_param(self, id_slug: str) -> Tuple[Property, bool]:
        """
        Resolve an ``<id>-<slug>`` URL parameter.

        Returns:
            Tuple of (property, whether the slug matches the current title).
            Clients should redirect to ``property.id_slug`` when it does not.

        Raises:
            NotFoundError: If the id is malformed or unknown
        """
        raw_id, slug = parse_id_slug(id_slug)
        try:
            property_id = uuid.UUID(raw_id)
        except ValueError:
            raise NotFoundError("Property", raw_id)

        property_obj = await self.get_property(property_id)
        return property_obj, is_slug_valid(property_obj.title, slug)

    async def update_property(
        self,
        property_id: uuid.UUID,
        property_data: PropertyUpdate,
        current_user: User
    ) -> Property:
        """
        Update a listing. Only the owner or an administrator may update it.

        Raises:
            NotFoundError: If property doesn't exist
            InsufficientPermissionsError: If the caller does not manage the listing
            ValidationError: If no fields are provided
        """
        try:
            existing_property = await self.get_property(property_id)

            if not current_user.can_manage_property(existing_property.agent_id):
                raise InsufficientPermissionsError("update this property")

            update_data = property_data.model_dump(exclude_unset=True)
            if not update_data:
                raise ValidationError("No valid fields provided for update")

            await self.property_repo.update(property_id, update_data)

            logger.info(f"Property updated by user {current_user.email}: {property_id}")
            return await self.get_property(property_id)

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to update property {property_id}: {e}")
            raise BadRequestError(f"Failed to update property: {str(e)}")

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> bool:
        """
        Delete a listing with its images, favorites and appointments.

        Raises:
            NotFoundError: If property doesn't exist
            InsufficientPermissionsError: If the caller does not manage the listing
        """
        try:
            existing_property = await self.get_property(property_id)

            if not current_user.can_manage_property(existing_property.agent_id):
                raise InsufficientPermissionsError("delete this property")

            stored_files = [image.file_path for image in existing_property.images]

            # Image, favorite and appointment rows cascade with the property
            deleted = await self.property_repo.delete(property_id)

            if deleted:
                from propertyhub.services.image import ImageService
                ImageService(self.db).remove_stored_files(property_id, stored_files)
                logger.info(
                    f"Property deleted by user {current_user.email}: {property_id} "
                    f"(with {len(stored_files)} images)"
                )
            return deleted

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to delete property {property_id}: {e}")
            raise BadRequestError(f"Failed to delete property: {str(e)}")

    async def update_status(
        self,
        property_id: uuid.UUID,
        status: PropertyStatus,
        current_user: User
    ) -> Property:
        existing_property = await self.get_property(property_id)

        if not current_user.can_manage_property(existing_property.agent_id):
            raise InsufficientPermissionsError("change the status of this property")

        await self.property_repo.update(property_id, {"status": status})
        logger.info(
            f"Property {property_id} status changed {existing_property.status.value} -> {status.value} "
            f"by {current_user.email}"
        )
        return await self.get_property(property_id)

    async def search_properties(
        self,
        filters: Optional[PropertySearchFilters] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Property], int]:
        """
        Search listings, newest first.

        Returns:
            Tuple of (properties list, total count)
        """
        try:
            return await self.property_repo.search(filters, skip=skip, take=take)
        except Exception as e:
            logger.error(f"Failed to search properties: {e}")
            raise BadRequestError(f"Failed to search properties: {str(e)}")

    async def get_map_properties(
        self,
        bounds: MapBounds,
        filters: Optional[PropertySearchFilters] = None,
        take: int = MAP_RESULT_LIMIT
    ) -> List[Property]:
        """Listings with coordinates inside a map viewport."""
        try:
            return await self.property_repo.find_in_bounds(
                ne_lat=bounds.ne_lat,
                ne_lng=bounds.ne_lng,
                sw_lat=bounds.sw_lat,
                sw_lng=bounds.sw_lng,
                filters=filters,
                take=min(take, MAP_RESULT_LIMIT)
            )
        except ValueError as e:
            raise BadRequestError(str(e))

    async def get_nearby_properties(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 10,
        limit: int = 20
    ) -> List[Tuple[Property, float]]:
        """
        Available listings around a point, closest first.

        Raises:
            BadRequestError: If the coordinates or radius are out of range
        """
        if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise BadRequestError("Invalid coordinates")
        if radius_km <= 0 or radius_km > MAX_NEARBY_RADIUS_KM:
            raise BadRequestError(f"Radius must be between 0 and {MAX_NEARBY_RADIUS_KM} km")

        return await self.property_repo.find_nearby(latitude, longitude, radius_km, take=limit)

    async def get_agent_properties(
        self,
        current_user: User,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Property], int]:
        """All listings of the calling agent, whatever their status."""
        if not current_user.can_publish:
            raise InsufficientPermissionsError("list agent properties")
        return await self.property_repo.get_by_agent(current_user.id, skip=skip, take=take)

    async def get_price_range(self, filters: Optional[PropertySearchFilters] = None) -> Dict[str, float]:
        min_price, max_price = await self.property_repo.get_price_range(filters)
        return {"min_price": min_price, "max_price": max_price}

    async def get_price_distribution(
        self,
        bucket_size: int = 10000,
        filters: Optional[PropertySearchFilters] = None
    ) -> List[Dict[str, int]]:
        if bucket_size <= 0:
            raise BadRequestError("Bucket size must be greater than 0")
        return await self.property_repo.get_price_distribution(bucket_size, filters)

    async def get_cities(self, query: str, limit: int = 10) -> List[Dict[str, Any]]:
        """City autocomplete; queries shorter than two characters return nothing."""
        return await self.property_repo.get_cities(query, limit=limit)
