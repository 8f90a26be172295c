"""
Administration service: user and listing moderation plus platform statistics.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.database import utcnow
from propertyhub.models.property import Property, PropertyCategory, PropertyStatus, TransactionType
from propertyhub.models.user import User, UserRole
from propertyhub.repositories.appointment import AppointmentRepository
from propertyhub.repositories.favorite import FavoriteRepository
from propertyhub.repositories.property import PropertyRepository, PropertySearchFilters
from propertyhub.repositories.user import UserRepository
from propertyhub.services.property import PropertyService
from propertyhub.utils.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
import uuid
import logging

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
MAX_METRIC_DAYS = 365


class AdminService:
    """Every operation requires an administrator."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.property_repo = PropertyRepository(db_session)
        self.favorite_repo = FavoriteRepository(db_session)
        self.appointment_repo = AppointmentRepository(db_session)
        self.property_service = PropertyService(db_session)

    @staticmethod
    def _require_admin(current_user: User, action: str) -> None:
        if not current_user.is_admin:
            raise InsufficientPermissionsError(action)

    async def list_users(
        self,
        current_user: User,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Users with their property, favorite and appointment counts.

        Returns:
            Tuple of (rows, total count)
        """
        self._require_admin(current_user, "list users")
        rows, total = await self.user_repo.list_with_counts(role=role, search=search, skip=skip, take=take)
        return [
            {
                **user.to_dict(),
                "property_count": properties,
                "favorite_count": favorites,
                "appointment_count": appointments,
            }
            for user, properties, favorites, appointments in rows
        ], total

    async def get_user(self, user_id: uuid.UUID, current_user: User) -> User:
        self._require_admin(current_user, "view users")
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    async def update_user_role(self, user_id: uuid.UUID, role: UserRole, current_user: User) -> User:
        """
        Raises:
            BadRequestError: If an administrator tries to change their own role
            NotFoundError: If the user doesn't exist
        """
        self._require_admin(current_user, "change user roles")
        if user_id == current_user.id:
            raise BadRequestError("You cannot change your own role")

        user = await self.get_user(user_id, current_user)
        previous = user.role
        updated = await self.user_repo.update(user_id, {"role": role})
        logger.info(f"User {user_id} role changed {previous.value} -> {role.value} by {current_user.email}")
        return updated

    async def delete_user(self, user_id: uuid.UUID, current_user: User) -> None:
        """
        Raises:
            BadRequestError: If an administrator tries to delete their own account
            NotFoundError: If the user doesn't exist
        """
        self._require_admin(current_user, "delete users")
        if user_id == current_user.id:
            raise BadRequestError("You cannot delete your own account")

        await self.get_user(user_id, current_user)
        await self.user_repo.delete(user_id)
        logger.info(f"User {user_id} deleted by admin {current_user.email}")

    async def list_properties(
        self,
        current_user: User,
        status: Optional[PropertyStatus] = None,
        category: Optional[PropertyCategory] = None,
        transaction_type: Optional[TransactionType] = None,
        search: Optional[str] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Listings with agent details and image, favorite and appointment counts.

        ``search`` matches title, address or city.
        """
        self._require_admin(current_user, "list all properties")
        filters = PropertySearchFilters(
            status=status,
            category=category,
            transaction_type=transaction_type,
            search_text=search
        )
        rows, total = await self.property_repo.list_with_counts(filters, skip=skip, take=take)
        return [
            self._property_row(property_obj, images, favorites, appointments)
            for property_obj, images, favorites, appointments in rows
        ], total

    @staticmethod
    def _property_row(property_obj: Property, images: int, favorites: int, appointments: int) -> Dict[str, Any]:
        agent = property_obj.agent
        return {
            **property_obj.to_summary(),
            "address": property_obj.address,
            "agent": {
                "id": str(agent.id),
                "name": agent.name,
                "email": agent.email,
                "phone": agent.phone,
                "avatar": agent.avatar,
            } if agent else None,
            "image_count": images,
            "favorite_count": favorites,
            "appointment_count": appointments,
            "created_at": property_obj.created_at.isoformat(),
        }

    async def update_property_status(
        self,
        property_id: uuid.UUID,
        status: PropertyStatus,
        current_user: User
    ) -> Property:
        self._require_admin(current_user, "moderate properties")
        return await self.property_service.update_status(property_id, status, current_user)

    async def delete_property(self, property_id: uuid.UUID, current_user: User) -> bool:
        self._require_admin(current_user, "moderate properties")
        return await self.property_service.delete_property(property_id, current_user)

    async def get_stats(self, current_user: User) -> Dict[str, Any]:
        """Platform totals, breakdowns and activity over the last 30 days."""
        self._require_admin(current_user, "view statistics")

        since = utcnow() - timedelta(days=RECENT_DAYS)
        return {
            "totals": {
                "users": await self.user_repo.count(),
                "properties": await self.property_repo.count(),
                "appointments": await self.appointment_repo.count(),
                "favorites": await self.favorite_repo.count(),
            },
            "users_by_role": await self.user_repo.count_by_role(),
            "properties_by_status": await self.property_repo.count_by_status(),
            "appointments_by_status": await self.appointment_repo.count_by_status(),
            "recent": {
                "users": await self.user_repo.count_created_since(since),
                "properties": await self.property_repo.count_created_since(since),
            },
        }

    async def get_metrics(self, current_user: User, days: int = 30) -> Dict[str, Any]:
        """
        Daily creation counts, oldest day first. Days without activity are zero.

        Raises:
            BadRequestError: If ``days`` is outside 1..365
        """
        self._require_admin(current_user, "view metrics")
        if days < 1 or days > MAX_METRIC_DAYS:
            raise BadRequestError(f"Days must be between 1 and {MAX_METRIC_DAYS}")

        today = utcnow().date()
        first_day = today - timedelta(days=days - 1)
        since = datetime.combine(first_day, datetime.min.time(), tzinfo=utcnow().tzinfo)

        users = await self.user_repo.counts_by_day(since)
        properties = await self.property_repo.counts_by_day(since)
        appointments = await self.appointment_repo.counts_by_day(since)

        series = []
        for offset in range(days):
            day = (first_day + timedelta(days=offset)).isoformat()
            series.append({
                "date": day,
                "users": users.get(day, 0),
                "properties": properties.get(day, 0),
                "appointments": appointments.get(day, 0),
            })

        return {"days": days, "series": series}
