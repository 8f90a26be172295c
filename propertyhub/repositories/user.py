"""
User repository for account lookup, directory listings and admin statistics.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from propertyhub.repositories.base import BaseRepository, LIKE_ESCAPE, contains_pattern
from propertyhub.models.user import User, UserRole
from propertyhub.models.property import Property
from propertyhub.models.favorite import Favorite
from propertyhub.models.appointment import Appointment
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
import uuid
import logging

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user accounts."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    async def create_user(self, user_data: Dict[str, Any]) -> User:
        """
        Create a new user with email normalization and password hashing.

        Args:
            user_data: Must include email, password and name.
                Optional: role (defaults to USER), phone, avatar

        Returns:
            Created user instance

        Raises:
            ValueError: If the email is malformed, already taken, or the password is too short
        """
        data = dict(user_data)
        email = User.validate_email_format(data.pop("email"))
        password = data.pop("password")

        if await self.get_by_email(email):
            raise ValueError(f"User with email {email} already exists")

        create_data = {
            **data,
            "email": email,
            "hashed_password": User.hash_password(password),
            "role": data.get("role") or UserRole.USER,
            "is_active": data.get("is_active", True),
        }

        user = await self.create(create_data)
        logger.info(f"Created user: {user.email} (ID: {user.id}, role: {user.role.value})")
        return user

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == email.lower().strip())
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str, exclude_user_id: Optional[uuid.UUID] = None) -> bool:
        query = select(func.count(User.id)).where(User.email == email.lower().strip())
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)
        return ((await self.db.execute(query)).scalar() or 0) > 0

    def _list_conditions(self, role: Optional[UserRole], search: Optional[str]) -> List[Any]:
        conditions = []
        if role:
            conditions.append(User.role == role)
        if search:
            pattern = contains_pattern(search)
            conditions.append(or_(
                User.name.ilike(pattern, escape=LIKE_ESCAPE),
                User.email.ilike(pattern, escape=LIKE_ESCAPE),
            ))
        return conditions

    async def list_users(
        self,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[User], int]:
        """
        List users, newest first, filtered by role and a name/email search.

        Returns:
            Tuple of (users list, total count)
        """
        conditions = self._list_conditions(role, search)

        count_query = select(func.count(User.id))
        query = select(User)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(User.created_at.desc()).offset(skip).limit(take)
        )
        return list(result.scalars().all()), total

    async def list_with_counts(
        self,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Tuple[User, int, int, int]], int]:
        """
        Admin user listing with property, favorite and appointment counts.

        Returns:
            Tuple of ([(user, properties, favorites, appointments)], total count)
        """
        conditions = self._list_conditions(role, search)

        property_count = (
            select(func.count(Property.id))
            .where(Property.agent_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        favorite_count = (
            select(func.count(Favorite.id))
            .where(Favorite.user_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        appointment_count = (
            select(func.count(Appointment.id))
            .where(Appointment.user_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )

        count_query = select(func.count(User.id))
        query = select(User, property_count, favorite_count, appointment_count)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(User.created_at.desc()).offset(skip).limit(take)
        )
        rows = [(row[0], row[1] or 0, row[2] or 0, row[3] or 0) for row in result.all()]
        return rows, total

    async def get_agents(self) -> List[User]:
        """Active agents ordered by name."""
        result = await self.db.execute(
            select(User)
            .where(and_(User.role == UserRole.AGENT, User.is_active.is_(True)))
            .order_by(User.name)
        )
        return list(result.scalars().all())

    async def count_by_role(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(User.role, func.count(User.id)).group_by(User.role)
        )
        counts = {role.value: 0 for role in UserRole}
        for role, count in result.all():
            counts[role.value] = count
        return counts

    async def count_created_since(self, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count(User.id)).where(User.created_at >= since)
        )
        return result.scalar() or 0

    async def counts_by_day(self, since: datetime) -> Dict[str, int]:
        day = func.date(User.created_at)
        result = await self.db.execute(
            select(day, func.count(User.id))
            .where(User.created_at >= since)
            .group_by(day)
        )
        return {str(d): count for d, count in result.all()}
