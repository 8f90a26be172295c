"""
User service for profiles, the agent directory and account management.
"""

from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from propertyhub.models.property import PropertyStatus
from propertyhub.models.user import User, UserRole
from propertyhub.repositories.property import PropertyRepository, PropertySearchFilters
from propertyhub.repositories.user import UserRepository
from propertyhub.schemas.user import UserUpdate
from propertyhub.utils.exceptions import (
    APIException,
    BadRequestError,
    DuplicateResourceError,
    ForbiddenError,
    InsufficientPermissionsError,
    NotFoundError,
)
import uuid
import logging

logger = logging.getLogger(__name__)

AGENT_PROFILE_LISTINGS = 12


class UserService:
    """Business rules for reading and changing user accounts."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.user_repo = UserRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", str(user_id))
        return user

    async def update_user(self, user_id: uuid.UUID, data: UserUpdate, current_user: User) -> User:
        """
        Update a profile.

        Users may update themselves; administrators may update anyone and are
        the only ones allowed to change ``role`` or ``is_active``.

        Raises:
            ForbiddenError: If updating someone else without being an admin
            InsufficientPermissionsError: If a non-admin tries to change role or status
            DuplicateResourceError: If the new email belongs to another account
        """
        if current_user.id != user_id and not current_user.is_admin:
            raise ForbiddenError("Unauthorized: Cannot update other users")

        update_data = data.model_dump(exclude_unset=True)

        if not current_user.is_admin:
            if "role" in update_data:
                raise InsufficientPermissionsError("change user roles")
            if "is_active" in update_data:
                raise InsufficientPermissionsError("change account status")

        user = await self.get_user(user_id)

        try:
            if update_data.get("email") and update_data["email"] != user.email:
                if await self.user_repo.email_exists(update_data["email"], exclude_user_id=user_id):
                    raise DuplicateResourceError("User", update_data["email"])

            if not update_data:
                return user

            updated = await self.user_repo.update(user_id, update_data)
            logger.info(f"User {user_id} updated by {current_user.email}: {sorted(update_data)}")
            return updated

        except APIException:
            raise
        except Exception as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            raise BadRequestError(f"Failed to update user: {str(e)}")

    async def delete_user(self, user_id: uuid.UUID, current_user: User) -> None:
        """
        Delete an account with everything it owns.

        Raises:
            InsufficientPermissionsError: If the caller is not an admin
        """
        if not current_user.is_admin:
            raise InsufficientPermissionsError("delete users")

        await self.get_user(user_id)
        await self.user_repo.delete(user_id)
        logger.info(f"User {user_id} deleted by {current_user.email}")

    async def list_users(
        self,
        current_user: User,
        role: Optional[UserRole] = None,
        search: Optional[str] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[User], int]:
        if not current_user.is_admin:
            raise InsufficientPermissionsError("list users")
        return await self.user_repo.list_users(role=role, search=search, skip=skip, take=take)

    async def get_agents(self) -> List[User]:
        return await self.user_repo.get_agents()

    async def get_agent_profile(self, agent_id: uuid.UUID) -> Dict[str, Any]:
        """
        Public agent profile with the agent's available listings.

        Raises:
            NotFoundError: If no active agent has this id
        """
        agent = await self.user_repo.get_by_id(agent_id)
        if not agent or agent.role != UserRole.AGENT or not agent.is_active:
            raise NotFoundError("Agent", str(agent_id))

        properties, total = await self.property_repo.search(
            PropertySearchFilters(agent_id=agent_id, status=PropertyStatus.AVAILABLE),
            skip=0,
            take=AGENT_PROFILE_LISTINGS
        )

        return {
            "agent": {
                "id": str(agent.id),
                "name": agent.name,
                "email": agent.email,
                "phone": agent.phone,
                "avatar": agent.avatar,
            },
            "properties": [prop.to_summary() for prop in properties],
            "total_properties": total,
        }
