"""
Tests for the administration service.
"""

import pytest
import uuid

from propertyhub.models.property import PropertyStatus
from propertyhub.models.user import UserRole
from propertyhub.repositories.favorite import FavoriteRepository
from propertyhub.schemas.admin import AdminPropertyRow, AdminUserRow, MetricsResponse, StatsResponse
from propertyhub.services.admin import AdminService
from propertyhub.utils.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
from tests.conftest import AppointmentFactory


@pytest.fixture
def admin_service(db_session):
    return AdminService(db_session)


class TestAdminUsers:
    """Test user moderation."""

    async def test_requires_admin(self, admin_service, test_agent):
        with pytest.raises(InsufficientPermissionsError):
            await admin_service.list_users(test_agent)
        with pytest.raises(InsufficientPermissionsError):
            await admin_service.get_stats(test_agent)

    async def test_list_users_with_counts(self, admin_service, db_session, test_admin, test_user, test_agent, test_property):
        await FavoriteRepository(db_session).add(test_user.id, test_property.id)

        rows, total = await admin_service.list_users(test_admin)
        by_email = {row["email"]: row for row in rows}

        assert total == 3
        assert by_email["agent@test.com"]["property_count"] == 1
        assert by_email["client@test.com"]["favorite_count"] == 1
        AdminUserRow.model_validate(by_email["client@test.com"])

    async def test_list_users_by_role(self, admin_service, test_admin, test_user, test_agent):
        rows, total = await admin_service.list_users(test_admin, role=UserRole.AGENT)
        assert total == 1
        assert rows[0]["id"] == str(test_agent.id)

    async def test_change_role(self, admin_service, test_admin, test_user):
        updated = await admin_service.update_user_role(test_user.id, UserRole.AGENT, test_admin)
        assert updated.role == UserRole.AGENT

    async def test_cannot_change_own_role(self, admin_service, test_admin):
        with pytest.raises(BadRequestError):
            await admin_service.update_user_role(test_admin.id, UserRole.USER, test_admin)

    async def test_cannot_delete_self(self, admin_service, test_admin):
        with pytest.raises(BadRequestError):
            await admin_service.delete_user(test_admin.id, test_admin)

    async def test_delete_user(self, admin_service, user_repository, test_admin, test_user):
        await admin_service.delete_user(test_user.id, test_admin)

        assert await user_repository.get_by_id(test_user.id) is None
        with pytest.raises(NotFoundError):
            await admin_service.get_user(test_user.id, test_admin)

    async def test_unknown_user(self, admin_service, test_admin):
        with pytest.raises(NotFoundError):
            await admin_service.update_user_role(uuid.uuid4(), UserRole.AGENT, test_admin)


class TestAdminProperties:
    """Test listing moderation."""

    async def test_list_properties(self, admin_service, db_session, test_admin, test_user, test_property, rental_property):
        await AppointmentFactory.create_appointment(db_session, test_user, test_property)

        rows, total = await admin_service.list_properties(test_admin)
        by_id = {row["id"]: row for row in rows}

        assert total == 2
        row = by_id[str(test_property.id)]
        assert row["appointment_count"] == 1
        assert row["agent"]["email"] == "agent@test.com"
        AdminPropertyRow.model_validate(row)

    async def test_filter_and_search(self, admin_service, test_admin, test_property, rental_property):
        rows, total = await admin_service.list_properties(test_admin, search="amueblado")
        assert total == 1
        assert rows[0]["id"] == str(rental_property.id)

        _, total = await admin_service.list_properties(test_admin, status=PropertyStatus.SOLD)
        assert total == 0

    async def test_moderate_status_and_delete(self, admin_service, property_repository, test_admin, test_property):
        updated = await admin_service.update_property_status(test_property.id, PropertyStatus.PENDING, test_admin)
        assert updated.status == PropertyStatus.PENDING

        assert await admin_service.delete_property(test_property.id, test_admin)
        assert await property_repository.count() == 0


class TestAdminStatistics:
    """Test dashboard statistics."""

    async def test_stats(self, admin_service, test_admin, test_user, test_property, rental_property):
        stats = await admin_service.get_stats(test_admin)

        assert stats["totals"] == {"users": 3, "properties": 2, "appointments": 0, "favorites": 0}
        assert stats["users_by_role"] == {"USER": 1, "AGENT": 1, "ADMIN": 1}
        assert stats["properties_by_status"]["AVAILABLE"] == 2
        assert stats["recent"] == {"users": 3, "properties": 2}
        StatsResponse.model_validate(stats)

    async def test_metrics_series(self, admin_service, test_admin, test_user, test_property):
        metrics = await admin_service.get_metrics(test_admin, days=7)

        assert metrics["days"] == 7
        assert len(metrics["series"]) == 7
        assert metrics["series"][0]["date"] < metrics["series"][-1]["date"]
        assert sum(day["users"] for day in metrics["series"]) == 3
        assert sum(day["properties"] for day in metrics["series"]) == 1
        MetricsResponse.model_validate(metrics)

    @pytest.mark.parametrize("days", [0, 366])
    async def test_metrics_range(self, admin_service, test_admin, days):
        with pytest.raises(BadRequestError):
            await admin_service.get_metrics(test_admin, days=days)
