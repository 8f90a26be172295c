"""
Tests for repository classes against an in-memory database.
"""

import pytest
from datetime import timedelta
from decimal import Decimal

from propertyhub.database import utcnow
from propertyhub.models.appointment import AppointmentStatus
from propertyhub.models.property import PropertyCategory, PropertyStatus, TransactionType
from propertyhub.models.user import UserRole
from propertyhub.repositories.appointment import AppointmentRepository
from propertyhub.repositories.favorite import FavoriteRepository
from propertyhub.repositories.image import PropertyImageRepository
from propertyhub.repositories.property import PropertySearchFilters, haversine_km
from tests.conftest import PropertyFactory, UserFactory, next_business_slot


class TestUserRepository:
    """Test UserRepository functionality."""

    async def test_create_user_normalizes_email(self, user_repository):
        user = await UserFactory.create_user(user_repository, email="Maria@Example.com")

        assert user.email == "maria@example.com"
        assert user.role == UserRole.USER
        assert await user_repository.get_by_email("  MARIA@example.com ") is not None

    async def test_duplicate_email(self, user_repository, test_user):
        with pytest.raises(ValueError):
            await UserFactory.create_user(user_repository, email=test_user.email)

    async def test_email_exists(self, user_repository, test_user):
        assert await user_repository.email_exists("client@test.com")
        assert not await user_repository.email_exists("client@test.com", exclude_user_id=test_user.id)

    async def test_list_users_filters(self, user_repository, test_user, test_agent, test_admin):
        agents, total = await user_repository.list_users(role=UserRole.AGENT)
        assert total == 1
        assert agents[0].id == test_agent.id

        found, total = await user_repository.list_users(search="admin@")
        assert total == 1
        assert found[0].id == test_admin.id

    async def test_search_escapes_wildcards(self, user_repository, test_user, test_agent):
        tagged = await UserFactory.create_user(user_repository, email="first_last@test.com")

        found, total = await user_repository.list_users(search="_")
        assert total == 1
        assert found[0].id == tagged.id

        _, total = await user_repository.list_users(search="%")
        assert total == 0

    async def test_get_agents_skips_inactive(self, user_repository, test_agent):
        await UserFactory.create_user(user_repository, name="Retired", role=UserRole.AGENT, is_active=False)

        agents = await user_repository.get_agents()

        assert [agent.id for agent in agents] == [test_agent.id]

    async def test_list_with_counts(self, user_repository, property_repository, db_session, test_agent, test_user):
        prop = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        await FavoriteRepository(db_session).add(test_user.id, prop.id)

        rows, total = await user_repository.list_with_counts()
        counts = {user.id: (properties, favorites, appointments) for user, properties, favorites, appointments in rows}

        assert total == 2
        assert counts[test_agent.id] == (1, 0, 0)
        assert counts[test_user.id] == (0, 1, 0)

    async def test_count_by_role(self, user_repository, test_user, test_agent, test_admin):
        assert await user_repository.count_by_role() == {"USER": 1, "AGENT": 1, "ADMIN": 1}


class TestPropertyRepository:
    """Test PropertyRepository search and statistics."""

    @pytest.fixture
    async def listings(self, property_repository, test_agent, other_agent):
        house = await PropertyFactory.create_property(property_repository, agent_id=test_agent.id)
        apartment = await PropertyFactory.create_property(
            property_repository,
            agent_id=test_agent.id,
            title="Departamento con vista al río",
            price=Decimal("650.00"),
            transaction_type=TransactionType.RENT,
            category=PropertyCategory.APARTMENT,
            bedrooms=2,
            bathrooms=1,
            latitude=-2.8974,
            longitude=-79.0045
        )
        land = await PropertyFactory.create_property(
            property_repository,
            agent_id=other_agent.id,
            title="Terreno en Gualaceo",
            price=Decimal("48000.00"),
            category=PropertyCategory.LAND,
            bedrooms=0,
            bathrooms=0,
            area=1200,
            address="Vía a Chordeleg km 2",
            city="Gualaceo",
            latitude=-2.8926,
            longitude=-78.7780
        )
        sold = await PropertyFactory.create_property(
            property_repository,
            agent_id=other_agent.id,
            title="Casa vendida en Cuenca",
            price=Decimal("320000.00"),
            status=PropertyStatus.SOLD,
            latitude=None,
            longitude=None
        )
        return {"house": house, "apartment": apartment, "land": land, "sold": sold}

    async def test_search_without_filters(self, property_repository, listings):
        properties, total = await property_repository.search()
        assert total == 4
        assert len(properties) == 4

    async def test_search_pagination(self, property_repository, listings):
        page, total = await property_repository.search(skip=1, take=2)
        assert total == 4
        assert len(page) == 2

    async def test_search_by_transaction_and_city(self, property_repository, listings):
        properties, total = await property_repository.search(
            PropertySearchFilters(transaction_type=TransactionType.RENT, city="cuenca")
        )
        assert total == 1
        assert properties[0].id == listings["apartment"].id

    async def test_search_by_categories(self, property_repository, listings):
        _, total = await property_repository.search(
            PropertySearchFilters(category=[PropertyCategory.LAND, PropertyCategory.APARTMENT])
        )
        assert total == 2

    async def test_search_price_and_bedrooms(self, property_repository, listings):
        properties, total = await property_repository.search(
            PropertySearchFilters(min_price=Decimal("100000"), max_price=Decimal("300000"), min_bedrooms=3)
        )
        assert total == 1
        assert properties[0].id == listings["house"].id

    async def test_search_text(self, property_repository, listings):
        properties, _ = await property_repository.search(PropertySearchFilters(search_text="chordeleg"))
        assert [p.id for p in properties] == [listings["land"].id]

    async def test_wildcards_match_literally(self, property_repository, listings, test_agent):
        lot = await PropertyFactory.create_property(
            property_repository, agent_id=test_agent.id, address="Lote_7 100% urbanizado"
        )

        _, total = await property_repository.search(PropertySearchFilters(city="%"))
        assert total == 0

        properties, _ = await property_repository.search(PropertySearchFilters(search_text="_"))
        assert [p.id for p in properties] == [lot.id]

        properties, _ = await property_repository.search(PropertySearchFilters(address="100%"))
        assert [p.id for p in properties] == [lot.id]

        assert await property_repository.get_cities("%%") == []

    async def test_exact_rooms(self, property_repository, listings):
        properties, _ = await property_repository.search(PropertySearchFilters(bedrooms=2, bathrooms=1))
        assert [p.id for p in properties] == [listings["apartment"].id]

    async def test_find_in_bounds(self, property_repository, listings):
        properties = await property_repository.find_in_bounds(ne_lat=-2.85, ne_lng=-78.95, sw_lat=-2.95, sw_lng=-79.05)
        ids = {p.id for p in properties}

        assert ids == {listings["house"].id, listings["apartment"].id}

    async def test_find_in_bounds_rejects_inverted_box(self, property_repository):
        with pytest.raises(ValueError):
            await property_repository.find_in_bounds(ne_lat=-2.95, ne_lng=-78.95, sw_lat=-2.85, sw_lng=-79.05)

    async def test_find_in_bounds_rejects_antimeridian_box(self, property_repository):
        with pytest.raises(ValueError):
            await property_repository.find_in_bounds(ne_lat=10, ne_lng=-170, sw_lat=-10, sw_lng=170)

    async def test_find_nearby_orders_by_distance(self, property_repository, listings):
        nearby = await property_repository.find_nearby(latitude=-2.8980, longitude=-79.0050, radius_km=5)

        assert [p.id for p, _ in nearby] == [listings["apartment"].id, listings["house"].id]
        distances = [distance for _, distance in nearby]
        assert distances == sorted(distances)
        assert all(distance <= 5 for distance in distances)

    async def test_find_nearby_wider_radius(self, property_repository, listings):
        nearby = await property_repository.find_nearby(latitude=-2.8980, longitude=-79.0050, radius_km=50)
        assert listings["land"].id in {p.id for p, _ in nearby}

    async def test_price_range(self, property_repository, listings):
        assert await property_repository.get_price_range() == (650.0, 320000.0)
        assert await property_repository.get_price_range(
            PropertySearchFilters(transaction_type=TransactionType.RENT)
        ) == (650.0, 650.0)

    async def test_price_range_empty(self, property_repository):
        assert await property_repository.get_price_range() == (0.0, 0.0)

    async def test_price_distribution_counts_available_only(self, property_repository, listings):
        distribution = await property_repository.get_price_distribution(bucket_size=100000)
        assert distribution == [{"bucket": 0, "count": 2}, {"bucket": 100000, "count": 1}]

    async def test_get_cities(self, property_repository, listings):
        cities = await property_repository.get_cities("cue")

        assert cities == [{"city": "Cuenca", "state": "Azuay", "slug": "cuenca-azuay", "count": 2}]
        assert await property_repository.get_cities("c") == []

    async def test_available_cities(self, property_repository, listings):
        assert await property_repository.get_available_cities() == ["Cuenca", "Gualaceo"]

    async def test_list_with_counts_searches_city(self, property_repository, listings):
        rows, total = await property_repository.list_with_counts(PropertySearchFilters(search_text="gualaceo"))
        assert total == 1
        assert rows[0][0].id == listings["land"].id
        assert rows[0][1:] == (0, 0, 0)

    async def test_count_by_status(self, property_repository, listings):
        counts = await property_repository.count_by_status()
        assert counts == {"AVAILABLE": 3, "PENDING": 0, "SOLD": 1, "RENTED": 0}

    async def test_counts_by_day(self, property_repository, listings):
        counts = await property_repository.counts_by_day(utcnow() - timedelta(days=1))
        assert sum(counts.values()) == 4

    def test_haversine(self):
        assert haversine_km(0, 0, 0, 0) == 0
        # One degree of latitude is about 111 km
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, rel=0.01)


class TestPropertyImageRepository:
    """Test gallery ordering."""

    async def test_order_helpers(self, db_session, test_property):
        repo = PropertyImageRepository(db_session)
        assert await repo.get_max_order(test_property.id) == -1

        first, second = await repo.create_many([
            {"property_id": test_property.id, "url": "https://cdn.example.com/a.jpg", "order": 0},
            {"property_id": test_property.id, "url": "https://cdn.example.com/b.jpg", "order": 1},
        ])
        assert await repo.get_max_order(test_property.id) == 1
        assert await repo.count_by_property(test_property.id) == 2

        await repo.update_many_orders([(first.id, 1), (second.id, 0)])
        images = await repo.find_by_property(test_property.id)

        assert [image.id for image in images] == [second.id, first.id]

    async def test_delete_by_property(self, db_session, test_property):
        repo = PropertyImageRepository(db_session)
        await repo.create({"property_id": test_property.id, "url": "/uploads/x.jpg", "order": 0})

        deleted = await repo.delete_by_property(test_property.id)

        assert len(deleted) == 1
        assert await repo.count_by_property(test_property.id) == 0


class TestFavoriteRepository:
    """Test FavoriteRepository functionality."""

    async def test_add_find_remove(self, db_session, test_user, test_property):
        repo = FavoriteRepository(db_session)

        await repo.add(test_user.id, test_property.id)
        assert await repo.is_favorite(test_user.id, test_property.id)

        assert await repo.remove(test_user.id, test_property.id)
        assert not await repo.is_favorite(test_user.id, test_property.id)
        assert not await repo.remove(test_user.id, test_property.id)

    async def test_counts(self, db_session, user_repository, test_user, test_property, rental_property):
        repo = FavoriteRepository(db_session)
        other_user = await UserFactory.create_user(user_repository)
        await repo.add(test_user.id, test_property.id)
        await repo.add(other_user.id, test_property.id)
        await repo.add(test_user.id, rental_property.id)

        assert await repo.get_favorite_count(test_property.id) == 2
        assert await repo.get_favorite_counts([test_property.id, rental_property.id]) == {
            test_property.id: 2,
            rental_property.id: 1,
        }
        assert set(await repo.get_favorite_property_ids(test_user.id)) == {test_property.id, rental_property.id}

    async def test_user_favorites_and_clear(self, db_session, test_user, test_property, rental_property):
        repo = FavoriteRepository(db_session)
        await repo.add(test_user.id, test_property.id)
        await repo.add(test_user.id, rental_property.id)

        favorites, total = await repo.get_user_favorites(test_user.id, take=1)
        assert total == 2
        assert len(favorites) == 1
        assert favorites[0].property_rel is not None

        assert await repo.clear_user_favorites(test_user.id) == 2
        assert await repo.get_user_favorite_count(test_user.id) == 0


class TestAppointmentRepository:
    """Test slot occupancy and agent statistics."""

    async def test_slot_occupancy(self, db_session, test_user, test_agent, test_property):
        repo = AppointmentRepository(db_session)
        slot = next_business_slot(hour=10)

        assert await repo.is_slot_available(test_property.id, slot)
        booked = await repo.create_appointment(test_user.id, test_property.id, test_agent.id, slot)

        assert not await repo.is_slot_available(test_property.id, slot)
        assert await repo.is_slot_available(test_property.id, slot + timedelta(hours=1))
        assert await repo.get_booked_hours(test_property.id, slot.date()) == [10]

        # Cancelled visits free the slot
        await repo.update_status(booked.id, AppointmentStatus.CANCELLED, cancellation_reason="No puedo asistir")
        assert await repo.is_slot_available(test_property.id, slot)
        assert await repo.get_booked_hours(test_property.id, slot.date()) == []

    async def test_agent_appointments_and_stats(self, db_session, test_user, test_agent, test_property):
        repo = AppointmentRepository(db_session)
        early = next_business_slot(hour=9)
        late = next_business_slot(hour=15)
        second = await repo.create_appointment(test_user.id, test_property.id, test_agent.id, late)
        await repo.create_appointment(test_user.id, test_property.id, test_agent.id, early)
        await repo.update_status(second.id, AppointmentStatus.CONFIRMED)

        appointments = await repo.get_agent_appointments(test_agent.id)
        assert [a.scheduled_at for a in appointments] == [early, late]

        confirmed = await repo.get_agent_appointments(test_agent.id, status=AppointmentStatus.CONFIRMED)
        assert [a.id for a in confirmed] == [second.id]

        in_range = await repo.get_agent_appointments(test_agent.id, start=late, end=late + timedelta(hours=1))
        assert [a.id for a in in_range] == [second.id]

        assert await repo.get_agent_stats(test_agent.id) == {
            "PENDING": 1,
            "CONFIRMED": 1,
            "CANCELLED": 0,
            "COMPLETED": 0,
        }

    async def test_user_appointments_latest_first(self, db_session, test_user, test_agent, test_property):
        repo = AppointmentRepository(db_session)
        first = next_business_slot(hour=9)
        later = next_business_slot(hour=9, days_ahead=3)
        await repo.create_appointment(test_user.id, test_property.id, test_agent.id, first)
        await repo.create_appointment(test_user.id, test_property.id, test_agent.id, later)

        appointments = await repo.get_user_appointments(test_user.id)

        assert [a.scheduled_at for a in appointments] == [later, first]
