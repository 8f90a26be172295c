"""
End-to-end tests through the HTTP API.
Requests go through routing, dependencies, middleware and the error handlers.
"""

import io
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

from PIL import Image

from propertyhub.main import app
from propertyhub.services.ai_search import AISearchService
from propertyhub.utils.dependencies import get_ai_search_service
from tests.conftest import TEST_PASSWORD, auth_headers, next_business_slot

API = "/api/v1"


def listing_payload(**overrides):
    payload = {
        "title": "Casa con jardín en Challuabamba",
        "description": "Casa de una planta con jardín amplio, parqueadero para dos autos y vista a la montaña.",
        "price": 240000,
        "transaction_type": "SALE",
        "category": "HOUSE",
        "bedrooms": 4,
        "bathrooms": 3,
        "area": 260,
        "address": "Vía a Challuabamba km 3",
        "city": "Cuenca",
        "state": "Azuay",
        "latitude": -2.8790,
        "longitude": -78.9430,
    }
    payload.update(overrides)
    return payload


class TestHealth:
    """Test service endpoints."""

    async def test_root_and_health(self, async_client):
        root = await async_client.get("/")
        assert root.status_code == 200
        assert root.json()["api_prefix"] == API

        health = await async_client.get("/health")
        assert health.status_code == 200
        assert health.json()["database"] == "connected"

    async def test_request_id_header(self, async_client):
        response = await async_client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
        assert "X-Process-Time" in response.headers


class TestErrorEnvelope:
    """Test that every failure uses the same error body."""

    async def test_not_found(self, async_client):
        response = await async_client.get(f"{API}/properties/00000000-0000-0000-0000-000000000000")

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "NOT_FOUND"
        assert "timestamp" in error

    async def test_validation_error(self, async_client, test_agent):
        response = await async_client.post(
            f"{API}/properties",
            json=listing_payload(title="Hi", latitude=None),
            headers=auth_headers(test_agent)
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_missing_token(self, async_client):
        response = await async_client.get(f"{API}/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_unknown_route(self, async_client):
        response = await async_client.get(f"{API}/nothing-here")

        assert response.status_code == 404
        assert "error" in response.json()


class TestAuthFlow:
    """Test signup, login and profile endpoints."""

    async def test_signup_login_me(self, async_client):
        signup = await async_client.post(f"{API}/auth/signup", json={
            "email": "Lucia@Example.com",
            "name": "Lucía Ordóñez",
            "password": "segura2024",
        })
        assert signup.status_code == 201
        body = signup.json()
        assert body["user"]["email"] == "lucia@example.com"
        assert body["user"]["role"] == "USER"
        assert body["tokens"]["token_type"] == "bearer"

        login = await async_client.post(f"{API}/auth/login", json={
            "email": "lucia@example.com",
            "password": "segura2024",
        })
        assert login.status_code == 200
        access_token = login.json()["tokens"]["access_token"]

        me = await async_client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {access_token}"})
        assert me.status_code == 200
        assert me.json()["name"] == "Lucía Ordóñez"

    async def test_signup_weak_password(self, async_client):
        response = await async_client.post(f"{API}/auth/signup", json={
            "email": "weak@example.com",
            "name": "Weak",
            "password": "onlyletters",
        })
        assert response.status_code == 422

    async def test_signup_duplicate(self, async_client, test_user):
        response = await async_client.post(f"{API}/auth/signup", json={
            "email": test_user.email,
            "name": "Copy",
            "password": "segura2024",
        })
        assert response.status_code == 409

    async def test_login_wrong_password(self, async_client, test_user):
        response = await async_client.post(f"{API}/auth/login", json={
            "email": test_user.email,
            "password": "wrongpassword1",
        })
        assert response.status_code == 401

    async def test_refresh(self, async_client, test_user):
        login = await async_client.post(f"{API}/auth/login", json={"email": test_user.email, "password": TEST_PASSWORD})
        refresh_token = login.json()["tokens"]["refresh_token"]

        response = await async_client.post(f"{API}/auth/refresh", json={"refresh_token": refresh_token})

        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(test_user.id)


class TestPropertyEndpoints:
    """Test listing CRUD and browsing."""

    async def test_create_update_delete(self, async_client, test_agent):
        headers = auth_headers(test_agent)

        created = await async_client.post(f"{API}/properties", json=listing_payload(), headers=headers)
        assert created.status_code == 201
        body = created.json()
        assert body["slug"] == "casa-con-jardin-en-challuabamba"
        assert body["agent"]["id"] == str(test_agent.id)
        property_id = body["id"]

        updated = await async_client.put(
            f"{API}/properties/{property_id}",
            json={"price": 235000},
            headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["price"] == 235000

        deleted = await async_client.delete(f"{API}/properties/{property_id}", headers=headers)
        assert deleted.status_code == 204
        assert (await async_client.get(f"{API}/properties/{property_id}")).status_code == 404

    async def test_client_cannot_create(self, async_client, test_user):
        response = await async_client.post(f"{API}/properties", json=listing_payload(), headers=auth_headers(test_user))
        assert response.status_code == 403

    async def test_list_with_filters(self, async_client, test_property, rental_property):
        response = await async_client.get(
            f"{API}/properties",
            params={"transaction_type": "RENT", "page_size": 5}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["items"][0]["id"] == str(rental_property.id)
        assert body["total_pages"] == 1
        assert body["has_next"] is False

    async def test_slug_redirect(self, async_client, test_property):
        current = await async_client.get(f"{API}/properties/slug/{test_property.id_slug}")
        assert current.status_code == 200
        assert current.json()["id"] == str(test_property.id)

        stale = await async_client.get(f"{API}/properties/slug/{test_property.id}-titulo-anterior")
        assert stale.status_code == 301
        assert stale.headers["Location"] == f"{API}/properties/slug/{test_property.id_slug}"

    async def test_map_and_nearby(self, async_client, test_property, rental_property):
        in_view = await async_client.get(f"{API}/properties/map", params={
            "ne_lat": -2.85, "ne_lng": -78.95, "sw_lat": -2.95, "sw_lng": -79.05,
        })
        assert in_view.status_code == 200
        assert len(in_view.json()) == 2

        inverted = await async_client.get(f"{API}/properties/map", params={
            "ne_lat": -2.95, "ne_lng": -78.95, "sw_lat": -2.85, "sw_lng": -79.05,
        })
        assert inverted.status_code in (400, 422)

        nearby = await async_client.get(f"{API}/properties/nearby", params={
            "latitude": -2.8974, "longitude": -79.0045, "radius_km": 5,
        })
        assert [item["id"] for item in nearby.json()] == [str(rental_property.id), str(test_property.id)]
        assert nearby.json()[0]["distance_km"] == 0

    async def test_statistics_endpoints(self, async_client, test_property, rental_property):
        price_range = await async_client.get(f"{API}/properties/price-range")
        assert price_range.json() == {"min_price": 650.0, "max_price": 185000.0}

        cities = await async_client.get(f"{API}/properties/cities", params={"q": "cu"})
        assert cities.json()[0]["city"] == "Cuenca"
        assert cities.json()[0]["count"] == 2

        distribution = await async_client.get(f"{API}/properties/price-distribution", params={"bucket_size": 100000})
        assert distribution.json() == [{"bucket": 0, "count": 1}, {"bucket": 100000, "count": 1}]

    async def test_upload_image(self, async_client, test_agent, test_property):
        buffer = io.BytesIO()
        Image.new("RGB", (32, 32), color=(10, 120, 200)).save(buffer, format="JPEG")

        response = await async_client.post(
            f"{API}/properties/{test_property.id}/images",
            files={"file": ("fachada.jpg", buffer.getvalue(), "image/jpeg")},
            data={"alt": "Fachada"},
            headers=auth_headers(test_agent)
        )

        assert response.status_code == 201
        assert response.json()["url"].startswith("/uploads/properties/")
        assert response.json()["alt"] == "Fachada"

        detail = await async_client.get(f"{API}/properties/{test_property.id}")
        assert len(detail.json()["images"]) == 1


class TestFavoriteEndpoints:
    """Test saving listings over HTTP."""

    async def test_favorite_flow(self, async_client, test_user, test_property):
        headers = auth_headers(test_user)

        added = await async_client.post(f"{API}/favorites/{test_property.id}", headers=headers)
        assert added.status_code == 201
        assert added.json()["property"]["id"] == str(test_property.id)

        duplicate = await async_client.post(f"{API}/favorites/{test_property.id}", headers=headers)
        assert duplicate.status_code == 409

        listed = await async_client.get(f"{API}/favorites", headers=headers)
        assert listed.json()["total"] == 1

        counts = await async_client.get(f"{API}/favorites/counts", params={"ids": str(test_property.id)})
        assert counts.json()["counts"] == {str(test_property.id): 1}

        toggled = await async_client.post(f"{API}/favorites/{test_property.id}/toggle", headers=headers)
        assert toggled.json()["is_favorite"] is False

        anonymous = await async_client.get(f"{API}/favorites/{test_property.id}/status")
        assert anonymous.json()["is_favorite"] is False

    async def test_favorites_require_login(self, async_client):
        response = await async_client.get(f"{API}/favorites")
        assert response.status_code == 401


class TestAppointmentEndpoints:
    """Test booking over HTTP."""

    async def test_booking_flow(self, async_client, test_user, test_agent, test_property):
        slot = next_business_slot(hour=15)

        booked = await async_client.post(
            f"{API}/appointments",
            json={"property_id": str(test_property.id), "scheduled_at": slot.isoformat()},
            headers=auth_headers(test_user)
        )
        assert booked.status_code == 201
        appointment = booked.json()["appointment"]
        assert appointment["status"] == "PENDING"
        assert booked.json()["warning"] is None

        again = await async_client.post(
            f"{API}/appointments",
            json={"property_id": str(test_property.id), "scheduled_at": slot.isoformat()},
            headers=auth_headers(test_user)
        )
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "SLOT_UNAVAILABLE"

        slots = await async_client.get(
            f"{API}/appointments/slots",
            params={"property_id": str(test_property.id), "date": slot.date().isoformat()}
        )
        assert len(slots.json()["slots"]) == 6

        confirmed = await async_client.patch(
            f"{API}/appointments/{appointment['id']}/status",
            json={"status": "CONFIRMED"},
            headers=auth_headers(test_agent)
        )
        assert confirmed.status_code == 200
        assert confirmed.json()["appointment"]["status"] == "CONFIRMED"

        stats = await async_client.get(f"{API}/appointments/agent/stats", headers=auth_headers(test_agent))
        assert stats.json()["confirmed"] == 1

    async def test_invalid_time(self, async_client, test_user, test_property):
        response = await async_client.post(
            f"{API}/appointments",
            json={
                "property_id": str(test_property.id),
                "scheduled_at": next_business_slot(hour=12).isoformat(),
            },
            headers=auth_headers(test_user)
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_APPOINTMENT_TIME"


class TestSearchEndpoints:
    """Test the AI search and location endpoints."""

    async def test_ai_search(self, async_client, db_session, test_property):
        content = json.dumps({"city": "Cuenca", "category": "casa", "confidence": 88})
        client = Mock()
        client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        ))
        app.dependency_overrides[get_ai_search_service] = lambda: AISearchService(db_session, client=client)

        response = await async_client.post(f"{API}/search/ai", json={"query": "casa en Cuenca"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["results"][0]["id"] == str(test_property.id)

    async def test_ai_search_unavailable(self, async_client):
        response = await async_client.post(f"{API}/search/ai", json={"query": "casa en Cuenca"})

        assert response.status_code == 200
        assert response.json()["success"] is False

    async def test_validate_location(self, async_client, test_property):
        response = await async_client.get(f"{API}/search/locations/validate", params={"location": "Cuenka"})

        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is True
        assert body["matched"] == "Cuenca"


class TestAdminEndpoints:
    """Test administration access."""

    async def test_admin_only(self, async_client, test_agent):
        response = await async_client.get(f"{API}/admin/stats", headers=auth_headers(test_agent))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    async def test_stats_and_users(self, async_client, test_admin, test_user):
        headers = auth_headers(test_admin)

        stats = await async_client.get(f"{API}/admin/stats", headers=headers)
        assert stats.status_code == 200
        assert stats.json()["totals"]["users"] == 2

        users = await async_client.get(f"{API}/admin/users", params={"role": "USER"}, headers=headers)
        assert users.json()["items"][0]["email"] == test_user.email

        metrics = await async_client.get(f"{API}/admin/metrics", params={"days": 400}, headers=headers)
        assert metrics.status_code == 422

    async def test_role_change(self, async_client, test_admin, test_user):
        response = await async_client.patch(
            f"{API}/admin/users/{test_user.id}/role",
            json={"role": "AGENT"},
            headers=auth_headers(test_admin)
        )

        assert response.status_code == 200
        assert response.json()["role"] == "AGENT"
