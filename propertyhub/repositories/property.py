"""
Property repository for listings search, map browsing and inventory statistics.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func, desc
from propertyhub.repositories.base import BaseRepository, LIKE_ESCAPE, contains_pattern
from propertyhub.models.property import Property, PropertyCategory, PropertyStatus, TransactionType
from propertyhub.models.image import PropertyImage
from propertyhub.models.favorite import Favorite
from propertyhub.models.appointment import Appointment
from collections import Counter
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple, Union
from decimal import Decimal
import math
import uuid
import logging

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


class PropertySearchFilters:
    """Search criteria shared by list, map and statistics queries."""

    def __init__(
        self,
        transaction_type: Optional[Union[TransactionType, List[TransactionType]]] = None,
        category: Optional[Union[PropertyCategory, List[PropertyCategory]]] = None,
        status: Optional[PropertyStatus] = None,
        agent_id: Optional[uuid.UUID] = None,
        city: Optional[str] = None,
        state: Optional[str] = None,
        address: Optional[str] = None,
        min_bedrooms: Optional[int] = None,
        min_bathrooms: Optional[float] = None,
        bedrooms: Optional[int] = None,
        bathrooms: Optional[float] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        min_area: Optional[float] = None,
        max_area: Optional[float] = None,
        search_text: Optional[str] = None
    ):
        self.transaction_type = transaction_type
        self.category = category
        self.status = status
        self.agent_id = agent_id
        self.city = city
        self.state = state
        self.address = address
        self.min_bedrooms = min_bedrooms
        self.min_bathrooms = min_bathrooms
        self.bedrooms = bedrooms
        self.bathrooms = bathrooms
        self.min_price = min_price
        self.max_price = max_price
        self.min_area = min_area
        self.max_area = max_area
        self.search_text = search_text


class PropertyRepository(BaseRepository[Property]):
    """Repository for property listings."""

    def __init__(self, db: AsyncSession):
        super().__init__(Property, db)

    def _build_filter_conditions(
        self,
        filters: Optional[PropertySearchFilters],
        text_columns: Optional[List[Any]] = None
    ) -> List[Any]:
        """
        Translate search filters into SQLAlchemy conditions.

        Text filters are case-insensitive "contains" matches; bedrooms and
        bathrooms are minimums unless the exact variants are set. Free text
        searches title, description and address unless ``text_columns`` is given.
        """
        if filters is None:
            return []

        conditions = []

        if filters.transaction_type:
            if isinstance(filters.transaction_type, list):
                conditions.append(Property.transaction_type.in_(filters.transaction_type))
            else:
                conditions.append(Property.transaction_type == filters.transaction_type)

        if filters.category:
            if isinstance(filters.category, list):
                conditions.append(Property.category.in_(filters.category))
            else:
                conditions.append(Property.category == filters.category)

        if filters.status:
            conditions.append(Property.status == filters.status)

        if filters.agent_id:
            conditions.append(Property.agent_id == filters.agent_id)

        if filters.city:
            conditions.append(Property.city.ilike(contains_pattern(filters.city), escape=LIKE_ESCAPE))

        if filters.state:
            conditions.append(Property.state.ilike(contains_pattern(filters.state), escape=LIKE_ESCAPE))

        if filters.address:
            conditions.append(Property.address.ilike(contains_pattern(filters.address), escape=LIKE_ESCAPE))

        if filters.min_bedrooms is not None:
            conditions.append(Property.bedrooms >= filters.min_bedrooms)

        if filters.min_bathrooms is not None:
            conditions.append(Property.bathrooms >= filters.min_bathrooms)

        if filters.bedrooms is not None:
            conditions.append(Property.bedrooms == filters.bedrooms)

        if filters.bathrooms is not None:
            conditions.append(Property.bathrooms == filters.bathrooms)

        if filters.min_price is not None:
            conditions.append(Property.price >= filters.min_price)

        if filters.max_price is not None:
            conditions.append(Property.price <= filters.max_price)

        if filters.min_area is not None:
            conditions.append(Property.area >= filters.min_area)

        if filters.max_area is not None:
            conditions.append(Property.area <= filters.max_area)

        if filters.search_text:
            pattern = contains_pattern(filters.search_text)
            columns = text_columns or [Property.title, Property.description, Property.address]
            conditions.append(or_(*[column.ilike(pattern, escape=LIKE_ESCAPE) for column in columns]))

        return conditions

    async def get_with_details(self, property_id: uuid.UUID) -> Optional[Property]:
        """Load a property with fresh agent and image data."""
        query = (
            select(Property)
            .where(Property.id == property_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def search(
        self,
        filters: Optional[PropertySearchFilters] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Property], int]:
        """
        Search properties, newest first.

        Returns:
            Tuple of (properties list, total count)
        """
        conditions = self._build_filter_conditions(filters)

        count_query = select(func.count(Property.id))
        query = select(Property).execution_options(populate_existing=True)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(desc(Property.created_at)).offset(skip).limit(take)
        result = await self.db.execute(query)
        properties = list(result.scalars().all())

        logger.debug(f"Property search returned {len(properties)} of {total} results")
        return properties, total

    async def find_in_bounds(
        self,
        ne_lat: float,
        ne_lng: float,
        sw_lat: float,
        sw_lng: float,
        filters: Optional[PropertySearchFilters] = None,
        skip: int = 0,
        take: int = 1000
    ) -> List[Property]:
        """
        Properties whose coordinates fall inside a map viewport.

        Raises:
            ValueError: If the coordinates are out of range or the box is inverted.
                Boxes crossing the antimeridian are not supported.
        """
        for lat in (ne_lat, sw_lat):
            if not -90 <= lat <= 90:
                raise ValueError(f"Invalid latitude: {lat}. Must be between -90 and 90")
        for lng in (ne_lng, sw_lng):
            if not -180 <= lng <= 180:
                raise ValueError(f"Invalid longitude: {lng}. Must be between -180 and 180")
        if sw_lat > ne_lat:
            raise ValueError("Invalid bounds: south-west latitude must not exceed north-east latitude")
        if sw_lng > ne_lng:
            raise ValueError("Invalid bounds: south-west longitude must not exceed north-east longitude")

        conditions = self._build_filter_conditions(filters)
        conditions.extend([
            Property.latitude.is_not(None),
            Property.longitude.is_not(None),
            Property.latitude.between(sw_lat, ne_lat),
            Property.longitude.between(sw_lng, ne_lng),
        ])

        query = (
            select(Property)
            .where(and_(*conditions))
            .order_by(desc(Property.created_at))
            .offset(skip)
            .limit(take)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_nearby(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 10,
        take: int = 20
    ) -> List[Tuple[Property, float]]:
        """
        Available properties within a radius, closest first.

        A bounding box narrows the query; exact great-circle distances are
        computed in Python.

        Returns:
            List of (property, distance in km) tuples
        """
        lat_delta = radius_km / KM_PER_DEGREE
        cos_lat = math.cos(math.radians(latitude))
        lng_delta = radius_km / (KM_PER_DEGREE * cos_lat) if abs(cos_lat) > 1e-9 else 180

        query = select(Property).where(and_(
            Property.status == PropertyStatus.AVAILABLE,
            Property.latitude.between(latitude - lat_delta, latitude + lat_delta),
            Property.longitude.between(longitude - lng_delta, longitude + lng_delta),
        ))
        result = await self.db.execute(query)

        nearby = []
        for prop in result.scalars().all():
            distance = haversine_km(latitude, longitude, prop.latitude, prop.longitude)
            if distance <= radius_km:
                nearby.append((prop, round(distance, 2)))

        nearby.sort(key=lambda item: item[1])
        return nearby[:take]

    async def get_by_agent(self, agent_id: uuid.UUID, skip: int = 0, take: int = 20) -> Tuple[List[Property], int]:
        return await self.search(PropertySearchFilters(agent_id=agent_id), skip=skip, take=take)

    async def get_price_range(self, filters: Optional[PropertySearchFilters] = None) -> Tuple[float, float]:
        """Minimum and maximum price, or (0, 0) when nothing matches."""
        query = select(func.min(Property.price), func.max(Property.price))
        conditions = self._build_filter_conditions(filters)
        if conditions:
            query = query.where(and_(*conditions))

        min_price, max_price = (await self.db.execute(query)).one()
        if min_price is None or max_price is None:
            return 0.0, 0.0
        return float(min_price), float(max_price)

    async def get_price_distribution(
        self,
        bucket_size: int = 10000,
        filters: Optional[PropertySearchFilters] = None
    ) -> List[Dict[str, int]]:
        """Histogram of available listing prices, sorted by bucket."""
        conditions = self._build_filter_conditions(filters)
        conditions.append(Property.status == PropertyStatus.AVAILABLE)

        result = await self.db.execute(select(Property.price).where(and_(*conditions)))
        buckets = Counter(
            int(float(price) // bucket_size) * bucket_size for price in result.scalars().all()
        )
        return [{"bucket": bucket, "count": count} for bucket, count in sorted(buckets.items())]

    async def get_cities(self, query_text: str, limit: int = 10) -> List[Dict[str, Any]]:
        """
        City autocomplete over available listings, most listings first.

        Queries shorter than two characters return nothing.
        """
        query_text = (query_text or "").strip()
        if len(query_text) < 2:
            return []

        listing_count = func.count(Property.id).label("listing_count")
        query = (
            select(Property.city, Property.state, listing_count)
            .where(and_(
                Property.status == PropertyStatus.AVAILABLE,
                Property.city.ilike(contains_pattern(query_text), escape=LIKE_ESCAPE),
            ))
            .group_by(Property.city, Property.state)
            .order_by(desc(listing_count))
            .limit(limit)
        )
        result = await self.db.execute(query)

        return [
            {
                "city": city,
                "state": state,
                "slug": f"{city}-{state}".lower().replace(" ", "-"),
                "count": count,
            }
            for city, state, count in result.all()
        ]

    async def get_available_cities(self) -> List[str]:
        result = await self.db.execute(
            select(Property.city)
            .where(Property.status == PropertyStatus.AVAILABLE)
            .distinct()
            .order_by(Property.city)
        )
        return [city for city in result.scalars().all() if city]

    async def find_matching(self, filters: PropertySearchFilters, take: int = 50) -> List[Property]:
        """Unpaginated match used by the natural-language search."""
        conditions = self._build_filter_conditions(filters)
        query = select(Property).order_by(desc(Property.created_at)).limit(take)
        if conditions:
            query = query.where(and_(*conditions))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_with_counts(
        self,
        filters: Optional[PropertySearchFilters] = None,
        skip: int = 0,
        take: int = 20
    ) -> Tuple[List[Tuple[Property, int, int, int]], int]:
        """
        Admin listing with image, favorite and appointment counts.

        Free text matches title, address or city.
        """
        conditions = self._build_filter_conditions(
            filters,
            text_columns=[Property.title, Property.address, Property.city]
        )

        image_count = (
            select(func.count(PropertyImage.id))
            .where(PropertyImage.property_id == Property.id)
            .correlate(Property)
            .scalar_subquery()
        )
        favorite_count = (
            select(func.count(Favorite.id))
            .where(Favorite.property_id == Property.id)
            .correlate(Property)
            .scalar_subquery()
        )
        appointment_count = (
            select(func.count(Appointment.id))
            .where(Appointment.property_id == Property.id)
            .correlate(Property)
            .scalar_subquery()
        )

        count_query = select(func.count(Property.id))
        query = select(Property, image_count, favorite_count, appointment_count)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(desc(Property.created_at)).offset(skip).limit(take)
        )
        rows = [(row[0], row[1] or 0, row[2] or 0, row[3] or 0) for row in result.all()]
        return rows, total

    async def count_by_status(self) -> Dict[str, int]:
        result = await self.db.execute(
            select(Property.status, func.count(Property.id)).group_by(Property.status)
        )
        counts = {status.value: 0 for status in PropertyStatus}
        for status, count in result.all():
            counts[status.value] = count
        return counts

    async def count_created_since(self, since: datetime) -> int:
        result = await self.db.execute(
            select(func.count(Property.id)).where(Property.created_at >= since)
        )
        return result.scalar() or 0

    async def counts_by_day(self, since: datetime) -> Dict[str, int]:
        day = func.date(Property.created_at)
        result = await self.db.execute(
            select(day, func.count(Property.id))
            .where(Property.created_at >= since)
            .group_by(day)
        )
        return {str(d): count for d, count in result.all()}


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates in kilometers."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))
