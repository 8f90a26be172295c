"""
Property management API endpoints for CRUD operations, search, map browsing and statistics.
"""

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from typing import List, Optional
from decimal import Decimal
from uuid import UUID

from propertyhub.config import settings
from propertyhub.models.property import Property, PropertyCategory, PropertyStatus, TransactionType
from propertyhub.models.user import User
from propertyhub.services.property import PropertyService
from propertyhub.schemas.common import PaginatedResponse, page_to_skip
from propertyhub.schemas.error import get_common_error_responses, get_crud_error_responses, get_error_responses
from propertyhub.schemas.property import (
    CitySuggestion,
    MapBounds,
    NearbyPropertyResponse,
    PriceBucket,
    PriceRangeResponse,
    PropertyCreate,
    PropertyResponse,
    PropertySearchParams,
    PropertyStatusUpdate,
    PropertySummary,
    PropertyUpdate,
)
from propertyhub.utils.dependencies import (
    get_current_active_user,
    get_current_agent_user,
    get_property_service,
    rate_limit_by_user,
)


router = APIRouter(prefix="/properties", tags=["Properties"])


def get_search_params(
    transaction_type: Optional[TransactionType] = Query(None, description="SALE or RENT"),
    category: Optional[List[PropertyCategory]] = Query(None, description="One or more categories"),
    status: Optional[PropertyStatus] = Query(None, description="Listing status"),
    agent_id: Optional[UUID] = Query(None, description="Only listings of this agent"),
    city: Optional[str] = Query(None, max_length=100),
    state: Optional[str] = Query(None, max_length=100),
    min_bedrooms: Optional[int] = Query(None, ge=0, le=50),
    min_bathrooms: Optional[float] = Query(None, ge=0, le=50),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    min_area: Optional[float] = Query(None, ge=0),
    max_area: Optional[float] = Query(None, ge=0),
    search: Optional[str] = Query(None, max_length=255, description="Free text over title, description and address")
) -> PropertySearchParams:
    """Collect listing filters from the query string."""
    return PropertySearchParams(
        transaction_type=transaction_type,
        category=category,
        status=status,
        agent_id=agent_id,
        city=city,
        state=state,
        min_bedrooms=min_bedrooms,
        min_bathrooms=min_bathrooms,
        min_price=min_price,
        max_price=max_price,
        min_area=min_area,
        max_area=max_area,
        search=search
    )


def _property_response(property_obj: Property) -> PropertyResponse:
    return PropertyResponse.model_validate(property_obj.to_dict(include_agent=True, include_images=True))


@router.get(
    "",
    response_model=PaginatedResponse[PropertySummary],
    summary="List properties with search and filtering",
    description="Get paginated list of properties, newest first, with optional search filters",
    responses=get_error_responses(422)
)
async def list_properties(
    params: PropertySearchParams = Depends(get_search_params),
    page: int = Query(1, ge=1, description="Page number (starts from 1)"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    property_service: PropertyService = Depends(get_property_service)
) -> PaginatedResponse[PropertySummary]:
    properties, total = await property_service.search_properties(
        params.to_filters(),
        skip=page_to_skip(page, page_size),
        take=page_size
    )
    return PaginatedResponse[PropertySummary].build(
        [PropertySummary.model_validate(prop.to_summary()) for prop in properties],
        total,
        page,
        page_size
    )


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create new property",
    description="Create a new property listing. Requires agent or admin role.",
    responses=get_crud_error_responses(),
    dependencies=[Depends(rate_limit_by_user("property-create"))]
)
async def create_property(
    property_data: PropertyCreate,
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    """
    Raises:
        InsufficientPermissionsError: If user doesn't have permission to create properties
        BadRequestError: If an admin assigns the listing to an invalid agent
    """
    property_obj = await property_service.create_property(property_data, current_user)
    return _property_response(property_obj)


@router.get(
    "/map",
    response_model=List[PropertySummary],
    summary="Properties inside map bounds",
    description="Listings with coordinates inside the given viewport. Boxes crossing the antimeridian are rejected.",
    responses=get_error_responses(400, 422)
)
async def get_map_properties(
    ne_lat: float = Query(..., ge=-90, le=90),
    ne_lng: float = Query(..., ge=-180, le=180),
    sw_lat: float = Query(..., ge=-90, le=90),
    sw_lng: float = Query(..., ge=-180, le=180),
    limit: int = Query(1000, ge=1, le=1000),
    params: PropertySearchParams = Depends(get_search_params),
    property_service: PropertyService = Depends(get_property_service)
) -> List[PropertySummary]:
    bounds = MapBounds(ne_lat=ne_lat, ne_lng=ne_lng, sw_lat=sw_lat, sw_lng=sw_lng)
    properties = await property_service.get_map_properties(bounds, params.to_filters(), take=limit)
    return [PropertySummary.model_validate(prop.to_summary()) for prop in properties]


@router.get(
    "/nearby",
    response_model=List[NearbyPropertyResponse],
    summary="Properties near a point",
    description="Available listings within a radius, closest first",
    responses=get_error_responses(400, 422)
)
async def get_nearby_properties(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(10, gt=0, le=100),
    limit: int = Query(20, ge=1, le=100),
    property_service: PropertyService = Depends(get_property_service)
) -> List[NearbyPropertyResponse]:
    nearby = await property_service.get_nearby_properties(latitude, longitude, radius_km, limit)
    return [
        NearbyPropertyResponse.model_validate({**prop.to_summary(), "distance_km": distance})
        for prop, distance in nearby
    ]


@router.get(
    "/price-range",
    response_model=PriceRangeResponse,
    summary="Price range",
    description="Lowest and highest price among listings matching the filters"
)
async def get_price_range(
    params: PropertySearchParams = Depends(get_search_params),
    property_service: PropertyService = Depends(get_property_service)
) -> PriceRangeResponse:
    return PriceRangeResponse(**await property_service.get_price_range(params.to_filters()))


@router.get(
    "/price-distribution",
    response_model=List[PriceBucket],
    summary="Price histogram",
    description="Number of available listings per price bucket"
)
async def get_price_distribution(
    bucket_size: int = Query(10000, gt=0, description="Width of each bucket in USD"),
    params: PropertySearchParams = Depends(get_search_params),
    property_service: PropertyService = Depends(get_property_service)
) -> List[PriceBucket]:
    buckets = await property_service.get_price_distribution(bucket_size, params.to_filters())
    return [PriceBucket(**bucket) for bucket in buckets]


@router.get(
    "/cities",
    response_model=List[CitySuggestion],
    summary="City autocomplete",
    description="Cities with available listings matching the query (two characters minimum)"
)
async def get_cities(
    q: str = Query("", max_length=100, description="Partial city name"),
    limit: int = Query(10, ge=1, le=50),
    property_service: PropertyService = Depends(get_property_service)
) -> List[CitySuggestion]:
    cities = await property_service.get_cities(q, limit=limit)
    return [CitySuggestion(**city) for city in cities]


@router.get(
    "/mine",
    response_model=PaginatedResponse[PropertySummary],
    summary="My listings",
    description="All listings of the current agent, whatever their status",
    responses=get_common_error_responses()
)
async def get_my_properties(
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: User = Depends(get_current_agent_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PaginatedResponse[PropertySummary]:
    properties, total = await property_service.get_agent_properties(
        current_user,
        skip=page_to_skip(page, page_size),
        take=page_size
    )
    return PaginatedResponse[PropertySummary].build(
        [PropertySummary.model_validate(prop.to_summary()) for prop in properties],
        total,
        page,
        page_size
    )


@router.get(
    "/slug/{id_slug}",
    response_model=PropertyResponse,
    summary="Get property by URL slug",
    description=(
        "Resolve an `<id>-<slug>` parameter. When the slug is out of date the "
        "response is a 301 pointing at the canonical slug."
    ),
    responses=get_error_responses(404)
)
async def get_property_by_slug(
    id_slug: str,
    property_service: PropertyService = Depends(get_property_service)
):
    property_obj, slug_matches = await property_service.get_property_by_slug_param(id_slug)
    if not slug_matches:
        return JSONResponse(
            status_code=status.HTTP_301_MOVED_PERMANENTLY,
            content={"id_slug": property_obj.id_slug},
            headers={"Location": f"{settings.api_v1_prefix}/properties/slug/{property_obj.id_slug}"}
        )
    return _property_response(property_obj)


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Get property",
    responses=get_error_responses(404, 422)
)
async def get_property(
    property_id: UUID,
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.get_property(property_id)
    return _property_response(property_obj)


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update property",
    description="Update a listing. Only the owning agent or an admin may update it.",
    responses=get_crud_error_responses()
)
async def update_property(
    property_id: UUID,
    property_data: PropertyUpdate,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.update_property(property_id, property_data, current_user)
    return _property_response(property_obj)


@router.patch(
    "/{property_id}/status",
    response_model=PropertyResponse,
    summary="Change property status",
    responses=get_common_error_responses()
)
async def update_property_status(
    property_id: UUID,
    status_data: PropertyStatusUpdate,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> PropertyResponse:
    property_obj = await property_service.update_status(property_id, status_data.status, current_user)
    return _property_response(property_obj)


@router.delete(
    "/{property_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete property",
    description="Delete a listing with its images, favorites and appointments",
    responses=get_common_error_responses()
)
async def delete_property(
    property_id: UUID,
    current_user: User = Depends(get_current_active_user),
    property_service: PropertyService = Depends(get_property_service)
) -> None:
    await property_service.delete_property(property_id, current_user)
