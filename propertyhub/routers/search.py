"""
Natural-language search endpoints.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from propertyhub.models.user import User
from propertyhub.services.ai_search import AISearchService
from propertyhub.services.location import LocationValidator
from propertyhub.schemas.error import get_error_responses
from propertyhub.schemas.search import AISearchRequest, AISearchResponse, LocationValidationResponse
from propertyhub.utils.dependencies import (
    get_ai_search_service,
    get_location_validator,
    get_optional_current_user,
    rate_limit_by_user,
)

router = APIRouter(prefix="/search", tags=["Search"])


@router.post(
    "/ai",
    response_model=AISearchResponse,
    summary="AI search",
    description=(
        "Search listings with a free-text query such as \"casa de 3 habitaciones en "
        "El Ejido bajo $200k\". Parsing problems are reported with success=false "
        "rather than an HTTP error."
    ),
    responses=get_error_responses(422, 429),
    dependencies=[Depends(rate_limit_by_user("ai-search"))]
)
async def ai_search(
    search_data: AISearchRequest,
    current_user: Optional[User] = Depends(get_optional_current_user),
    search_service: AISearchService = Depends(get_ai_search_service)
) -> AISearchResponse:
    result = await search_service.search(search_data.query, user=current_user)
    return AISearchResponse.model_validate(result)


@router.get(
    "/locations/validate",
    response_model=LocationValidationResponse,
    summary="Validate location",
    description="Match a city name against cities with available listings and suggest close alternatives",
    responses=get_error_responses(422)
)
async def validate_location(
    location: str = Query(..., min_length=1, max_length=100),
    validator: LocationValidator = Depends(get_location_validator)
) -> LocationValidationResponse:
    return LocationValidationResponse.from_result(await validator.validate(location))
