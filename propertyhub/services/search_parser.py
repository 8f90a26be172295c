"""
Natural-language search parsing with the OpenAI chat completions API.

Turns a free-text query such as "Casa moderna en Cuenca con 3 habitaciones
bajo $200k" into structured filters for the property repository.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from propertyhub.config import settings

logger = logging.getLogger(__name__)

MIN_PRICE = 10_000
MAX_PRICE = 1_000_000
MAX_ROOMS = 10
DEFAULT_CONFIDENCE = 75

SYSTEM_PROMPT = """You are an expert real estate search assistant for the Ecuador market, specifically Cuenca and surrounding areas.

YOUR TASK: Extract structured search parameters from natural language queries, usually written in Spanish.

THINK STEP BY STEP:
1. LOCATION: look for city names, neighborhoods or regional clues.
   - Explicit: "en Cuenca", "El Ejido", "Gualaceo"
   - Implicit: "centro" -> Zona Centro, "norte" -> Zona Norte
   - Default: if no location is given, use "Cuenca"
2. PROPERTY TYPE: one of casa, apartamento, suite, terreno, local.
   - "casa" = standalone house; "apartamento" = unit in a building (most common)
   - "suite" = studio, usually furnished; "terreno" = land only; "local" = commercial space
3. PRICE: minimum and maximum in USD.
   - "bajo $100k" -> maxPrice 100000
   - "$200k a $300k" -> minPrice 200000, maxPrice 300000
4. BEDROOMS / BATHROOMS: "X habitaciones", "X cuartos", "X baños". Valid range 0-10. Do not infer.
5. FEATURES vs AMENITIES:
   - features are physical: "garaje", "jardín", "piscina", "balcón"
   - amenities describe the furnished state: "amueblado", "sin amueblar"
   - style words ("moderno", "colonial", "lujoso") are not filters
6. TRANSACTION TYPE: "arriendo", "alquiler", "renta" -> ARRIENDO; "venta", "compra" -> VENTA. Default VENTA.
7. CONFIDENCE (0-100):
   - 90-100 clear and specific; 70-89 minor ambiguity; 50-69 some ambiguity
   - 30-49 significant ambiguity; below 30 too vague to filter safely

VALIDATION RULES:
- minPrice and maxPrice must be between 10,000 and 1,000,000 USD, otherwise null
- bedrooms and bathrooms must be between 0 and 10, otherwise null

LOCATION CONTEXT:
- Main city: Cuenca. Nearby cities: Gualaceo, Paute, Azogues.
- Cuenca neighborhoods: Zona Centro, El Ejido, Belén, Totoracocha, Estadio, Machangara, Monay, Hermano Miguel.

EXAMPLE:
Input: "Casa moderna en Cuenca con 3 habitaciones bajo $200k"
Output: {"city":"Cuenca","category":"casa","bedrooms":3,"maxPrice":200000,"features":["moderna"],"transactionType":"VENTA","confidence":95,"reasoning":"Explicit city, type, bedrooms and budget"}

OUTPUT FORMAT:
Return ONLY a JSON object with these fields:
{
  "city": string or null,
  "address": string or null,
  "category": "casa" | "apartamento" | "suite" | "terreno" | "local" | null,
  "minPrice": number or null,
  "maxPrice": number or null,
  "bedrooms": number or null,
  "bathrooms": number or null,
  "features": array of strings,
  "amenities": array of strings,
  "transactionType": "VENTA" | "ARRIENDO" | null,
  "confidence": number (0-100),
  "reasoning": string
}
Never invent prices, rooms or locations that are not in the query."""

# Model output keys -> filter keys
FIELD_NAMES = {
    "city": "city",
    "address": "address",
    "category": "category",
    "minPrice": "min_price",
    "maxPrice": "max_price",
    "bedrooms": "bedrooms",
    "bathrooms": "bathrooms",
    "features": "features",
    "amenities": "amenities",
    "transactionType": "transaction_type",
}

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*")

_client: Optional[AsyncOpenAI] = None


@dataclass
class ParseResult:
    success: bool
    raw_query: str
    filters: Dict[str, Any] = field(default_factory=dict)
    confidence: int = 0
    reasoning: str = ""
    error: Optional[str] = None


def get_openai_client() -> Optional[AsyncOpenAI]:
    """Shared client, or None when no API key is configured."""
    global _client
    if _client is None and settings.openai_api_key:
        _client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.openai_timeout)
    return _client


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def validate_parsed_result(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Normalize the model's JSON into filter values.

    Prices outside the local market range and implausible room counts are
    treated as parsing mistakes and dropped.

    Returns:
        Dict with the snake_case filters plus ``confidence`` and ``reasoning``
    """
    filters: Dict[str, Any] = {}
    for source, target in FIELD_NAMES.items():
        value = data.get(source)
        if value is None or value == "":
            continue
        filters[target] = value

    for key in ("min_price", "max_price"):
        if key in filters:
            price = _number_or_none(filters[key])
            if price is None or not MIN_PRICE <= price <= MAX_PRICE:
                logger.warning(f"Discarding {key}={filters[key]!r}: outside [{MIN_PRICE}, {MAX_PRICE}]")
                del filters[key]

    for key in ("bedrooms", "bathrooms"):
        if key in filters:
            rooms = _number_or_none(filters[key])
            if rooms is None or not 0 <= rooms <= MAX_ROOMS:
                logger.warning(f"Discarding {key}={filters[key]!r}: outside [0, {MAX_ROOMS}]")
                del filters[key]
            elif key == "bedrooms":
                filters[key] = int(rooms)

    for key in ("features", "amenities"):
        value = filters.get(key)
        filters[key] = [str(item) for item in value if item] if isinstance(value, list) else []

    confidence = _number_or_none(data.get("confidence"))
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE

    return {
        "filters": filters,
        "confidence": int(max(0, min(100, round(confidence)))),
        "reasoning": str(data.get("reasoning") or ""),
    }


def _strip_fences(content: str) -> str:
    return _FENCE_PATTERN.sub("", content).strip()


async def parse_search_query(query: str, client: Optional[AsyncOpenAI] = None) -> ParseResult:
    """
    Extract search filters from a natural-language query.

    Args:
        query: User's free-text query
        client: OpenAI client; the shared one is used when omitted

    Returns:
        ParseResult; failures are reported through ``success`` and ``error``
        rather than raised
    """
    if not query or not query.strip():
        return ParseResult(success=False, raw_query=query or "", error="Query cannot be empty")

    if len(query) > settings.ai_search_max_query_length:
        return ParseResult(
            success=False,
            raw_query=query,
            error=f"Query too long (max {settings.ai_search_max_query_length} characters)"
        )

    client = client or get_openai_client()
    if client is None:
        logger.error("AI search requested but OPENAI_API_KEY is not configured")
        return ParseResult(success=False, raw_query=query, error="AI service unavailable")

    try:
        response = await client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
            response_format={"type": "json_object"},
        )
    except OpenAIError as e:
        logger.error(f"OpenAI request failed for query {query!r}: {e}")
        return ParseResult(success=False, raw_query=query, error="AI service unavailable")

    content = response.choices[0].message.content if response.choices else None
    if not content:
        logger.error(f"Empty response from OpenAI for query {query!r}")
        return ParseResult(success=False, raw_query=query, error="AI service unavailable")

    try:
        data = json.loads(_strip_fences(content))
    except json.JSONDecodeError:
        logger.error(f"Failed to parse OpenAI response: {content!r}")
        return ParseResult(success=False, raw_query=query, error="Failed to parse AI response")

    if not isinstance(data, dict):
        logger.error(f"OpenAI response is not a JSON object: {content!r}")
        return ParseResult(success=False, raw_query=query, error="Failed to parse AI response")

    validated = validate_parsed_result(data)
    logger.info(
        f"Parsed AI search query {query!r}: confidence={validated['confidence']} "
        f"filters={validated['filters']}"
    )
    return ParseResult(
        success=True,
        raw_query=query,
        filters=validated["filters"],
        confidence=validated["confidence"],
        reasoning=validated["reasoning"],
    )


def is_confident_parse(result: ParseResult, min_confidence: int = 50) -> bool:
    return result.success and result.confidence >= min_confidence


def _format_thousands(value: float) -> str:
    return f"${value / 1000:.0f}k"


def build_filter_summary(filters: Dict[str, Any]) -> Dict[str, Any]:
    """Human-readable summary of parsed filters; empty values are left out."""
    summary: Dict[str, Any] = {}
    for key in ("city", "address", "category", "bedrooms", "bathrooms", "transaction_type"):
        if filters.get(key) is not None:
            summary[key] = filters[key]

    min_price = filters.get("min_price")
    max_price = filters.get("max_price")
    if min_price and max_price:
        summary["price_range"] = f"{_format_thousands(min_price)} - {_format_thousands(max_price)}"
    elif min_price:
        summary["price_range"] = f"From {_format_thousands(min_price)}"
    elif max_price:
        summary["price_range"] = f"Up to {_format_thousands(max_price)}"

    if filters.get("features"):
        summary["features"] = list(filters["features"])

    return summary
