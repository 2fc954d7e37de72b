"""
Attraction enrichment endpoint.

POST /attractions
- Accepts a JSON array of attractions (max ATTRACTIONS_BATCH_MAX_SIZE)
- Geocodes each one, finds its containing neighborhood, and resolves the
  single neighborhood that best summarises the batch
- 201 with successfulAttractions, failedAttractions, closestNeighborhood
  (null when nothing resolves)
"""

import logging

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from services.locator.attractions.models import Attraction
from services.locator.config import settings
from services.locator.errors import ProviderError, SpatialLookupError
from services.locator.routers._envelope import error_response, request_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["attractions"])


@router.post("/attractions", status_code=201)
async def enrich_attractions(body: list[Attraction], request: Request):
    if len(body) > settings.attractions_batch_max_size:
        return error_response(
            request,
            422,
            "BATCH_TOO_LARGE",
            f"At most {settings.attractions_batch_max_size} attractions per request.",
        )

    service = request.app.state.attraction_service
    if service is None:
        return error_response(
            request, 503, "SPATIAL_STORE_UNAVAILABLE", "Neighborhood store is not connected."
        )

    try:
        result = await service.enrich(body)
    except SpatialLookupError as exc:
        logger.warning("Attraction batch failed on containment lookup: %s", exc)
        return error_response(request, 502, "SPATIAL_LOOKUP_FAILED", "Neighborhood lookup failed.")
    except ProviderError as exc:
        logger.warning("Attraction batch failed on distance provider: %s", exc)
        return error_response(
            request, 502, "DISTANCE_PROVIDER_FAILED", "Unable to compute neighborhood distances."
        )

    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "data": result.to_dict(),
            "requestId": request_id(request),
        },
    )
