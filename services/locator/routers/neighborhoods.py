"""
Best-neighborhood endpoint: run the resolution engine on neighborhoods the
caller already has.

POST /neighborhoods/best
  {"neighborhoods": [{"name": "Downtown", "city_name": "...", ...}, ...]}
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from services.locator.config import settings
from services.locator.errors import NoNeighborhoodFoundError, ProviderError
from services.locator.resolution.models import Neighborhood
from services.locator.routers._envelope import error_response, request_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/neighborhoods", tags=["neighborhoods"])


class NeighborhoodPayload(BaseModel):
    """Wire shape of a neighborhood."""

    name: str = ""
    city_name: str = ""
    state_or_province_name: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0

    def to_neighborhood(self) -> Neighborhood:
        return Neighborhood(
            name=self.name,
            city=self.city_name,
            state_or_province=self.state_or_province_name,
            country=self.country,
            latitude=self.latitude,
            longitude=self.longitude,
        )


class BestNeighborhoodRequest(BaseModel):
    neighborhoods: list[NeighborhoodPayload] = Field(
        default_factory=list, max_length=settings.attractions_batch_max_size
    )


@router.post("/best")
async def best_neighborhood(body: BestNeighborhoodRequest, request: Request):
    resolver = request.app.state.resolver
    candidates = [n.to_neighborhood() for n in body.neighborhoods]

    try:
        best = await resolver.find_best_neighborhood(candidates)
    except NoNeighborhoodFoundError as exc:
        return error_response(request, 404, "NO_NEIGHBORHOOD_FOUND", str(exc))
    except ProviderError as exc:
        logger.warning("Best-neighborhood resolution failed on distance provider: %s", exc)
        return error_response(
            request, 502, "DISTANCE_PROVIDER_FAILED", "Unable to compute neighborhood distances."
        )

    return {
        "success": True,
        "data": {"neighborhood": best.to_dict()},
        "requestId": request_id(request),
    }
