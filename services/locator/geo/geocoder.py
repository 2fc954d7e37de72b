"""
NominatimGeocoder: free-text address to coordinates via OpenStreetMap.

Nominatim /search (format=jsonv2) returns a list of matches:
  [
    {"place_id": 123, "lat": "37.8199", "lon": "-122.4783",
     "display_name": "Golden Gate Bridge, San Francisco, ...", ...},
    ...
  ]

Only the top match is used. An empty list means "not found" and is not an
error. HTTP and transport failures raise GeocodingError.

Usage policy for the public instance: at most 1 request/second and an
identifying User-Agent. Concurrency is bounded by the caller
(AttractionService) via GEOCODER_MAX_CONCURRENCY.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from services.locator.attractions.models import Attraction
from services.locator.errors import GeocodingError
from services.locator.resolution.models import Coordinates

logger = logging.getLogger(__name__)

_SEARCH_PATH = "/search"


def _parse_top_match(payload: Any) -> Coordinates | None:
    """Extract the first match's coordinates from a /search response."""
    if not isinstance(payload, list) or not payload:
        return None

    top = payload[0]
    try:
        return Coordinates(latitude=float(top["lat"]), longitude=float(top["lon"]))
    except (KeyError, TypeError, ValueError):
        logger.warning("Nominatim match without usable lat/lon: %r", top)
        return None


class NominatimGeocoder:
    """
    Async Nominatim client.

    Usage:
        geocoder = NominatimGeocoder(base_url=settings.nominatim_url, user_agent="...")
        coords = await geocoder.geocode("Golden Gate Bridge, San Francisco, CA")
        await geocoder.aclose()
    """

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_s: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            base_url:   Nominatim root, e.g. https://nominatim.openstreetmap.org
            user_agent: Sent on every request, required by Nominatim policy.
            timeout_s:  Per-request timeout.
            client:     Pre-built client (tests inject a MockTransport one).
                        When omitted the geocoder owns and closes its client.
        """
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout_s,
            headers={"User-Agent": user_agent},
        )

    async def geocode(self, address: str) -> Coordinates | None:
        """
        Resolve a free-text address.

        Returns None when Nominatim has no match.

        Raises:
            GeocodingError: non-2xx status or transport failure.
        """
        try:
            resp = await self._client.get(
                f"{self._base_url}{_SEARCH_PATH}",
                params={"q": address, "format": "jsonv2", "limit": 1},
            )
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Nominatim returned %d for address=%r: %s",
                exc.response.status_code,
                address,
                exc.response.text[:200],
            )
            raise GeocodingError(
                f"Nominatim returned {exc.response.status_code} for {address!r}"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Nominatim request failed for address=%r: %s", address, exc)
            raise GeocodingError(f"Nominatim request failed for {address!r}: {exc}") from exc

        coordinates = _parse_top_match(payload)
        if coordinates is None:
            logger.info("No geocoding match for address=%r", address)
        return coordinates

    async def geocode_attraction(self, attraction: Attraction) -> Coordinates | None:
        """
        Geocode "NAME, CITY, STATE" for an attraction.

        Raises:
            MissingAttractionKeyIdentifierError: the address is incomplete.
            GeocodingError: see geocode().
        """
        return await self.geocode(attraction.merged_address())

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
