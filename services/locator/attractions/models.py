"""Attraction payloads and the enrichment result."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from services.locator.errors import MissingAttractionKeyIdentifierError
from services.locator.resolution.models import Coordinates, Neighborhood


class Attraction(BaseModel):
    """A real-world point of interest (i.e. a famous restaurant)."""

    name: str = ""
    city: str = ""
    state_or_province_name: str = ""
    latitude: float = 0.0
    longitude: float = 0.0

    def merged_address(self) -> str:
        """
        "NAME, CITY, STATE" for free-text geocoding. Country is omitted.

        Raises:
            MissingAttractionKeyIdentifierError: one of the parts is blank.
        """
        name = self.name.strip()
        city = self.city.strip()
        state = self.state_or_province_name.strip()

        if not city:
            raise MissingAttractionKeyIdentifierError(
                "Missing one of: attraction name, city name, or state name."
            )
        if not name:
            raise MissingAttractionKeyIdentifierError("Missing attraction name.")
        if not state:
            raise MissingAttractionKeyIdentifierError("Missing state or province name.")
        return ", ".join([name, city, state])

    def with_coordinates(self, coordinates: Coordinates) -> Attraction:
        return self.model_copy(
            update={"latitude": coordinates.latitude, "longitude": coordinates.longitude}
        )

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


@dataclass
class EnrichmentResult:
    """Summary returned by AttractionService.enrich()."""

    successful_attractions: list[Attraction] = field(default_factory=list)
    failed_attractions: list[Attraction] = field(default_factory=list)
    neighborhoods: list[Neighborhood] = field(default_factory=list)
    closest_neighborhood: Neighborhood | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "successfulAttractions": [a.model_dump() for a in self.successful_attractions],
            "failedAttractions": [a.model_dump() for a in self.failed_attractions],
            "closestNeighborhood": (
                self.closest_neighborhood.to_dict() if self.closest_neighborhood else None
            ),
        }
