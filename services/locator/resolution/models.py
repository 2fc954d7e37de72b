"""
Value types shared by the resolution engine.

Neighborhood values are produced by the spatial containment lookup (one per
attraction), are immutable, and hash by full value so they can be used as
graph nodes directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Coordinates:
    """WGS84 point in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class Neighborhood:
    """A localised community within a larger city (i.e. 'Downtown')."""

    name: str = ""
    city: str = ""
    state_or_province: str = ""
    country: str = ""
    latitude: float = 0.0
    longitude: float = 0.0

    @classmethod
    def empty(cls) -> Neighborhood:
        """The zero-value sentinel meaning "not found"."""
        return cls()

    @property
    def is_empty(self) -> bool:
        return self == _EMPTY

    @property
    def identity(self) -> tuple[str, str, str]:
        return (self.name, self.city, self.state_or_province)

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(latitude=self.latitude, longitude=self.longitude)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "city_name": self.city,
            "state_or_province_name": self.state_or_province,
            "country": self.country,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


_EMPTY = Neighborhood()
