"""
Domain exceptions for the neighborhood locator.

Inner stages raise; the HTTP layer maps each kind onto an error envelope.
Nothing here is retried.
"""


class LocatorError(Exception):
    """Base class for all locator failures."""


class ProviderError(LocatorError):
    """The distance provider could not compute a distance."""


class NoNeighborhoodFoundError(LocatorError):
    """No neighborhood could be resolved from the given candidates."""

    def __init__(
        self,
        message: str = "Unable to resolve neighborhood after attempting to find best match.",
    ) -> None:
        super().__init__(message)


class SpatialLookupError(LocatorError):
    """The spatial containment store query failed."""


class GeocodingError(LocatorError):
    """The geocoder could not be reached or returned an error status."""


class MissingAttractionKeyIdentifierError(LocatorError):
    """An attraction is missing its name, city or state."""
