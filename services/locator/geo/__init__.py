"""
External geo collaborators: geocoding, containment lookup, distances.

Public API:
    from services.locator.geo.geocoder import NominatimGeocoder
    from services.locator.geo.spatial import NeighborhoodStore
    from services.locator.geo.distance import PostGISDistanceProvider, HaversineDistanceProvider
"""
