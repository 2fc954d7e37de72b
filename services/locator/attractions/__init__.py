"""
Attraction enrichment: geocode a batch of attractions, find the
neighborhood containing each one, and summarise the batch with a single
best neighborhood.

Public API:
    from services.locator.attractions.service import AttractionService
"""
