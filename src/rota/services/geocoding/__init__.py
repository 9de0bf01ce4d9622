"""Geocoding services."""

from .clients import AddressLookupClient, CoordinateSearchClient
from .resolver import GeocodingResolver, normalize_postal_code, split_codes

__all__ = [
    "AddressLookupClient",
    "CoordinateSearchClient",
    "GeocodingResolver",
    "normalize_postal_code",
    "split_codes",
]
