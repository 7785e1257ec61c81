"""
Геокодер адресов поверх полнотекстового индекса мест
"""
from .errors import (
    AddressParserError,
    GeocodingError,
    InvalidInputError,
    NotGeocodableError,
    UnsupportedIntersectionError,
)
from .models import Address, AddressQuery, AddressResults, Candidate
from .service import GeocodingService

__all__ = [
    "Address",
    "AddressParserError",
    "AddressQuery",
    "AddressResults",
    "Candidate",
    "GeocodingError",
    "GeocodingService",
    "InvalidInputError",
    "NotGeocodableError",
    "UnsupportedIntersectionError",
]
