"""Geocoding service exports."""

from .nominatim import GeocodingError, NominatimClient

__all__ = ["NominatimClient", "GeocodingError"]
