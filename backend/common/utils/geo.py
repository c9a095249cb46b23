"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application.
"""

from decimal import Decimal, InvalidOperation
from math import radians, cos, sin, asin, sqrt
from typing import Tuple

_SIX_PLACES = Decimal("0.000001")


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.
    
    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    
    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    r = 6371000  # Earth's radius in meters
    return c * r


def parse_coordinates(lat, lon) -> Tuple[Decimal, Decimal]:
    """
    Validate a latitude/longitude pair and round it to six decimal places.

    Raises:
        ValueError: If either value is missing, not a number or out of range
    """
    if lat is None or lon is None or lat == "" or lon == "":
        raise ValueError("Latitude and longitude are required")
    try:
        lat = Decimal(str(lat))
        lon = Decimal(str(lon))
    except (InvalidOperation, ValueError):
        raise ValueError("Latitude and longitude must be numbers")
    if not lat.is_finite() or not lon.is_finite():
        raise ValueError("Latitude and longitude must be numbers")
    if not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        raise ValueError("Coordinates out of range")
    return lat.quantize(_SIX_PLACES), lon.quantize(_SIX_PLACES)
