"""
Geocoding helper used when a trip origin is not one of the built-in cities.
Resolves a place name to coordinates through Nominatim.
"""
import logging
import httpx
from typing import Optional, Tuple

from utils.cities import find_city_coords

logger = logging.getLogger("halador.geocoding")


def geocode_place_to_coords(
    place_query: str,
    timeout: float = 5.0
) -> Optional[Tuple[float, float]]:
    """
    Convert a place name to coordinates using Nominatim, restricted to Peru.

    Returns:
        (lat, lon) or None if geocoding fails
    """
    try:
        with httpx.Client(timeout=timeout) as client:
            resp = client.get(
                "https://nominatim.openstreetmap.org/search",
                params={
                    "q": place_query,
                    "format": "json",
                    "limit": 1,
                    "countrycodes": "pe",
                },
                headers={"User-Agent": "HaladorApp/1.0"}
            )
            resp.raise_for_status()
            data = resp.json()

            if data:
                return float(data[0]["lat"]), float(data[0]["lon"])
    except (httpx.HTTPError, KeyError, ValueError) as exc:
        logger.warning("Geocoding failed for %r: %s", place_query, exc)

    return None


def resolve_coordinates(place: str, use_geocoder: bool = False) -> Optional[Tuple[float, float]]:
    """Known city table first, then the geocoder when enabled."""
    coords = find_city_coords(place)
    if coords is None and use_geocoder:
        coords = geocode_place_to_coords(f"{place}, Peru")
    return coords
