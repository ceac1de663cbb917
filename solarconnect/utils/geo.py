# solarconnect/utils/geo.py
import math
from typing import Optional

EARTH_RADIUS_KM = 6371

def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate the great-circle distance between two points
    on the Earth (specified in decimal degrees)
    """
    lon1, lat1, lon2, lat2 = map(math.radians, [lon1, lat1, lon2, lat2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = math.sin(dlat/2)**2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))
    return c * EARTH_RADIUS_KM

def parse_coordinate(value: Optional[str]) -> Optional[float]:
    """Coordinates are stored as decimal strings; blank or garbage means unknown."""
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None

def distance_to(latitude: float, longitude: float, record: dict) -> Optional[float]:
    """Distance in km from a point to a record's latitude/longitude, if it has both"""
    lat = parse_coordinate(record.get("latitude"))
    lon = parse_coordinate(record.get("longitude"))
    if lat is None or lon is None:
        return None
    return haversine(latitude, longitude, lat, lon)
