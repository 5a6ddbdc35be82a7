"""
Staff attendance geofencing
"""
import math
from typing import Optional, Tuple

from hotelops.models.ontology import TimeLogStatus

EARTH_RADIUS_METRES = 6371e3


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METRES * c


def geofence_status(facility, lat: Optional[float], lng: Optional[float],
                    default_radius: int = 100) -> Tuple[TimeLogStatus, Optional[float]]:
    """
    Verdict and distance for a clock-in at (lat, lng).
    Pending when either side has no coordinates.
    """
    if facility is None or facility.latitude is None or facility.longitude is None:
        return TimeLogStatus.PENDING, None
    if lat is None or lng is None:
        return TimeLogStatus.PENDING, None

    distance = haversine_distance(lat, lng, facility.latitude, facility.longitude)
    radius = facility.allowed_radius or default_radius
    status = TimeLogStatus.VALID if distance <= radius else TimeLogStatus.INVALID
    return status, distance
