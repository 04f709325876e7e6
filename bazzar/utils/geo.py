"""
Geographic helpers for pool matching and location rooms
"""
import math
import re

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1, lng1, lat2, lng2):
    """Great-circle distance in kilometres"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def normalize_place(value):
    """'  Andheri  East ' -> 'andheri east', None -> ''"""
    if not value:
        return ""
    return " ".join(value.split()).lower()


def location_room(value):
    """Socket.IO room name for an area, address or city"""
    key = re.sub(r"\s+", "_", normalize_place(value))
    return f"location_{key}"
