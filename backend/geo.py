"""Great-circle distance and coordinate checks."""

import math

import config


def to_float(value) -> float:
    """Coerce a numeric or numeric-string coordinate to float."""
    if isinstance(value, bool):
        raise ValueError(f"Not a coordinate: {value!r}")
    if isinstance(value, str):
        value = value.strip()
    return float(value)


def _round2(value: float) -> float:
    # half away from zero; distances are never negative
    return math.floor(value * 100 + 0.5) / 100


def distance(lat1, lon1, lat2, lon2) -> float:
    """Distance in kilometers between two lat/lon points (haversine formula).

    Rounded to 2 decimal places. Ranges are not checked here.
    """
    lat1, lon1, lat2, lon2 = (to_float(v) for v in (lat1, lon1, lat2, lon2))
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    a = min(1.0, a)
    return _round2(2 * config.EARTH_RADIUS_KM * math.asin(math.sqrt(a)))


def valid_coordinates(lat: float, lon: float) -> bool:
    if math.isnan(lat) or math.isnan(lon):
        return False
    return config.LAT_MIN <= lat <= config.LAT_MAX and config.LON_MIN <= lon <= config.LON_MAX
