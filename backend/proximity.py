"""Proximity search: a user's POIs within a radius, nearest first.

A linear scan over everything the user owns; there is no spatial index.
"""

import logging

from geo import distance
from models import POI, NearbyPOI
from store import POIStore

logger = logging.getLogger(__name__)


def find_nearby(store: POIStore, user_id: str, lat: float, lon: float, radius_km: float) -> list[NearbyPOI]:
    """Return the user's POIs with distance <= radius_km, sorted by distance.

    Ties keep the store's newest-first order. Radius and coordinate bounds
    are validated by the caller.
    """
    nearby = []
    for poi in store.find_all_by_user(user_id):
        d = distance(lat, lon, poi.latitude, poi.longitude)
        if d <= radius_km:
            nearby.append(NearbyPOI(**poi.model_dump(), distance=d))

    nearby.sort(key=lambda p: p.distance)
    logger.debug("Nearby (%.5f, %.5f) r=%.2fkm: %d POIs", lat, lon, radius_km, len(nearby))
    return nearby


def distance_between(first: POI, second: POI) -> float:
    return distance(first.latitude, first.longitude, second.latitude, second.longitude)
