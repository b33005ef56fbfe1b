"""Sync reconciler: make a user's stored POIs match a client snapshot.

The incoming batch is the complete desired state for the user:
- items with an `id` that matches one of the user's POIs are updates,
- every other valid item is a create,
- stored POIs whose id no incoming item carries are deleted.

Phases run create -> update -> delete with no transaction around them. A
failing item is recorded in `errors` and the rest of the batch carries on.
Two syncs for the same user at once are not serialised.
"""

import logging
import time

import pydantic

import config
from errors import POIError, ValidationError
from geo import to_float, valid_coordinates
from models import POI, POICreate, POIUpdate, SyncItemError, SyncResult
from store import POIStore

logger = logging.getLogger(__name__)

MISSING_FIELDS = "Name, latitude, and longitude are required"
BAD_COORDINATES = "Invalid latitude or longitude values"


def _coerce_id(value) -> int | None:
    """Server id carried by an incoming item, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


def _first_error(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]


def _validate_item(item) -> tuple[float, float]:
    """Return the item's coordinates or raise ValidationError."""
    if not isinstance(item, dict):
        raise ValidationError("POI must be an object")
    if not item.get("name") or item.get("latitude") is None or item.get("longitude") is None:
        raise ValidationError(MISSING_FIELDS)
    try:
        lat, lon = to_float(item["latitude"]), to_float(item["longitude"])
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(BAD_COORDINATES)
    if not valid_coordinates(lat, lon):
        raise ValidationError(BAD_COORDINATES)
    return lat, lon


def _fields(item: dict, lat: float, lon: float) -> dict:
    """Full field set written for an incoming item, defaults applied."""
    # is_visited keeps truthiness semantics: any truthy value counts as visited
    fields = {
        "name": item["name"],
        "description": item.get("description") or "",
        "latitude": lat,
        "longitude": lon,
        "category": item.get("category") or config.DEFAULT_CATEGORY,
        "is_visited": bool(item.get("is_visited")),
    }
    if item.get("client_id") is not None:
        fields["client_id"] = str(item["client_id"])
    return fields


class SyncReconciler:
    def __init__(self, store: POIStore):
        self.store = store

    def sync_pois(self, user_id: str, batch) -> SyncResult:
        if not isinstance(batch, list):
            raise ValidationError("POIs must be provided as an array")

        start_time = time.time()
        existing = self.store.find_all_by_user(user_id)
        existing_by_id: dict[int, POI] = {p.id: p for p in existing}

        result = SyncResult()
        to_create: list[tuple[dict, POICreate]] = []
        to_update: list[tuple[dict, int, POIUpdate]] = []

        for item in batch:
            try:
                lat, lon = _validate_item(item)
                fields = _fields(item, lat, lon)
                poi_id = _coerce_id(item.get("id"))
                if poi_id is not None and poi_id in existing_by_id:
                    to_update.append((item, poi_id, POIUpdate(**fields)))
                else:
                    to_create.append((item, POICreate(**fields)))
            except ValidationError as exc:
                result.errors.append(SyncItemError(poi=item if isinstance(item, dict) else None, error=exc.message))
            except pydantic.ValidationError as exc:
                result.errors.append(SyncItemError(poi=item, error=_first_error(exc)))

        # every id the client sent, valid item or not, keeps its POI alive
        incoming_ids = {
            _coerce_id(item.get("id")) for item in batch if isinstance(item, dict)
        }
        to_delete = [p.id for p in existing if p.id not in incoming_ids]

        logger.info(
            "Sync user=%s: %d incoming, %d to create, %d to update, %d to delete, %d invalid",
            user_id, len(batch), len(to_create), len(to_update), len(to_delete), len(result.errors),
        )

        for item, data in to_create:
            try:
                poi_id = self.store.create(user_id, data)
                result.created.append(self.store.find_by_id(poi_id))
            except POIError as exc:
                logger.warning("Sync create failed for user=%s: %s", user_id, exc.message)
                result.errors.append(SyncItemError(poi=item, error=exc.message))

        for item, poi_id, patch in to_update:
            try:
                self.store.update(poi_id, patch)
                result.updated.append(self.store.find_by_id(poi_id))
            except POIError as exc:
                logger.warning("Sync update of POI %d failed: %s", poi_id, exc.message)
                result.errors.append(SyncItemError(poi=item, error=exc.message))

        for poi_id in to_delete:
            try:
                self.store.delete(poi_id)
                result.deleted.append(poi_id)
            except POIError as exc:
                logger.warning("Sync delete of POI %d failed: %s", poi_id, exc.message)
                result.errors.append(SyncItemError(poi_id=poi_id, error=exc.message))

        result.final_state = self.store.find_all_by_user(user_id)

        summary = result.summary()
        logger.info(
            "Sync user=%s complete: %d created, %d updated, %d deleted, %d errors in %.2fs",
            user_id, summary.created, summary.updated, summary.deleted, summary.errors,
            time.time() - start_time,
        )
        return result
