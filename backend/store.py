"""POI store: CRUD over the `pois` table.

The store does not check ownership. Callers compare `POI.user_id` with the
caller's identity themselves; the only user scoping here is
`find_all_by_user`.
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from db import Database
from errors import NotFound, StorageError
from models import POI, POICreate, POIUpdate

logger = logging.getLogger(__name__)

# Columns a patch may touch, in the order they are written.
UPDATABLE_COLUMNS = ("name", "description", "latitude", "longitude", "category", "is_visited", "client_id")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_poi(row: dict) -> POI:
    row = dict(row)
    row["is_visited"] = bool(row.get("is_visited"))
    row["description"] = row.get("description") or ""
    return POI(**row)


class POIStore:
    def __init__(self, db: Database, clock: Callable[[], str] = _utcnow):
        self.db = db
        self.clock = clock

    def create(self, user_id: str, data: POICreate) -> int:
        now = self.clock()
        result = self.db.execute(
            """INSERT INTO pois
               (user_id, name, description, latitude, longitude, category, is_visited, client_id, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                user_id, data.name, data.description, data.latitude, data.longitude,
                data.category, 1 if data.is_visited else 0, data.client_id, now, now,
            ),
        )
        if result.lastrowid is None:
            raise StorageError("Insert did not return an id")
        logger.debug("Created POI %d for user %s", result.lastrowid, user_id)
        return result.lastrowid

    def find_by_id(self, poi_id: int) -> POI:
        rows = self.db.query("SELECT * FROM pois WHERE id = ?", (poi_id,))
        if not rows:
            raise NotFound()
        return _row_to_poi(rows[0])

    def find_all_by_user(self, user_id: str) -> list[POI]:
        rows = self.db.query(
            "SELECT * FROM pois WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,),
        )
        return [_row_to_poi(r) for r in rows]

    def update(self, poi_id: int, patch: POIUpdate) -> None:
        changes = patch.changes()
        assignments = [f"{col} = ?" for col in UPDATABLE_COLUMNS if col in changes]
        params = [changes[col] for col in UPDATABLE_COLUMNS if col in changes]
        assignments.append("updated_at = ?")
        params.append(self.clock())
        params.append(poi_id)

        result = self.db.execute(
            f"UPDATE pois SET {', '.join(assignments)} WHERE id = ?",
            tuple(params),
        )
        if result.rowcount == 0:
            raise NotFound("POI not found or no changes made")

    def delete(self, poi_id: int) -> None:
        result = self.db.execute("DELETE FROM pois WHERE id = ?", (poi_id,))
        if result.rowcount == 0:
            raise NotFound()
