"""Pydantic models for POI records, write payloads and sync results."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

import config


class POI(BaseModel):
    id: int
    user_id: str
    name: str
    description: str = ""
    latitude: float
    longitude: float
    category: str = config.DEFAULT_CATEGORY
    is_visited: bool = False
    client_id: str | None = None
    created_at: str
    updated_at: str


class NearbyPOI(POI):
    distance: float


class POICreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    latitude: float = Field(ge=config.LAT_MIN, le=config.LAT_MAX)
    longitude: float = Field(ge=config.LON_MIN, le=config.LON_MAX)
    category: str = config.DEFAULT_CATEGORY
    is_visited: bool = False
    client_id: str | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, v):
        return "" if v is None else v

    @field_validator("category", mode="before")
    @classmethod
    def _null_category(cls, v):
        return config.DEFAULT_CATEGORY if v is None else v


class POIUpdate(BaseModel):
    """Partial update. Only fields the caller actually set are written.

    Presence is tracked by `model_fields_set`, so an absent field and an
    explicit null are different things.
    """

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    latitude: float | None = Field(default=None, ge=config.LAT_MIN, le=config.LAT_MAX)
    longitude: float | None = Field(default=None, ge=config.LON_MIN, le=config.LON_MAX)
    category: str | None = None
    is_visited: bool | None = None
    client_id: str | None = None

    @field_validator("name", "latitude", "longitude", "category", "is_visited")
    @classmethod
    def _not_null(cls, v, info):
        # only runs for values that were supplied
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    def changes(self) -> dict[str, Any]:
        """Supplied fields mapped to their column values."""
        data = self.model_dump(include=self.model_fields_set)
        if "description" in data and data["description"] is None:
            data["description"] = ""
        if "is_visited" in data:
            data["is_visited"] = 1 if data["is_visited"] else 0
        return data


class SyncItemError(BaseModel):
    poi: dict[str, Any] | None = None
    poi_id: int | None = None
    error: str


class SyncSummary(BaseModel):
    created: int
    updated: int
    deleted: int
    errors: int


class SyncResult(BaseModel):
    created: list[POI] = []
    updated: list[POI] = []
    deleted: list[int] = []
    errors: list[SyncItemError] = []
    final_state: list[POI] = []

    def summary(self) -> SyncSummary:
        return SyncSummary(
            created=len(self.created),
            updated=len(self.updated),
            deleted=len(self.deleted),
            errors=len(self.errors),
        )


# ---------- Request bodies ----------

class SyncRequest(BaseModel):
    pois: Any = None


class POIDistanceRequest(BaseModel):
    poiId1: int | None = Field(default=None, le=config.MAX_POI_ID)
    poiId2: int | None = Field(default=None, le=config.MAX_POI_ID)


class CoordinateDistanceRequest(BaseModel):
    lat1: float | str | None = None
    lon1: float | str | None = None
    lat2: float | str | None = None
    lon2: float | str | None = None
