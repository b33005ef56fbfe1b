"""FastAPI application for the POI sync service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Query, Path, Header, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
from db import Database
from errors import POIError, Forbidden, NotFound, Unauthorized, ValidationError
from geo import distance, to_float, valid_coordinates
from models import POI, POICreate, POIUpdate, SyncRequest, POIDistanceRequest, CoordinateDistanceRequest
from proximity import find_nearby, distance_between
from store import POIStore
from sync import SyncReconciler

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    database = Database(config.DATABASE_PATH, config.TURSO_DATABASE_URL, config.TURSO_AUTH_TOKEN)
    database.init_schema()
    app.state.store = POIStore(database)
    logger.info("Database initialized")
    yield


app = FastAPI(title="POI Sync Service", version="1.0.0", lifespan=lifespan)

# CORS: allow frontend origin(s)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Errors ----------

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


@app.exception_handler(POIError)
async def poi_error_handler(request: Request, exc: POIError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    return _error(400, f"{loc}: {err['msg']}" if loc else err["msg"])


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Something went wrong")


# ---------- Identity ----------

async def current_user(
    x_user_id: str = Header(default=""),
    x_api_key: str = Header(default=""),
) -> str:
    """User id from the authenticating gateway. No API key configured = allow (local dev)."""
    if config.API_KEY and x_api_key != config.API_KEY:
        raise Forbidden("Invalid or missing API key")
    if not x_user_id:
        raise Unauthorized("Authentication is required")
    return x_user_id


def get_store(request: Request) -> POIStore:
    return request.app.state.store


def get_reconciler(store: POIStore = Depends(get_store)) -> SyncReconciler:
    return SyncReconciler(store)


def _owned_poi(store: POIStore, poi_id: int, user_id: str, label: str = "POI") -> POI:
    try:
        poi = store.find_by_id(poi_id)
    except NotFound:
        raise NotFound(f"{label} not found")
    if poi.user_id != user_id:
        raise Forbidden(f"Unauthorized access to {label}")
    return poi


# ---------- Index / health ----------

@app.get("/")
async def index():
    return {
        "message": "Welcome to the POI Sync API",
        "endpoints": {"pois": "/api/pois", "sync": "/api/sync", "distance": "/api/distance"},
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------- POIs ----------

@app.get("/api/pois")
async def list_pois(user_id: str = Depends(current_user), store: POIStore = Depends(get_store)):
    pois = store.find_all_by_user(user_id)
    return {"success": True, "count": len(pois), "data": pois}


@app.get("/api/pois/nearby")
async def nearby_pois(
    latitude: float = Query(..., ge=config.LAT_MIN, le=config.LAT_MAX),
    longitude: float = Query(..., ge=config.LON_MIN, le=config.LON_MAX),
    radius: float = Query(config.DEFAULT_NEARBY_RADIUS_KM, gt=0, description="Radius in kilometers"),
    user_id: str = Depends(current_user),
    store: POIStore = Depends(get_store),
):
    pois = find_nearby(store, user_id, latitude, longitude, radius)
    return {"success": True, "count": len(pois), "data": pois}


@app.post("/api/pois", status_code=201)
async def create_poi(
    body: POICreate,
    user_id: str = Depends(current_user),
    store: POIStore = Depends(get_store),
):
    poi_id = store.create(user_id, body)
    return {"success": True, "data": store.find_by_id(poi_id)}


@app.get("/api/pois/{poi_id}")
async def get_poi(poi_id: int = Path(..., le=config.MAX_POI_ID), user_id: str = Depends(current_user), store: POIStore = Depends(get_store)):
    return {"success": True, "data": _owned_poi(store, poi_id, user_id)}


@app.put("/api/pois/{poi_id}")
async def update_poi(
    body: POIUpdate,
    poi_id: int = Path(..., le=config.MAX_POI_ID),
    user_id: str = Depends(current_user),
    store: POIStore = Depends(get_store),
):
    _owned_poi(store, poi_id, user_id)
    store.update(poi_id, body)
    return {"success": True, "data": store.find_by_id(poi_id)}


@app.delete("/api/pois/{poi_id}")
async def delete_poi(poi_id: int = Path(..., le=config.MAX_POI_ID), user_id: str = Depends(current_user), store: POIStore = Depends(get_store)):
    _owned_poi(store, poi_id, user_id)
    store.delete(poi_id)
    return {"success": True, "message": "POI deleted successfully"}


# ---------- Sync ----------

@app.post("/api/sync")
async def sync_pois(
    body: SyncRequest,
    user_id: str = Depends(current_user),
    reconciler: SyncReconciler = Depends(get_reconciler),
):
    result = reconciler.sync_pois(user_id, body.pois)
    return {
        "success": True,
        "sync_summary": result.summary(),
        "data": {
            "pois": result.final_state,
            "created": result.created,
            "updated": result.updated,
            "deleted": result.deleted,
            "errors": result.errors,
        },
    }


# ---------- Distance ----------

@app.post("/api/distance/pois")
async def poi_distance(
    body: POIDistanceRequest,
    user_id: str = Depends(current_user),
    store: POIStore = Depends(get_store),
):
    if not body.poiId1 or not body.poiId2:
        raise ValidationError("Two POI IDs are required")
    first = _owned_poi(store, body.poiId1, user_id, "POI 1")
    second = _owned_poi(store, body.poiId2, user_id, "POI 2")
    return {
        "success": True,
        "data": {
            "poi1": first.model_dump(include={"id", "name", "latitude", "longitude"}),
            "poi2": second.model_dump(include={"id", "name", "latitude", "longitude"}),
            "distance": distance_between(first, second),
            "unit": "kilometers",
        },
    }


@app.post("/api/distance/coordinates")
async def coordinate_distance(body: CoordinateDistanceRequest, user_id: str = Depends(current_user)):
    raw = (body.lat1, body.lon1, body.lat2, body.lon2)
    if any(v is None for v in raw):
        raise ValidationError("Two coordinate pairs (lat1, lon1, lat2, lon2) are required")
    try:
        lat1, lon1, lat2, lon2 = (to_float(v) for v in raw)
    except (ValueError, OverflowError):
        raise ValidationError("Invalid coordinate values")
    if not (valid_coordinates(lat1, lon1) and valid_coordinates(lat2, lon2)):
        raise ValidationError("Invalid coordinate values")
    return {
        "success": True,
        "data": {
            "point1": {"latitude": lat1, "longitude": lon1},
            "point2": {"latitude": lat2, "longitude": lon2},
            "distance": distance(lat1, lon1, lat2, lon2),
            "unit": "kilometers",
        },
    }
