import os
from dotenv import load_dotenv

load_dotenv()

# --- Database (libsql) ---
DATABASE_PATH = os.getenv("DATABASE_PATH", "poi.db")
TURSO_DATABASE_URL = os.getenv("TURSO_DATABASE_URL", "")
TURSO_AUTH_TOKEN = os.getenv("TURSO_AUTH_TOKEN", "")

# --- Access ---
API_KEY = os.getenv("API_KEY", "")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:8000,http://localhost:3000").split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Geo ---
EARTH_RADIUS_KM = 6371.0

LAT_MIN, LAT_MAX = -90.0, 90.0
LON_MIN, LON_MAX = -180.0, 180.0

# --- POI defaults ---
DEFAULT_CATEGORY = "other"
DEFAULT_NEARBY_RADIUS_KM = 5.0

# SQLite INTEGER is a signed 64-bit value
MAX_POI_ID = 2**63 - 1
