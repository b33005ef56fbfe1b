import itertools
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from db import Database
from store import POIStore


def ticking_clock():
    """Clock that moves one second per call, so timestamps are strictly ordered."""
    ticks = itertools.count()
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return lambda: (base + timedelta(seconds=next(ticks))).isoformat()


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "test_poi.db")
    database.init_schema()
    return database


@pytest.fixture
def store(db):
    return POIStore(db, clock=ticking_clock())
