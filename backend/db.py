"""Database layer: schema and parameterized query/execute helpers.

Supports two modes:
- Remote (Turso): when a sync URL is given, connects via libsql with an embedded replica.
- Local (dev): otherwise uses a local SQLite file via libsql.

One `Database` is built at startup and passed to the components that need it.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass

import libsql_experimental as libsql

from errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class ExecuteResult:
    rowcount: int
    lastrowid: int | None


def _rows_to_dicts(cursor) -> list[dict]:
    """Convert cursor results to list of dicts using cursor.description."""
    if cursor.description is None:
        return []
    columns = [desc[0] for desc in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


class Database:
    def __init__(self, path: str, sync_url: str = "", auth_token: str = ""):
        self.path = str(path)
        self.sync_url = sync_url
        self.auth_token = auth_token

    def get_conn(self):
        if self.sync_url:
            conn = libsql.connect(self.path, sync_url=self.sync_url, auth_token=self.auth_token)
            conn.sync()
        else:
            conn = libsql.connect(self.path)
        return conn

    @contextmanager
    def _session(self, commit: bool):
        try:
            conn = self.get_conn()
        except Exception as exc:
            raise StorageError(f"Could not open database: {exc}") from exc
        try:
            yield conn
            if commit:
                conn.commit()
                if self.sync_url:
                    conn.sync()
        except StorageError:
            raise
        except Exception as exc:
            logger.error("Database error: %s", exc)
            raise StorageError(str(exc)) from exc
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self._session(commit=True) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS pois (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id     TEXT NOT NULL,
                    name        TEXT NOT NULL,
                    description TEXT,
                    latitude    REAL NOT NULL,
                    longitude   REAL NOT NULL,
                    category    TEXT DEFAULT 'other',
                    is_visited  INTEGER DEFAULT 0,
                    client_id   TEXT,
                    created_at  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_pois_user_id ON pois (user_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_pois_coords ON pois (latitude, longitude)")
        logger.info("Schema ready at %s", self.path)

    def query(self, sql: str, params: tuple = ()) -> list[dict]:
        with self._session(commit=False) as conn:
            cursor = conn.execute(sql, params)
            return _rows_to_dicts(cursor)

    def execute(self, sql: str, params: tuple = ()) -> ExecuteResult:
        with self._session(commit=True) as conn:
            cursor = conn.execute(sql, params)
            return ExecuteResult(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid)
