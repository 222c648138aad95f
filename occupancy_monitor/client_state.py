"""SQLite-backed storage for persisted client state.

Holds the auth token, the selected site id and the signed-in user's email so
they survive a restart. Each key is independently settable and clearable;
logout clears all of them together.
"""

import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path

from .config import config

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"
SITE_ID_KEY = "site_id"
USER_EMAIL_KEY = "user_email"

ALL_KEYS = (TOKEN_KEY, SITE_ID_KEY, USER_EMAIL_KEY)


class ClientStateStore:
    """Key/value store for client session state."""

    def __init__(self, db_path: str | None = None):
        """Initialize state store.

        Args:
            db_path: Path to SQLite database. Defaults to OCCUPANCY_STATE_DB_PATH
                     or ~/.occupancy/client_state.db
        """
        if db_path:
            self.db_path = os.path.expanduser(db_path)
        else:
            self.db_path = config.get_state_db_path()

        # Ensure directory exists
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._init_db()

    def _init_db(self) -> None:
        """Initialize database schema."""
        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path) as f:
            schema = f.read()

        with self._connect() as conn:
            conn.executescript(schema)

    def _connect(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, key: str) -> str | None:
        """Get a stored value, None if not set."""
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT value FROM client_state WHERE key = ?",
                (key,)
            )
            row = cursor.fetchone()
            return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO client_state (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, datetime.now().isoformat())
            )
            conn.commit()

    def remove(self, key: str) -> bool:
        """Remove a value. Returns True if something was removed."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM client_state WHERE key = ?", (key,))
            conn.commit()
            return cursor.rowcount > 0

    def clear(self) -> None:
        """Remove all session keys."""
        with self._connect() as conn:
            conn.executemany(
                "DELETE FROM client_state WHERE key = ?",
                [(key,) for key in ALL_KEYS]
            )
            conn.commit()
        logger.info("Cleared persisted client state")

    # Typed accessors

    def get_token(self) -> str | None:
        return self.get(TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self.set(TOKEN_KEY, token)

    def get_site_id(self) -> str | None:
        return self.get(SITE_ID_KEY)

    def set_site_id(self, site_id: str) -> None:
        self.set(SITE_ID_KEY, site_id)

    def get_user_email(self) -> str | None:
        return self.get(USER_EMAIL_KEY)

    def set_user_email(self, email: str) -> None:
        self.set(USER_EMAIL_KEY, email)
