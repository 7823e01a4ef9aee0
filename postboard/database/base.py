"""
Base database operations and connection management.
"""
import sqlite3
import json
from pathlib import Path
from contextlib import contextmanager
from typing import Any, Dict, List

from postboard.errors import StoreOperationError


class DatabaseBase:
    """Base class with connection and schema management."""

    def __init__(self, db_path: str | Path):
        """Initialize database connection."""
        self.db_path = Path(db_path)
        self._ensure_db_directory()
        self._init_db()

    def _ensure_db_directory(self):
        """Ensure database directory exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections.

        sqlite errors are re-raised as StoreOperationError; any other
        exception raised inside the block rolls back and propagates as is.
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=10.0)
        except sqlite3.Error as e:
            raise StoreOperationError(f"Failed to open document store: {e}") from e

        conn.row_factory = sqlite3.Row  # Enable dict-like access to rows
        try:
            # Enable WAL mode for better concurrent access
            conn.execute('PRAGMA journal_mode=WAL')
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreOperationError(f"Document store operation failed: {e}") from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self.get_connection() as conn:
            cursor = conn.cursor()

            # Posts table; data holds the free-form field mapping
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS posts (
                    id TEXT PRIMARY KEY,
                    data JSON NOT NULL,
                    status TEXT NOT NULL DEFAULT 'active',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            ''')
            cursor.execute('''
                CREATE INDEX IF NOT EXISTS idx_posts_status
                ON posts(status)
            ''')

    def _parse_json_field(self, value: Any, default: Any = None) -> Any:
        """Parse a JSON field safely, returning default on errors."""
        if value is None:
            return default
        if isinstance(value, (dict, list)):
            return value
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return default if default is not None else value
        return value

    def _parse_json_fields(self, row: Dict, fields: List[str], default: Any = None) -> Dict:
        """Parse multiple JSON fields in a row dict."""
        for field in fields:
            if field in row and row[field] is not None:
                row[field] = self._parse_json_field(row[field], default=default)
        return row
