"""Post document operations mixin for database."""
import json
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from postboard.errors import RecordNotFoundError

STATUS_PENDING = 'pending'
STATUS_ACTIVE = 'active'


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class PostsMixin:
    """Mixin providing post CRUD operations."""

    def _row_to_post(self, row) -> Dict[str, Any]:
        post = dict(row)
        return self._parse_json_fields(post, ['data'], default={})

    def add_post(self, data: Dict[str, Any], status: str = STATUS_ACTIVE) -> str:
        """
        Create a new post document.

        Args:
            data: Arbitrary field mapping stored under the post's data
            status: 'active', or 'pending' for a staged post hidden from listings

        Returns:
            The generated post ID
        """
        post_id = uuid.uuid4().hex
        now = _now()
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                INSERT INTO posts (id, data, status, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
            ''', (post_id, json.dumps(dict(data)), status, now, now))
        return post_id

    def get_post(self, post_id: str) -> Optional[Dict[str, Any]]:
        """Get post by ID, or None if it does not exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT * FROM posts WHERE id = ?', (post_id,))
            row = cursor.fetchone()
            return self._row_to_post(row) if row else None

    def list_posts(self, include_pending: bool = False) -> List[Dict[str, Any]]:
        """List posts, newest first. Staged posts are skipped unless asked for."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            if include_pending:
                cursor.execute('SELECT * FROM posts ORDER BY created_at DESC, rowid DESC')
            else:
                cursor.execute('''
                    SELECT * FROM posts WHERE status = ?
                    ORDER BY created_at DESC, rowid DESC
                ''', (STATUS_ACTIVE,))
            return [self._row_to_post(row) for row in cursor.fetchall()]

    def update_post(self, post_id: str, fields: Dict[str, Any],
                    status: Optional[str] = None,
                    require_status: Optional[str] = None) -> Dict[str, Any]:
        """
        Merge fields into an existing post's data.

        Keys in fields overwrite the same keys in data; other keys are kept.
        The read and the write run inside one immediate transaction.

        Args:
            post_id: Post ID
            fields: Field mapping to merge
            status: Optional new status
            require_status: Only merge if the post currently has this status

        Returns:
            The merged data mapping

        Raises:
            RecordNotFoundError: If no post has this ID, or its status
                differs from require_status
        """
        with self.get_connection() as conn:
            conn.execute('BEGIN IMMEDIATE')
            cursor = conn.cursor()
            cursor.execute('SELECT data, status FROM posts WHERE id = ?', (post_id,))
            row = cursor.fetchone()
            if row is None or (require_status and row['status'] != require_status):
                raise RecordNotFoundError(f"Post not found: {post_id}")

            data = self._parse_json_field(row['data'], default={})
            data.update(fields)
            cursor.execute('''
                UPDATE posts SET data = ?, status = ?, updated_at = ?
                WHERE id = ?
            ''', (json.dumps(data), status or row['status'], _now(), post_id))
            return data

    def delete_post(self, post_id: str) -> bool:
        """Delete post record. Returns False if it did not exist."""
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute('DELETE FROM posts WHERE id = ?', (post_id,))
            return cursor.rowcount > 0
