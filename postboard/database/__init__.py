"""
Document store package for the post board.

Posts are JSON documents kept in sqlite. The Database class combines the
connection management base with the post operations mixin.

Usage:
    from postboard.database import get_db

    db = get_db()
    post = db.get_post(post_id)
"""
from flask import current_app

from postboard.database.base import DatabaseBase
from postboard.database.posts import PostsMixin, STATUS_ACTIVE, STATUS_PENDING

EXTENSION_KEY = 'postboard.database'


class Database(DatabaseBase, PostsMixin):
    """
    Unified document store interface.

    Inherits from:
        - DatabaseBase: Connection management, schema creation, JSON helpers
        - PostsMixin: Post CRUD operations (add, get, list, merge-update, delete)
    """
    pass


def init_db(app, database: Database = None) -> Database:
    """
    Attach a database to the Flask app.

    Uses the given instance, or builds one from DATABASE_PATH in the app
    configuration.

    Args:
        app: Flask application instance
        database: Optional pre-built Database

    Returns:
        Database instance
    """
    if database is None:
        database = Database(app.config.get('DATABASE_PATH', 'data/posts.db'))
    app.extensions[EXTENSION_KEY] = database
    return database


def get_db() -> Database:
    """Get the Database attached to the current app."""
    return current_app.extensions[EXTENSION_KEY]


__all__ = ['Database', 'get_db', 'init_db', 'STATUS_ACTIVE', 'STATUS_PENDING']
