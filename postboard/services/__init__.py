"""
Service wiring for the Flask app.

The object store client and the upload coordinator are built once per app
and kept on app.extensions.
"""
from flask import current_app

from postboard.services.s3_service import S3Service, get_s3_service
from postboard.services.upload_coordinator import UploadCoordinator

OBJECT_STORE_KEY = 'postboard.object_store'
COORDINATOR_KEY = 'postboard.upload_coordinator'


def init_services(app, database, object_store=None) -> UploadCoordinator:
    """
    Attach the object store and upload coordinator to the Flask app.

    Args:
        app: Flask application instance
        database: Document store the coordinator writes to
        object_store: Optional pre-built object store client

    Returns:
        UploadCoordinator instance
    """
    if object_store is None:
        object_store = get_s3_service(app)

    coordinator = UploadCoordinator(
        object_store,
        database,
        cache_control=app.config['UPLOAD_CACHE_CONTROL'],
        use_gzip=app.config['UPLOAD_GZIP']
    )
    app.extensions[OBJECT_STORE_KEY] = object_store
    app.extensions[COORDINATOR_KEY] = coordinator
    return coordinator


def get_coordinator() -> UploadCoordinator:
    """Get the upload coordinator attached to the current app."""
    return current_app.extensions[COORDINATOR_KEY]


__all__ = ['S3Service', 'UploadCoordinator', 'get_coordinator', 'init_services']
