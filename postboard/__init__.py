"""
Flask application factory.
"""
import logging
import time

from flask import Flask, Response, g, request
from werkzeug.exceptions import HTTPException


def create_app(config_name=None, database=None, object_store=None, config_overrides=None):
    """
    Create and configure Flask application.

    Args:
        config_name: Configuration name ('development', 'production', 'testing')
        database: Optional document store instance (built from DATABASE_PATH otherwise)
        object_store: Optional object store client (built from storage config otherwise)
        config_overrides: Optional mapping applied after the config class

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    # Load configuration
    from postboard.config import Config, get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    # Configure logging
    logging.basicConfig(
        level=logging.INFO if not app.config['DEBUG'] else logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Initialize document store
    try:
        from postboard.database import init_db
        database = init_db(app, database)
        app.logger.info("Document store initialized successfully")
    except Exception as e:
        app.logger.error(f"Document store initialization failed: {e}")
        raise

    # Initialize object store and upload coordinator
    from postboard.services import init_services
    coordinator = init_services(app, database, object_store)

    # Validate storage configuration (warn if missing, don't fail)
    try:
        Config.validate_storage_config({'S3_BUCKET_NAME': coordinator.object_store.bucket_name})
        app.logger.info("Storage configuration validated")
    except ValueError as e:
        app.logger.warning(f"Storage configuration warning: {e}")
        app.logger.warning("Uploads will fail until storage is configured")

    # HTML forms can only send GET/POST
    from postboard.utils.method_override import MethodOverrideMiddleware
    app.wsgi_app = MethodOverrideMiddleware(app.wsgi_app)

    # Register blueprints
    from postboard.routes import posts
    app.register_blueprint(posts.bp)

    # Request logging
    @app.before_request
    def start_timer():
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response):
        started = g.get('request_started')
        elapsed_ms = (time.perf_counter() - started) * 1000 if started else 0.0
        app.logger.info(f"{request.method} {request.full_path.rstrip('?')} {response.status_code} {elapsed_ms:.1f} ms")
        return response

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return Response('Not found', status=404, mimetype='text/plain')

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f"Internal error: {getattr(error, 'original_exception', error)}")
        return Response('Internal server error', status=500, mimetype='text/plain')

    @app.errorhandler(HTTPException)
    def http_error(error):
        return Response(error.description or error.name, status=error.code, mimetype='text/plain')

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {
            'status': 'healthy',
            'app': 'Postboard',
            'version': '1.0.0'
        }, 200

    # Template context processors
    @app.context_processor
    def utility_processor():
        """Make utility functions available in templates."""
        from postboard.utils.formatters import attachment_name, format_timestamp, truncate_text
        return {
            'attachment_name': attachment_name,
            'format_timestamp': format_timestamp,
            'truncate_text': truncate_text
        }

    app.logger.info(f"Flask app created successfully in {app.config.get('FLASK_ENV', 'development')} mode")

    return app
