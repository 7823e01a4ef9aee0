"""
Configuration management for the Flask application.
"""
import json
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).parent.parent


class Config:
    """Base configuration class."""

    # Flask settings
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = False
    TESTING = False
    PORT = int(os.getenv('PORT', '4000'))

    # Storage settings
    STORAGE_CREDENTIALS_FILE = os.getenv('STORAGE_CREDENTIALS_FILE')
    AWS_ACCESS_KEY_ID = os.getenv('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.getenv('AWS_SECRET_ACCESS_KEY')
    AWS_REGION = os.getenv('AWS_REGION', 'us-east-1')
    S3_BUCKET_NAME = os.getenv('S3_BUCKET_NAME')
    S3_ENDPOINT_URL = os.getenv('S3_ENDPOINT_URL')
    STORAGE_PUBLIC_BASE_URL = os.getenv('STORAGE_PUBLIC_BASE_URL')

    # Uploaded objects are immutable, cache them for a year
    UPLOAD_CACHE_CONTROL = 'public, max-age=31536000'
    UPLOAD_GZIP = True

    # Database settings
    DATABASE_PATH = BASE_DIR / os.getenv('DATABASE_PATH', 'data/posts.db')

    # Upload settings
    MAX_UPLOAD_SIZE_MB = int(os.getenv('MAX_UPLOAD_SIZE_MB', '50'))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE_MB * 1024 * 1024
    UPLOAD_FIELD_NAME = 'avatar'

    @staticmethod
    def load_service_account(path=None) -> dict:
        """
        Read storage credentials from a service-account JSON file.

        Recognised keys: aws_access_key_id, aws_secret_access_key,
        bucket, region, endpoint_url. Unknown keys are ignored.

        Args:
            path: File path (defaults to STORAGE_CREDENTIALS_FILE)

        Returns:
            Dictionary of credential values, empty if no file is configured
        """
        path = path or os.getenv('STORAGE_CREDENTIALS_FILE')
        if not path:
            return {}

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        keys = ('aws_access_key_id', 'aws_secret_access_key', 'bucket', 'region', 'endpoint_url')
        return {key: data[key] for key in keys if data.get(key)}

    @staticmethod
    def validate_storage_config(config):
        """Validate that required storage configuration is present."""
        missing_vars = [var for var in ('S3_BUCKET_NAME',) if not config.get(var)]

        if missing_vars:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing_vars)}. "
                "Set it in your .env file or in the storage credentials file."
            )


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    FLASK_ENV = 'development'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    FLASK_ENV = 'production'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    FLASK_ENV = 'testing'
    S3_BUCKET_NAME = 'test-bucket'
    STORAGE_CREDENTIALS_FILE = None


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration based on environment."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')
    return config.get(config_name, DevelopmentConfig)
