"""
Shared fixtures for postboard tests.
"""
from urllib.parse import quote, unquote

import pytest

from postboard import create_app
from postboard.database import Database
from postboard.errors import StorageWriteError
from postboard.services import COORDINATOR_KEY
from postboard.services.upload_coordinator import UploadCoordinator


class InMemoryObjectStore:
    """Object store double keeping objects in a dict."""

    bucket_name = 'test-bucket'

    def __init__(self):
        self.objects = {}
        self.fail_uploads = False
        self.deleted = []

    def upload_bytes(self, object_name, data, content_type, cache_control=None,
                     use_gzip=False, metadata=None):
        if self.fail_uploads:
            raise StorageWriteError('simulated upload failure')
        self.objects[object_name] = {
            'data': bytes(data),
            'content_type': content_type,
            'cache_control': cache_control,
            'gzip': use_gzip,
            'metadata': dict(metadata or {}),
        }

    def get_download_url(self, object_name):
        if object_name not in self.objects:
            raise StorageWriteError(f'no such object: {object_name}')
        return f'https://storage.test/{self.bucket_name}/{quote(object_name)}'

    def delete_file(self, object_name):
        self.deleted.append(object_name)
        self.objects.pop(object_name, None)
        return True

    def fetch(self, download_url):
        """Resolve a download URL back to the stored bytes."""
        object_name = unquote(download_url.rsplit('/', 1)[-1])
        return self.objects[object_name]['data']


class FakeClock:
    """Clock advancing one second per reading."""

    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += 1.0
        return current


@pytest.fixture
def database(tmp_path):
    return Database(tmp_path / 'posts.db')


@pytest.fixture
def object_store():
    return InMemoryObjectStore()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def coordinator(database, object_store, clock):
    return UploadCoordinator(
        object_store,
        database,
        clock=clock,
        token_factory=lambda: 'token-1'
    )


@pytest.fixture
def app(database, object_store, clock):
    app = create_app('testing', database=database, object_store=object_store)
    app.extensions[COORDINATOR_KEY].clock = clock
    return app


@pytest.fixture
def client(app):
    return app.test_client()
