"""
Tests for the S3 wrapper, using botocore's Stubber in place of AWS.
"""
import gzip
import io
import json
from urllib.parse import unquote

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import Stubber

from postboard.errors import StorageWriteError
from postboard.services.s3_service import DOWNLOAD_TOKEN_KEY, S3Service, get_s3_service
from postboard.services.upload_coordinator import UploadCoordinator


@pytest.fixture
def s3_client():
    return boto3.client(
        's3',
        region_name='us-east-1',
        aws_access_key_id='testing',
        aws_secret_access_key='testing'
    )


@pytest.fixture
def service(s3_client):
    return S3Service('posts-bucket', 'us-east-1', client=s3_client)


class TestS3Service:
    """Test cases for S3Service."""

    def test_upload_bytes_gzips_body(self, service, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response('put_object', {'ETag': '"etag"'}, {
                'Bucket': 'posts-bucket',
                'Key': '1-cat.png',
                'ContentType': 'image/png',
                'Metadata': {DOWNLOAD_TOKEN_KEY: 'tok'},
                'CacheControl': 'public, max-age=31536000',
                'Body': gzip.compress(b'0123456789', mtime=0),
                'ContentEncoding': 'gzip',
            })

            service.upload_bytes(
                '1-cat.png', b'0123456789', 'image/png',
                cache_control='public, max-age=31536000',
                use_gzip=True,
                metadata={DOWNLOAD_TOKEN_KEY: 'tok'}
            )

            stubber.assert_no_pending_responses()

    def test_upload_bytes_plain_body(self, service, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response('put_object', {}, {
                'Bucket': 'posts-bucket',
                'Key': 'k.txt',
                'ContentType': 'text/plain',
                'Metadata': {},
                'Body': b'hello',
            })

            service.upload_bytes('k.txt', b'hello', 'text/plain')

    def test_upload_failure_raises_storage_write_error(self, service, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error('put_object', service_error_code='AccessDenied', http_status_code=403)

            with pytest.raises(StorageWriteError):
                service.upload_bytes('k.txt', b'hello', 'text/plain')

    def test_get_download_url_requires_token(self, service, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response('head_object', {'Metadata': {DOWNLOAD_TOKEN_KEY: 'tok'}},
                                 {'Bucket': 'posts-bucket', 'Key': '1-my cat.png'})
            stubber.add_response('head_object', {'Metadata': {}},
                                 {'Bucket': 'posts-bucket', 'Key': '2-dog.png'})

            url = service.get_download_url('1-my cat.png')
            with pytest.raises(StorageWriteError):
                service.get_download_url('2-dog.png')

        assert url == 'https://posts-bucket.s3.us-east-1.amazonaws.com/1-my%20cat.png'

    def test_get_download_url_missing_object(self, service, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_client_error('head_object', service_error_code='404', http_status_code=404)

            with pytest.raises(StorageWriteError):
                service.get_download_url('gone.png')

    def test_public_url_prefers_public_base_url(self, s3_client):
        cdn = S3Service('b', 'eu-west-1', public_base_url='https://cdn.example.com/', client=s3_client)
        minio = S3Service('b', 'eu-west-1', endpoint_url='http://localhost:9000', client=s3_client)

        assert cdn.public_url('1-a.png') == 'https://cdn.example.com/1-a.png'
        assert minio.public_url('1-a.png') == 'http://localhost:9000/b/1-a.png'

    def test_read_bytes_undoes_gzip(self, service, s3_client):
        body = gzip.compress(b'0123456789', mtime=0)
        with Stubber(s3_client) as stubber:
            stubber.add_response('get_object', {
                'Body': StreamingBody(io.BytesIO(body), len(body)),
                'ContentEncoding': 'gzip',
            }, {'Bucket': 'posts-bucket', 'Key': '1-cat.png'})

            assert service.read_bytes('1-cat.png') == b'0123456789'

    def test_delete_file(self, service, s3_client):
        with Stubber(s3_client) as stubber:
            stubber.add_response('delete_object', {}, {'Bucket': 'posts-bucket', 'Key': 'k.txt'})

            assert service.delete_file('k.txt') is True


class TestGetS3Service:
    """Factory configuration."""

    def test_service_account_fills_missing_values(self, tmp_path, monkeypatch):
        credentials = tmp_path / 'storage-credentials.json'
        credentials.write_text(json.dumps({
            'aws_access_key_id': 'AKIA',
            'aws_secret_access_key': 'secret',
            'bucket': 'file-bucket',
            'region': 'eu-central-1',
            'project': 'ignored',
        }))
        for var in ('S3_BUCKET_NAME', 'AWS_REGION', 'AWS_ACCESS_KEY_ID',
                    'AWS_SECRET_ACCESS_KEY', 'S3_ENDPOINT_URL', 'STORAGE_PUBLIC_BASE_URL'):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setenv('STORAGE_CREDENTIALS_FILE', str(credentials))

        service = get_s3_service()

        assert service.bucket_name == 'file-bucket'
        assert service.region == 'eu-central-1'

    def test_environment_wins_over_service_account(self, tmp_path, monkeypatch):
        credentials = tmp_path / 'storage-credentials.json'
        credentials.write_text(json.dumps({'bucket': 'file-bucket'}))
        monkeypatch.setenv('STORAGE_CREDENTIALS_FILE', str(credentials))
        monkeypatch.setenv('S3_BUCKET_NAME', 'env-bucket')
        monkeypatch.setenv('AWS_REGION', 'us-west-2')

        service = get_s3_service()

        assert service.bucket_name == 'env-bucket'
        assert service.region == 'us-west-2'


class TestCoordinatorWithS3Service:
    """Create path against the real S3 wrapper."""

    def test_download_url_resolves_to_uploaded_bytes(self, service, s3_client, database, clock):
        coordinator = UploadCoordinator(service, database, clock=clock, token_factory=lambda: 'tok')
        data = b'0123456789'
        body = gzip.compress(data, mtime=0)
        key = '1700000000000-cat.png'

        with Stubber(s3_client) as stubber:
            stubber.add_response('put_object', {}, {
                'Bucket': 'posts-bucket',
                'Key': key,
                'ContentType': 'image/png',
                'Metadata': {DOWNLOAD_TOKEN_KEY: 'tok'},
                'CacheControl': 'public, max-age=31536000',
                'Body': body,
                'ContentEncoding': 'gzip',
            })
            stubber.add_response('head_object', {'Metadata': {DOWNLOAD_TOKEN_KEY: 'tok'}},
                                 {'Bucket': 'posts-bucket', 'Key': key})
            stubber.add_response('get_object', {
                'Body': StreamingBody(io.BytesIO(body), len(body)),
                'ContentEncoding': 'gzip',
            }, {'Bucket': 'posts-bucket', 'Key': key})

            post_id = coordinator.create_from_upload(data, 'image/png', 'cat.png', {'title': 'hello'})
            download_url = database.get_post(post_id)['data']['downloadURL']
            object_name = unquote(download_url.rsplit('/', 1)[-1])

            assert object_name == key
            assert service.read_bytes(object_name) == data
            stubber.assert_no_pending_responses()
