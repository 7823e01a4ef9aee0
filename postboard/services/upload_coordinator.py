"""
Upload coordinator: writes an attachment to the object store and only then
creates or merges the post record that references it.

One upload-driven write moves through these states:

    IDLE -> STREAMING -> COMPLETED -> RECORD_MERGED
                      -> FAILED    -> ERROR_RESPONDED

The object store step returns an UploadOutcome; record mutation happens only
for a COMPLETED outcome. Nothing is retried.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from postboard.config import Config
from postboard.database import STATUS_ACTIVE, STATUS_PENDING
from postboard.errors import (
    NoFileError, PostboardError, RecordNotFoundError,
    StorageWriteError, StoreOperationError
)
from postboard.services.s3_service import DOWNLOAD_TOKEN_KEY

logger = logging.getLogger(__name__)


class UploadState(str, Enum):
    IDLE = 'idle'
    STREAMING = 'streaming'
    COMPLETED = 'completed'
    FAILED = 'failed'
    RECORD_MERGED = 'record_merged'
    ERROR_RESPONDED = 'error_responded'


@dataclass(frozen=True)
class UploadDescriptor:
    """Bytes and naming for a single object store write."""
    data: bytes
    content_type: str
    object_name: str


@dataclass(frozen=True)
class UploadOutcome:
    """Result of one object store write."""
    state: UploadState
    object_name: str
    download_url: Optional[str] = None
    error: Optional[str] = None
    written: bool = False

    @property
    def succeeded(self) -> bool:
        return self.state == UploadState.COMPLETED


def build_object_name(original_name: str, now: float) -> str:
    """Object key '<epoch millis>-<original filename>'."""
    return f"{int(now * 1000)}-{original_name}"


class UploadCoordinator:
    """Links attachment uploads to post records."""

    def __init__(self, object_store, document_store,
                 cache_control: str = Config.UPLOAD_CACHE_CONTROL,
                 use_gzip: bool = Config.UPLOAD_GZIP,
                 clock: Callable[[], float] = time.time,
                 token_factory: Callable[[], str] = lambda: str(uuid.uuid4())):
        self.object_store = object_store
        self.document_store = document_store
        self.cache_control = cache_control
        self.use_gzip = use_gzip
        self.clock = clock
        self.token_factory = token_factory

    def describe(self, file_bytes: Optional[bytes], mime_type: Optional[str],
                 original_name: Optional[str]) -> UploadDescriptor:
        """
        Build the descriptor for an upload.

        Raises:
            NoFileError: If there are no bytes or no filename
        """
        if not file_bytes or not original_name:
            raise NoFileError("No file uploaded.")
        return UploadDescriptor(
            data=file_bytes,
            content_type=mime_type or 'application/octet-stream',
            object_name=build_object_name(original_name, self.clock())
        )

    def store(self, descriptor: UploadDescriptor) -> UploadOutcome:
        """Write the descriptor's bytes and resolve their download URL."""
        logger.debug(f"{UploadState.STREAMING.value}: {descriptor.object_name}")
        written = False
        try:
            self.object_store.upload_bytes(
                descriptor.object_name,
                descriptor.data,
                descriptor.content_type,
                cache_control=self.cache_control,
                use_gzip=self.use_gzip,
                metadata={DOWNLOAD_TOKEN_KEY: self.token_factory()}
            )
            written = True
            download_url = self.object_store.get_download_url(descriptor.object_name)
        except StorageWriteError as e:
            logger.error(f"Error uploading {descriptor.object_name} to object store: {e}")
            return UploadOutcome(UploadState.FAILED, descriptor.object_name, error=str(e), written=written)

        return UploadOutcome(UploadState.COMPLETED, descriptor.object_name,
                             download_url=download_url, written=True)

    def create_from_upload(self, file_bytes: Optional[bytes], mime_type: Optional[str],
                           original_name: Optional[str],
                           form_fields: Optional[Mapping[str, Any]] = None) -> str:
        """
        Store an attachment and create the post that references it.

        The post is staged as pending before the write and promoted once
        the download URL is merged in; a failed write removes it again.

        Args:
            file_bytes: Attachment contents, must be non-empty
            mime_type: Declared MIME type
            original_name: Client-side filename
            form_fields: Fields stored in the post's data

        Returns:
            ID of the created post

        Raises:
            NoFileError: No attachment was given
            StorageWriteError: The object store write failed, no post remains
            StoreOperationError: The post could not be written
        """
        descriptor = self.describe(file_bytes, mime_type, original_name)
        post_id = self.document_store.add_post(dict(form_fields or {}), status=STATUS_PENDING)

        outcome = self.store(descriptor)
        if not outcome.succeeded:
            self._discard_failed(outcome)
            self._discard_post(post_id)
            logger.info(f"{UploadState.ERROR_RESPONDED.value}: post {post_id} not created")
            raise StorageWriteError(outcome.error)

        try:
            self.document_store.update_post(
                post_id, {'downloadURL': outcome.download_url},
                status=STATUS_ACTIVE, require_status=STATUS_PENDING
            )
        except PostboardError as e:
            self._discard_object(outcome.object_name)
            raise StoreOperationError(f"Failed to create post: {e}") from e

        logger.info(f"{UploadState.RECORD_MERGED.value}: created post {post_id} -> {outcome.object_name}")
        return post_id

    def update_from_upload(self, post_id: str, file_bytes: Optional[bytes],
                           new_content: Optional[str], mime_type: Optional[str] = None,
                           original_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Update a post's content, replacing its attachment when bytes are given.

        Without bytes only 'content' is merged and the existing downloadURL
        is left untouched. A None new_content leaves 'content' untouched too.

        Returns:
            The post's merged data

        Raises:
            StorageWriteError: The object store write failed, post untouched
            RecordNotFoundError: No active post has this ID
            StoreOperationError: The post could not be written
        """
        fields: Dict[str, Any] = {}
        if new_content is not None:
            fields['content'] = new_content

        outcome = None
        if file_bytes:
            outcome = self.store(self.describe(file_bytes, mime_type, original_name))
            if not outcome.succeeded:
                self._discard_failed(outcome)
                logger.info(f"{UploadState.ERROR_RESPONDED.value}: post {post_id} left unchanged")
                raise StorageWriteError(outcome.error)
            fields['downloadURL'] = outcome.download_url

        try:
            data = self.document_store.update_post(post_id, fields, require_status=STATUS_ACTIVE)
        except (RecordNotFoundError, StoreOperationError):
            if outcome is not None:
                self._discard_object(outcome.object_name)
            raise

        logger.info(f"{UploadState.RECORD_MERGED.value}: updated post {post_id}")
        return data

    def _discard_failed(self, outcome: UploadOutcome):
        if outcome.written:
            self._discard_object(outcome.object_name)

    def _discard_post(self, post_id: str):
        try:
            self.document_store.delete_post(post_id)
        except StoreOperationError as e:
            logger.error(f"Failed to remove pending post {post_id}: {e}")

    def _discard_object(self, object_name: str):
        try:
            self.object_store.delete_file(object_name)
        except StorageWriteError as e:
            logger.error(f"Failed to remove orphaned object {object_name}: {e}")
