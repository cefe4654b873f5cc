"""
File Upload Dialog
Validates a selected video file and forwards it to the backend for offline detection
"""

import logging
import shutil
import tempfile
from dataclasses import dataclass
from threading import RLock
from typing import BinaryIO, Callable, Optional

from lpr_dashboard.constants import (
    DEFAULT_UPLOAD_LOCATION,
    MAX_UPLOAD_SIZE,
    UPLOAD_SPOOL_MEMORY,
    VIDEO_MIME_PREFIX,
)
from lpr_dashboard.error_handlers import BackendError, ValidationError, error_message

logger = logging.getLogger(__name__)


@dataclass
class SelectedFile:
    """A validated selection; ``stream`` is a private spooled copy owned by the dialog"""
    filename: str
    content_type: str
    size: int
    stream: BinaryIO

    def close(self):
        self.stream.close()


def format_file_size(size: int) -> str:
    """
    Human-readable file size

    Args:
        size: Size in bytes

    Returns:
        str: e.g. '0 Bytes', '1.5 KB', '100 MB'
    """
    if size <= 0:
        return '0 Bytes'
    units = ['Bytes', 'KB', 'MB', 'GB']
    index = 0
    value = float(size)
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    text = f"{value:.2f}".rstrip('0').rstrip('.')
    return f"{text} {units[index]}"


def validate_video_file(content_type: Optional[str], size: int, max_size: int = MAX_UPLOAD_SIZE) -> None:
    """
    Check a file before any network call

    Args:
        content_type: MIME type reported for the file
        size: Size in bytes
        max_size: Upper bound in bytes (inclusive)

    Raises:
        ValidationError: If the file is not a video or is too large
    """
    if not content_type or not content_type.startswith(VIDEO_MIME_PREFIX):
        raise ValidationError("Invalid file type: Please select a video file.")

    if size > max_size:
        size_mb = size / (1024 * 1024)
        max_mb = max_size / (1024 * 1024)
        raise ValidationError(
            f"File too large: File size is {size_mb:.1f}MB. "
            f"Maximum allowed size is {max_mb:.0f}MB."
        )


class FileUploadDialog:
    """
    Upload dialog state

    Args:
        client: BackendClient used for the multipart POST
        on_upload_success: Called with no arguments after a successful upload
        max_size: Upload ceiling in bytes
    """

    def __init__(self, client, on_upload_success: Optional[Callable[[], None]] = None,
                 max_size: int = MAX_UPLOAD_SIZE):
        self.client = client
        self.on_upload_success = on_upload_success
        self.max_size = max_size
        self.is_open = False
        self.is_uploading = False
        self.file = None
        self.start_time_offset = ''
        self.location = DEFAULT_UPLOAD_LOCATION
        self.error = None
        self.message = None
        self._lock = RLock()

    def open(self):
        self.is_open = True

    def close(self):
        self.is_open = False

    def reset(self):
        """Clear the form and delete the spooled copy of the selected file"""
        with self._lock:
            self._discard_file()
            self.start_time_offset = ''
            self.location = DEFAULT_UPLOAD_LOCATION
            self.error = None

    def _discard_file(self):
        if self.file is not None:
            self.file.close()
        self.file = None

    def _spool(self, stream):
        spool = tempfile.SpooledTemporaryFile(max_size=UPLOAD_SPOOL_MEMORY)
        try:
            if hasattr(stream, 'seek'):
                stream.seek(0)
            shutil.copyfileobj(stream, spool)
            spool.seek(0)
        except Exception:
            spool.close()
            raise
        return spool

    def select(self, filename, content_type, size, stream):
        """
        Validate and keep a file; a rejected file leaves the previous selection alone

        The stream is copied into a spooled temporary file so the selection
        outlives the request that carried it and can be resent by ``retry``.

        Raises:
            ValidationError: If the file fails the type/size checks
        """
        try:
            validate_video_file(content_type, size, self.max_size)
        except ValidationError as e:
            self.error = str(e)
            raise
        spool = self._spool(stream)
        with self._lock:
            self._discard_file()
            self.file = SelectedFile(filename=filename, content_type=content_type, size=size, stream=spool)
            self.error = None
            return self.file

    def submit(self, start_time_offset=None, location=None):
        """
        Post the selected file as multipart form data

        Args:
            start_time_offset: Free text, empty means start from the beginning
            location: Label shown in the Location column

        Returns:
            Backend response body

        Raises:
            ValidationError: If no file is selected
            BackendError: If the upload fails; the dialog stays open with the file kept
        """
        with self._lock:
            if start_time_offset is not None:
                self.start_time_offset = start_time_offset.strip()
            if location is not None:
                self.location = location.strip() or DEFAULT_UPLOAD_LOCATION

            if self.file is None:
                self.error = "No file selected: Please select a video file to upload."
                raise ValidationError(self.error)

            selected = self.file
            self.is_uploading = True
            self.error = None
            try:
                selected.stream.seek(0)
                result = self.client.upload_file(
                    filename=selected.filename,
                    stream=selected.stream,
                    content_type=selected.content_type,
                    start_time_offset=self.start_time_offset,
                    location=self.location,
                )
            except BackendError as e:
                self.error = f"Upload failed: {error_message(e)}"
                logger.error("Error uploading %s: %s", selected.filename, str(e))
                raise
            finally:
                self.is_uploading = False

            self.message = (
                f'Video "{selected.filename}" has been uploaded and is being processed '
                f'for license plate detection.'
            )
            logger.info("Uploaded %s (%s)", selected.filename, format_file_size(selected.size))
            self.reset()
            self.close()

        if self.on_upload_success is not None:
            self.on_upload_success()
        return result

    def retry(self, start_time_offset=None, location=None):
        """Resend the file kept after a failed upload"""
        with self._lock:
            if self.file is None:
                self.error = "Nothing to retry: Please select a video file to upload."
                raise ValidationError(self.error)
        return self.submit(start_time_offset=start_time_offset, location=location)

    def view(self):
        return {
            'is_open': self.is_open,
            'is_uploading': self.is_uploading,
            'file': {
                'filename': self.file.filename,
                'size': self.file.size,
                'size_label': format_file_size(self.file.size),
            } if self.file else None,
            'start_time_offset': self.start_time_offset,
            'location': self.location,
            'error': self.error,
            'message': self.message,
            'max_size': self.max_size,
        }
