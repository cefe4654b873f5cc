import io

import pytest

from lpr_dashboard.constants import MAX_UPLOAD_SIZE
from lpr_dashboard.error_handlers import BackendError, ValidationError
from lpr_dashboard.file_upload import FileUploadDialog, format_file_size, validate_video_file

MB = 1024 * 1024


@pytest.mark.parametrize("size, expected", [
    (0, '0 Bytes'),
    (512, '512 Bytes'),
    (1536, '1.5 KB'),
    (100 * MB, '100 MB'),
    (int(2.25 * 1024 * MB), '2.25 GB'),
])
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_ceiling_is_500_mib():
    assert MAX_UPLOAD_SIZE == 524288000


def test_rejects_non_video():
    with pytest.raises(ValidationError, match='Invalid file type: Please select a video file.'):
        validate_video_file('image/png', 10 * MB)
    with pytest.raises(ValidationError):
        validate_video_file(None, 10)


def test_rejects_oversized_video():
    with pytest.raises(ValidationError) as excinfo:
        validate_video_file('video/mp4', 600 * MB)
    assert str(excinfo.value) == (
        'File too large: File size is 600.0MB. Maximum allowed size is 500MB.'
    )


def test_accepts_video_at_the_ceiling():
    validate_video_file('video/mp4', 100 * MB)
    validate_video_file('video/quicktime', MAX_UPLOAD_SIZE)


def test_rejected_selection_sets_error_and_keeps_previous(backend):
    dialog = FileUploadDialog(backend)
    dialog.select('clip.mp4', 'video/mp4', 10, io.BytesIO(b'0123456789'))

    with pytest.raises(ValidationError):
        dialog.select('photo.png', 'image/png', 10, io.BytesIO(b'png'))

    assert dialog.error == 'Invalid file type: Please select a video file.'
    assert dialog.file.filename == 'clip.mp4'
    assert backend.calls == []


def test_submit_without_file(backend):
    dialog = FileUploadDialog(backend)

    with pytest.raises(ValidationError):
        dialog.submit()
    assert backend.uploads == []


def test_successful_upload_resets_and_notifies(backend):
    notified = []
    dialog = FileUploadDialog(backend, on_upload_success=lambda: notified.append(True))
    dialog.open()
    dialog.select('clip.mp4', 'video/mp4', 5, io.BytesIO(b'video'))

    result = dialog.submit(start_time_offset=' 01:30:00 ', location='Gate A')

    assert result == {'status': 'processing', 'filename': 'clip.mp4'}
    assert backend.uploads == [{
        'filename': 'clip.mp4',
        'body': b'video',
        'content_type': 'video/mp4',
        'start_time_offset': '01:30:00',
        'location': 'Gate A',
    }]
    assert notified == [True]
    assert not dialog.is_open
    assert dialog.file is None
    assert dialog.location == 'File Upload'
    assert dialog.start_time_offset == ''
    assert dialog.message.startswith('Video "clip.mp4" has been uploaded')


def test_blank_location_defaults(backend):
    dialog = FileUploadDialog(backend)
    dialog.select('clip.mp4', 'video/mp4', 5, io.BytesIO(b'video'))

    dialog.submit(location='   ')

    assert backend.uploads[0]['location'] == 'File Upload'


def test_failed_upload_keeps_file(backend):
    notified = []
    dialog = FileUploadDialog(backend, on_upload_success=lambda: notified.append(True))
    dialog.open()
    dialog.select('clip.mp4', 'video/mp4', 5, io.BytesIO(b'video'))
    backend.fail('upload_file', status_code=413, detail='Payload too large')

    with pytest.raises(BackendError):
        dialog.submit(start_time_offset='90:00')

    assert dialog.error == 'Upload failed: Payload too large'
    assert dialog.is_open
    assert dialog.file.filename == 'clip.mp4'
    assert dialog.start_time_offset == '90:00'
    assert not dialog.is_uploading
    assert notified == []


def test_view_describes_selection(backend):
    dialog = FileUploadDialog(backend)
    dialog.select('clip.mp4', 'video/mp4', 1536, io.BytesIO(b''))

    view = dialog.view()

    assert view['file'] == {'filename': 'clip.mp4', 'size': 1536, 'size_label': '1.5 KB'}
    assert view['max_size'] == MAX_UPLOAD_SIZE


def test_selection_outlives_the_request_stream(backend):
    dialog = FileUploadDialog(backend)
    request_stream = io.BytesIO(b'video-bytes')
    dialog.select('clip.mp4', 'video/mp4', 11, request_stream)
    request_stream.close()
    backend.fail('upload_file', detail='Disk full')

    with pytest.raises(BackendError):
        dialog.submit()

    del backend.failures['upload_file']
    dialog.retry()

    assert [upload['body'] for upload in backend.uploads] == [b'video-bytes']
    assert dialog.file is None


def test_reset_and_reselect_close_the_spooled_copy(backend):
    dialog = FileUploadDialog(backend)
    first = dialog.select('a.mp4', 'video/mp4', 1, io.BytesIO(b'a'))
    second = dialog.select('b.mp4', 'video/mp4', 1, io.BytesIO(b'b'))

    assert first.stream.closed
    assert not second.stream.closed

    dialog.reset()

    assert second.stream.closed
    assert dialog.file is None


def test_retry_without_file(backend):
    dialog = FileUploadDialog(backend)

    with pytest.raises(ValidationError, match='Nothing to retry'):
        dialog.retry()
