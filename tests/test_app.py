import io
from concurrent.futures import wait

import pytest

from app import create_app
from lpr_dashboard.dashboard import DashboardContext


@pytest.fixture
def dashboard(backend, detection_factory):
    backend.add_camera('Gate1', rtsp_url='rtsp://x')
    backend.detections = [detection_factory(i) for i in range(1, 13)]
    backend.repeated = {'3': [{'plate_number': 'ABC001', 'count': 2, 'detections': []}]}
    context = DashboardContext(backend, poll_interval=0.05, poll_workers=2)
    context.cameras.load()
    yield context
    context.close()


@pytest.fixture
def client(dashboard):
    flask_app = create_app(dashboard)
    flask_app.config['TESTING'] = True
    return flask_app.test_client()


def test_health(client):
    response = client.get('/api/health')

    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'ok'
    assert data['polling'] is False
    assert data['active_cameras'] == [1]


def test_index_renders_all_sections(client):
    response = client.get('/')

    assert response.status_code == 200
    page = response.get_data(as_text=True)
    assert 'License Plate Recorder' in page
    assert 'Gate1' in page
    assert 'ABC001' in page
    assert 'data-theme="dark"' in page


def test_theme_cookie_round_trip(client):
    response = client.post('/theme', data={'theme': 'light'})
    assert response.status_code == 302
    assert 'license-plate-recorder-theme=light' in response.headers['Set-Cookie']

    page = client.get('/').get_data(as_text=True)
    assert 'data-theme="light"' in page


def test_unknown_theme_rejected(client):
    assert client.post('/theme', data={'theme': 'neon'}).status_code == 400


def test_camera_grid_fragment(client):
    response = client.get('/partials/cameras')

    page = response.get_data(as_text=True)
    assert response.status_code == 200
    assert 'Gate1' in page
    assert 'RTSP' in page
    assert 'No Signal' in page
    assert 'Camera Snapshot' not in page


def test_create_camera(client, backend):
    response = client.post('/api/cameras', json={
        'name': 'Gate2', 'location': 'Back', 'rtsp_url': 'rtsp://y',
    })

    assert response.status_code == 201
    data = response.get_json()
    assert data['success']
    assert [c['name'] for c in data['cameras']] == ['Gate1', 'Gate2']
    assert data['dialog_open'] is False


def test_create_camera_validation(client, backend):
    response = client.post('/api/cameras', json={'name': '', 'location': 'Back'})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Camera name is required'
    assert not any(call[0] == 'create_camera' for call in backend.calls)


def test_update_camera_backend_failure(client, backend):
    backend.fail('update_camera', detail='Internal error')

    response = client.put('/api/cameras/1', json={'name': 'Renamed', 'location': 'Front'})

    assert response.status_code == 502
    assert response.get_json()['error'] == 'Failed to update camera: Internal error'
    cameras = client.get('/api/cameras').get_json()['cameras']
    assert cameras[0]['name'] == 'Gate1'


def test_get_camera_for_edit(client):
    data = client.get('/api/cameras/1').get_json()

    assert data['camera']['rtsp_url'] == 'rtsp://x'
    assert data['title'] == 'Edit Camera'
    assert data['submit_label'] == 'Update Camera'
    assert client.get('/api/cameras/99').status_code == 502


def test_toggle_and_delete(client, backend):
    data = client.post('/api/cameras/1/toggle-active').get_json()
    assert data['cameras'][0]['is_active'] is False

    data = client.post('/api/cameras/1/toggle-tracking').get_json()
    assert data['cameras'][0]['vehicle_tracking_enabled'] is True

    data = client.delete('/api/cameras/1').get_json()
    assert data['success']
    assert data['cameras'] == []


def test_detections_paging(client, backend):
    data = client.get('/api/detections?page=2&page_size=10').get_json()

    assert data['page'] == 2
    assert len(data['items']) == 2
    assert backend.calls[-1] == ('list_detections', 10, 10, None)


def test_detections_bad_page_size(client):
    response = client.get('/api/detections?page_size=15')

    assert response.status_code == 400
    assert 'Page size must be one of' in response.get_json()['error']


def test_detections_backend_failure(client, backend):
    backend.fail('list_detections', detail='database locked')

    response = client.get('/api/detections')

    assert response.status_code == 502
    assert response.get_json()['error'] == 'Failed to load detections: database locked'


def test_detection_image_preview(client):
    client.get('/api/detections')

    data = client.get('/api/detections/3/image').get_json()
    assert data['full_image_path'] == '/static/full/3.jpg'
    assert client.get('/api/detections/999/image').status_code == 404


def test_upload_rejects_non_video(client, backend):
    response = client.post('/api/upload', data={
        'file': (io.BytesIO(b'png'), 'photo.png', 'image/png'),
    }, content_type='multipart/form-data')

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid file type: Please select a video file.'
    assert backend.uploads == []


def test_upload_without_file(client):
    response = client.post('/api/upload', data={'location': 'Gate'}, content_type='multipart/form-data')
    assert response.status_code == 400


def test_upload_video(client, backend):
    response = client.post('/api/upload', data={
        'file': (io.BytesIO(b'video-bytes'), 'clip.mp4', 'video/mp4'),
        'start_time_offset': '01:30:00',
        'location': '',
    }, content_type='multipart/form-data')

    assert response.status_code == 200
    assert response.get_json()['success']
    upload = backend.uploads[0]
    assert upload['filename'] == 'clip.mp4'
    assert upload['body'] == b'video-bytes'
    assert upload['start_time_offset'] == '01:30:00'
    assert upload['location'] == 'File Upload'
    # detections refreshed after the upload
    assert backend.calls[-1][0] == 'list_detections'


def test_upload_backend_failure(client, backend):
    backend.fail('upload_file', detail='Disk full')

    response = client.post('/api/upload', data={
        'file': (io.BytesIO(b'video-bytes'), 'clip.mp4', 'video/mp4'),
    }, content_type='multipart/form-data')

    assert response.status_code == 502
    assert response.get_json()['error'] == 'Upload failed: Disk full'


def test_repeated_plates(client, backend):
    data = client.get('/api/repeated-plates?timeframe=3').get_json()

    assert data['timeframe'] == '3'
    assert [g['plate_number'] for g in data['groups']] == ['ABC001']
    assert client.get('/api/repeated-plates?timeframe=2').status_code == 400


def test_toggle_repeated_group(client):
    first = client.post('/api/repeated-plates/toggle', json={'plate_number': 'ABC001'}).get_json()
    second = client.post('/api/repeated-plates/toggle', json={'plate_number': 'ABC001'}).get_json()

    assert first['expanded'] is True
    assert second['expanded'] is False
    assert client.post('/api/repeated-plates/toggle', json={}).status_code == 400


def test_unknown_endpoint(client):
    response = client.get('/api/nothing-here')

    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'Endpoint not found'}


def test_latest_frame_relay(client, backend):
    response = client.get('/api/v1/cameras/1/latest-frame/?_ts=123')

    assert response.status_code == 200
    assert response.mimetype == 'image/jpeg'
    assert response.data == b'\xff\xd8jpeg'
    assert response.headers['Cache-Control'] == 'no-store'
    assert ('fetch_latest_frame', 1, 123) in backend.calls


def test_published_snapshot_url_is_served(client, backend, dashboard):
    backend.decode_statuses[1] = {'status': 'running', 'frame_count': 5}
    done, not_done = wait(dashboard.monitor.poll_once(), timeout=5)
    assert not not_done

    camera = client.get('/api/cameras').get_json()['cameras'][0]
    assert camera['show_snapshot']

    response = client.get(camera['snapshot_url'])
    assert response.status_code == 200
    assert response.data == b'\xff\xd8jpeg'


def test_latest_frame_relay_failure(client, backend):
    backend.frame_failures.add(1)

    response = client.get('/api/v1/cameras/1/latest-frame/?_ts=5')

    assert response.status_code == 502
    assert response.get_json()['success'] is False


def test_failed_upload_can_be_retried(client, backend):
    backend.fail('upload_file', detail='Disk full')
    response = client.post('/api/upload', data={
        'file': (io.BytesIO(b'video-bytes'), 'clip.mp4', 'video/mp4'),
        'location': 'Gate A',
    }, content_type='multipart/form-data')
    assert response.status_code == 502

    del backend.failures['upload_file']
    response = client.post('/api/upload/retry', json={'start_time_offset': '00:10:00'})

    assert response.status_code == 200
    assert response.get_json()['success']
    assert len(backend.uploads) == 1
    upload = backend.uploads[0]
    assert upload['filename'] == 'clip.mp4'
    assert upload['body'] == b'video-bytes'
    assert upload['location'] == 'Gate A'
    assert upload['start_time_offset'] == '00:10:00'


def test_retry_without_kept_file(client, backend):
    response = client.post('/api/upload/retry', json={})

    assert response.status_code == 400
    assert response.get_json()['error'] == 'Nothing to retry: Please select a video file to upload.'
    assert backend.uploads == []
