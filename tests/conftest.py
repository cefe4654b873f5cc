import pytest

from lpr_dashboard.error_handlers import BackendError
from lpr_dashboard.models import Camera


class FakeBackend:
    """In-memory stand-in for BackendClient"""

    def __init__(self, cameras=None, detections=None, repeated=None):
        self.base_url = 'http://backend.test'
        self.public_url = ''
        self._cameras = {}
        self._next_id = 1
        for camera in cameras or []:
            self.add_camera(**camera)
        self.detections = list(detections or [])
        self.repeated = dict(repeated or {})
        self.decode_statuses = {}
        self.frame_failures = set()
        self.failures = {}
        self.calls = []
        self.uploads = []
        self.gate = None
        self.gates = {}
        self.closed = False

    # helpers ---------------------------------------------------------

    def add_camera(self, name, location='Front', rtsp_url=None, is_active=True,
                   vehicle_tracking_enabled=False):
        camera = Camera(
            id=self._next_id,
            name=name,
            location=location,
            rtsp_url=rtsp_url,
            is_active=is_active,
            vehicle_tracking_enabled=vehicle_tracking_enabled,
        )
        self._cameras[camera.id] = camera
        self._next_id += 1
        return camera

    def fail(self, method, status_code=500, detail='boom'):
        self.failures[method] = BackendError(
            f"{method} returned HTTP {status_code}", status_code=status_code, detail=detail
        )

    def _call(self, method, *args):
        self.calls.append((method,) + args)
        error = self.failures.get(method)
        if error is not None:
            raise error

    def close(self):
        self.closed = True

    def latest_frame_url(self, camera_id, timestamp_ms, public=True):
        return f"/api/v1/cameras/{camera_id}/latest-frame/?_ts={timestamp_ms}"

    # cameras ---------------------------------------------------------

    def list_cameras(self):
        self._call('list_cameras')
        return list(self._cameras.values())

    def get_camera(self, camera_id):
        self._call('get_camera', camera_id)
        if camera_id not in self._cameras:
            raise BackendError("not found", status_code=404, detail='Camera not found')
        return self._cameras[camera_id]

    def create_camera(self, payload):
        self._call('create_camera', payload)
        camera = self.add_camera(**payload)
        return camera.to_dict()

    def update_camera(self, camera_id, payload):
        self._call('update_camera', camera_id, payload)
        camera = self._cameras[camera_id].with_changes(**payload)
        self._cameras[camera_id] = camera
        return camera.to_dict()

    def delete_camera(self, camera_id):
        self._call('delete_camera', camera_id)
        del self._cameras[camera_id]

    def get_decode_status(self, camera_id):
        gate = self.gates.get(camera_id, self.gate)
        if gate is not None:
            gate.wait(timeout=5)
        self._call('get_decode_status', camera_id)
        return self.decode_statuses.get(camera_id, {'status': 'stopped', 'frame_count': 0})

    def fetch_latest_frame(self, camera_id, timestamp_ms):
        self._call('fetch_latest_frame', camera_id, timestamp_ms)
        if camera_id in self.frame_failures:
            raise BackendError("no frame", status_code=404)
        return b'\xff\xd8jpeg'

    # license plates --------------------------------------------------

    def list_detections(self, skip, limit, source_type=None):
        self._call('list_detections', skip, limit, source_type)
        rows = [d for d in self.detections if not source_type or d.get('source_type') == source_type]
        return rows[skip:skip + limit]

    def upload_file(self, filename, stream, content_type, start_time_offset='', location=''):
        self._call('upload_file', filename)
        self.uploads.append({
            'filename': filename,
            'body': stream.read(),
            'content_type': content_type,
            'start_time_offset': start_time_offset,
            'location': location,
        })
        return {'status': 'processing', 'filename': filename}

    def repeated_plates(self, timeframe):
        self._call('repeated_plates', timeframe)
        return self.repeated.get(timeframe, [])


def make_detection(index, confidence=0.9, source_type='camera', plate_number=None):
    return {
        'id': index,
        'plate_number': plate_number or f"ABC{index:03d}",
        'confidence': confidence,
        'source_type': source_type,
        'source_name': 'Gate' if source_type == 'camera' else 'clip.mp4',
        'thumbnail_path': f"/static/thumbs/{index}.jpg",
        'full_image_path': f"/static/full/{index}.jpg",
        'location': 'Front',
        'detected_at': '2024-01-07T14:30:25',
    }


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def detection_factory():
    return make_detection
