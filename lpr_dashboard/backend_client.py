"""
Backend HTTP Client
Wraps every call the dashboard makes against the license plate backend
"""

import logging
import threading
from typing import Any, BinaryIO, Dict, List, Optional

import requests

from lpr_dashboard.constants import CAMERAS_PATH, LICENSE_PLATES_PATH
from lpr_dashboard.error_handlers import BackendError, BackendUnavailableError
from lpr_dashboard.models import Camera

logger = logging.getLogger(__name__)


class BackendClient:
    """
    Thin client for the backend REST surface

    Args:
        base_url: Origin the server-side requests go to
        public_url: Origin written into URLs handed to the browser
            (empty string keeps them relative to the dashboard origin)
        timeout: Per-request timeout in seconds, None for the transport default
        session: Optional pre-built requests.Session, shared by every thread.
            Without one each thread gets its own Session, since the poll
            workers and request threads call in concurrently.
    """

    def __init__(self, base_url, public_url='', timeout=None, session=None):
        self.base_url = base_url.rstrip('/')
        self.public_url = (public_url or '').rstrip('/')
        self.timeout = timeout
        self._shared_session = session
        self._local = threading.local()
        self._sessions = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """Session for the calling thread"""
        if self._shared_session is not None:
            return self._shared_session
        session = getattr(self._local, 'session', None)
        if session is None:
            session = requests.Session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def close(self):
        """Release pooled connections of every thread"""
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def camera_path(self, camera_id: int, suffix: str = '') -> str:
        return f"{CAMERAS_PATH}{camera_id}/{suffix}"

    def latest_frame_url(self, camera_id: int, timestamp_ms: int, public: bool = True) -> str:
        """Cache-busted latest-frame URL, for the browser or for the server"""
        origin = self.public_url if public else self.base_url
        return f"{origin}{self.camera_path(camera_id, 'latest-frame/')}?_ts={timestamp_ms}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self.url(path)
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            raise BackendUnavailableError(f"{method} {path} failed: {e}") from e

        if not response.ok:
            detail = _extract_detail(response)
            raise BackendError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                detail=detail,
            )
        return response

    def _json(self, method: str, path: str, **kwargs) -> Any:
        response = self._request(method, path, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON",
                               status_code=response.status_code) from e

    # ------------------------------------------------------------------
    # Cameras
    # ------------------------------------------------------------------

    def list_cameras(self) -> List[Camera]:
        data = self._json('GET', CAMERAS_PATH)
        if not isinstance(data, list):
            logger.warning("Camera list response was not a list, treating as empty")
            return []
        return [Camera.from_dict(item) for item in data]

    def get_camera(self, camera_id: int) -> Camera:
        data = self._json('GET', self.camera_path(camera_id))
        return Camera.from_dict(data)

    def create_camera(self, payload: Dict[str, Any]) -> Any:
        return self._json('POST', CAMERAS_PATH, json=payload)

    def update_camera(self, camera_id: int, payload: Dict[str, Any]) -> Any:
        return self._json('PUT', self.camera_path(camera_id), json=payload)

    def delete_camera(self, camera_id: int) -> None:
        self._request('DELETE', self.camera_path(camera_id))

    def get_decode_status(self, camera_id: int) -> Dict[str, Any]:
        data = self._json('GET', self.camera_path(camera_id, 'decode-status/'))
        return data if isinstance(data, dict) else {}

    def fetch_latest_frame(self, camera_id: int, timestamp_ms: int) -> bytes:
        response = self._request(
            'GET',
            self.camera_path(camera_id, 'latest-frame/'),
            params={'_ts': timestamp_ms},
        )
        return response.content

    # ------------------------------------------------------------------
    # License plates
    # ------------------------------------------------------------------

    def list_detections(self, skip: int, limit: int, source_type: Optional[str] = None) -> Any:
        params = {'skip': skip, 'limit': limit}
        if source_type:
            params['source_type'] = source_type
        return self._json('GET', LICENSE_PLATES_PATH, params=params)

    def upload_file(self, filename: str, stream: BinaryIO, content_type: str,
                    start_time_offset: str = '', location: str = '') -> Any:
        files = {'file': (filename, stream, content_type)}
        data = {'start_time_offset': start_time_offset, 'location': location}
        return self._json('POST', f"{LICENSE_PLATES_PATH}/upload-file", files=files, data=data)

    def repeated_plates(self, timeframe: str) -> List[Dict[str, Any]]:
        data = self._json('GET', f"{LICENSE_PLATES_PATH}/repeated/{timeframe}")
        return data if isinstance(data, list) else []


def _extract_detail(response: requests.Response) -> Optional[str]:
    """Pull a human-readable error detail out of an error response"""
    try:
        body = response.json()
    except ValueError:
        text = (response.text or '').strip()
        return text[:500] or None
    if isinstance(body, dict):
        detail = body.get('detail') or body.get('error') or body.get('message')
        if detail is not None:
            return detail if isinstance(detail, str) else str(detail)
    return None
