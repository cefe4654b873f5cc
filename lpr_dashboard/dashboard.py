"""
Dashboard Context
Owns the backend client, the camera monitor and the page sections for one Flask app
"""

import logging

from lpr_dashboard.backend_client import BackendClient
from lpr_dashboard.camera_monitor import CameraMonitor
from lpr_dashboard.camera_section import CameraSection
from lpr_dashboard.constants import MAX_UPLOAD_SIZE, POLL_INTERVAL_SECONDS, POLL_WORKERS
from lpr_dashboard.detection_section import DetectionSection
from lpr_dashboard.file_upload import FileUploadDialog
from lpr_dashboard.repeated_plates import RepeatedPlatesSection
from lpr_dashboard.theme import ThemeProvider

logger = logging.getLogger(__name__)


class DashboardContext:
    """
    Explicit container for everything with a lifecycle

    Nothing here is a module-level singleton: the Flask app keeps one context in
    ``app.extensions`` and ``close()`` releases everything it holds
    deterministically.
    """

    def __init__(self, client, poll_interval=POLL_INTERVAL_SECONDS, poll_workers=POLL_WORKERS,
                 max_upload_size=MAX_UPLOAD_SIZE, theme=None):
        self.client = client
        self.monitor = CameraMonitor(client, interval=poll_interval, max_workers=poll_workers)
        self.cameras = CameraSection(client, self.monitor)
        self.detections = DetectionSection(client)
        self.repeated = RepeatedPlatesSection(client)
        self.upload = FileUploadDialog(
            client,
            on_upload_success=self.detections.refresh,
            max_size=max_upload_size,
        )
        self.theme = theme or ThemeProvider()
        self.started = False

    @classmethod
    def from_config(cls, config):
        """Build a context from the config.py module"""
        client = BackendClient(
            config.BACKEND_URL,
            public_url=config.API_URL,
            timeout=config.BACKEND_TIMEOUT_SECONDS,
        )
        theme = ThemeProvider(default_theme=config.DEFAULT_THEME, storage_key=config.THEME_STORAGE_KEY)
        return cls(
            client,
            poll_interval=config.POLL_INTERVAL_SECONDS,
            poll_workers=config.POLL_WORKERS,
            theme=theme,
        )

    def start(self):
        """Load the camera list and arm the polling timer"""
        if self.started:
            return
        if not self.cameras.load():
            logger.warning("Initial camera load failed: %s", self.cameras.error)
        self.monitor.start()
        self.started = True

    def close(self):
        """Stop polling, drop any kept upload and release the HTTP sessions"""
        self.monitor.stop()
        self.upload.reset()
        self.client.close()
        self.started = False
        logger.info("Dashboard context closed")
