"""
Detection Section
Fetches one page of plate detections at a time; the backend applies offset, limit and filter
"""

import logging
from threading import RLock

from lpr_dashboard.constants import DEFAULT_PAGE_SIZE
from lpr_dashboard.error_handlers import (
    BackendError,
    error_message,
    validate_page,
    validate_page_size,
    validate_source_type,
)
from lpr_dashboard.models import Detection, DetectionPage, confidence_band

logger = logging.getLogger(__name__)


def parse_detection_page(payload, page, page_size):
    """
    Normalize the backend listing response

    Accepts a bare list or an object carrying ``items``/``detections`` and an
    optional ``total``.
    """
    total = None
    if isinstance(payload, dict):
        rows = payload.get('items')
        if rows is None:
            rows = payload.get('detections') or []
        total = payload.get('total')
    elif isinstance(payload, list):
        rows = payload
    else:
        rows = []

    items = [Detection.from_dict(row) for row in rows if isinstance(row, dict)]
    return DetectionPage(
        items=items,
        page=page,
        page_size=page_size,
        total=int(total) if total is not None else None,
    )


class DetectionSection:
    """Detected license plates table with pagination, source filter and image preview"""

    confidence_band = staticmethod(confidence_band)

    def __init__(self, client, page_size=DEFAULT_PAGE_SIZE):
        self.client = client
        self.page = 1
        self.page_size = validate_page_size(page_size)
        self.source_type = None
        self.current = DetectionPage(items=[], page=1, page_size=self.page_size)
        self.selected_image = None
        self.loading = False
        self.error = None
        self._lock = RLock()

    @property
    def skip(self):
        return (self.page - 1) * self.page_size

    def fetch(self):
        """
        Fetch the current page with the current filter

        Returns:
            DetectionPage: The page now on display (unchanged on failure)
        """
        with self._lock:
            self.loading = True
            self.error = None
            try:
                payload = self.client.list_detections(
                    skip=self.skip, limit=self.page_size, source_type=self.source_type
                )
                self.current = parse_detection_page(payload, self.page, self.page_size)
            except BackendError as e:
                self.error = f"Failed to load detections: {error_message(e)}"
                logger.error("Error fetching detections: %s", str(e))
            finally:
                self.loading = False
            return self.current

    def refresh(self):
        """Re-issue the same fetch with identical parameters"""
        return self.fetch()

    def set_page(self, page):
        with self._lock:
            self.page = validate_page(page)
            return self.fetch()

    def next_page(self):
        with self._lock:
            if not self.current.has_next:
                return self.current
            return self.set_page(self.page + 1)

    def previous_page(self):
        with self._lock:
            if self.page <= 1:
                return self.current
            return self.set_page(self.page - 1)

    def set_page_size(self, page_size):
        with self._lock:
            self.page_size = validate_page_size(page_size)
            self.page = 1
            return self.fetch()

    def set_source_type(self, source_type):
        with self._lock:
            self.source_type = validate_source_type(source_type)
            self.page = 1
            return self.fetch()

    def configure(self, page=None, page_size=None, source_type=None):
        """Apply query parameters in one go and fetch once"""
        with self._lock:
            if page_size is not None:
                new_size = validate_page_size(page_size)
                if new_size != self.page_size:
                    self.page = 1
                self.page_size = new_size
            if source_type is not None:
                new_type = validate_source_type(source_type)
                if new_type != self.source_type:
                    self.page = 1
                self.source_type = new_type
            if page is not None:
                self.page = validate_page(page)
            return self.fetch()

    # ------------------------------------------------------------------
    # Image preview
    # ------------------------------------------------------------------

    def preview(self, detection_id):
        """Select a detection's full image for the preview modal"""
        for detection in self.current.items:
            if str(detection.id) == str(detection_id):
                self.selected_image = detection.full_image_path
                return detection
        self.selected_image = None
        return None

    def close_preview(self):
        self.selected_image = None

    def view(self):
        data = self.current.to_dict()
        data.update({
            'source_type': self.source_type,
            'selected_image': self.selected_image,
            'loading': self.loading,
            'error': self.error,
        })
        return data
