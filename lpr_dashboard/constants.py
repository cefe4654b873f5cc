"""
Constants for the License Plate Recorder dashboard
Centralized configuration values to avoid magic numbers
"""

# Camera Status
STATUS_LIVE = 'live'
STATUS_NO_SIGNAL = 'no-signal'
STATUS_ERROR = 'error'
CAMERA_STATUSES = (STATUS_LIVE, STATUS_NO_SIGNAL, STATUS_ERROR)

# Backend decode-status values
DECODE_RUNNING = 'running'
DECODE_ERROR = 'error'

# Camera Positions
CAMERA_POSITIONS = ('Front', 'Back', 'Left', 'Right')

# Polling
POLL_INTERVAL_SECONDS = 1.0
POLL_WORKERS = 8

# Detection Listing
PAGE_SIZES = (10, 20, 40)
DEFAULT_PAGE_SIZE = 10
SOURCE_TYPES = ('camera', 'file')

# Confidence Bands (strictly greater than)
CONFIDENCE_HIGH_THRESHOLD = 0.8
CONFIDENCE_MEDIUM_THRESHOLD = 0.6

# Repeated Plates (lookback in days)
TIMEFRAMES = {
    '1': '1 Day',
    '3': '3 Days',
    '7': '7 Days',
}
DEFAULT_TIMEFRAME = '1'

# File Upload
MAX_UPLOAD_SIZE_MB = 500
MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE_MB * 1024 * 1024  # 524,288,000 bytes
VIDEO_MIME_PREFIX = 'video/'
DEFAULT_UPLOAD_LOCATION = 'File Upload'
UPLOAD_SPOOL_MEMORY = 8 * 1024 * 1024  # larger selections spill to a temp file on disk

# Theme
THEMES = ('light', 'dark', 'system')
THEME_COOKIE_MAX_AGE = 365 * 24 * 60 * 60  # one year

# API paths on the backend
CAMERAS_PATH = '/api/v1/cameras/'
LICENSE_PLATES_PATH = '/api/v1/license-plates'
