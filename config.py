"""
Configuration file for the License Plate Recorder dashboard
Override these values through environment variables instead of modifying the code
"""

import os

# Backend Configuration
# Origin the dashboard server talks to
BACKEND_URL = os.environ.get('LPR_BACKEND_URL', 'http://localhost:8000').rstrip('/')
# Origin the browser uses for snapshot URLs (empty = relative paths served by the dashboard's frame proxy)
API_URL = os.environ.get('LPR_API_URL', '').rstrip('/')
# Unset means no explicit request timeout
BACKEND_TIMEOUT_SECONDS = (
    float(os.environ['BACKEND_TIMEOUT_SECONDS'])
    if os.environ.get('BACKEND_TIMEOUT_SECONDS') else None
)

# Camera Polling
POLL_INTERVAL_SECONDS = float(os.environ.get('POLL_INTERVAL_SECONDS', 1.0))
POLL_WORKERS = int(os.environ.get('POLL_WORKERS', 8))

# Theme
DEFAULT_THEME = os.environ.get('DEFAULT_THEME', 'dark')
THEME_STORAGE_KEY = 'license-plate-recorder-theme'

# Server Configuration
HOST = os.environ.get('HOST', '0.0.0.0')
PORT = int(os.environ.get('PORT', 5000))
DEBUG = os.environ.get('DEBUG', 'False').lower() == 'true'

# Logging Configuration
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_FILE = os.environ.get('LOG_FILE')  # e.g. "dashboard.log"
