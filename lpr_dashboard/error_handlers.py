"""
Error Types and Validators
Provides the dashboard's exception taxonomy and input validation
"""

import logging
from typing import Any, Optional
from urllib.parse import urlparse

from lpr_dashboard.constants import (
    CAMERA_POSITIONS,
    PAGE_SIZES,
    SOURCE_TYPES,
    TIMEFRAMES,
    THEMES,
)

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Client-side validation failure, raised before any network call"""
    pass


class ConfigurationError(Exception):
    """Invalid dashboard configuration"""
    pass


class BackendError(Exception):
    """Backend answered with a non-2xx response"""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class BackendUnavailableError(BackendError):
    """Network/transport failure reaching the backend"""
    pass


def error_message(error: Exception) -> str:
    """
    Human-readable message for an error surfaced in the UI

    Args:
        error: Exception caught at the call site

    Returns:
        str: Backend detail when present, otherwise the exception text
    """
    detail = getattr(error, 'detail', None)
    if detail:
        return str(detail)
    return str(error) or error.__class__.__name__


def validate_location(location: Any) -> str:
    """
    Validate camera location

    Raises:
        ValidationError: If location is not one of the fixed positions
    """
    if not location or not isinstance(location, str):
        raise ValidationError("Location is required")
    if location not in CAMERA_POSITIONS:
        raise ValidationError(
            f"Location must be one of {', '.join(CAMERA_POSITIONS)}, got {location}"
        )
    return location


def validate_page(page: Any) -> int:
    """Validate a 1-based page index"""
    try:
        value = int(page)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid page: {page}") from e
    if value < 1:
        raise ValidationError(f"Page must be 1 or greater, got {value}")
    return value


def validate_page_size(page_size: Any) -> int:
    """Validate page size against the allowed sizes"""
    try:
        value = int(page_size)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"Invalid page size: {page_size}") from e
    if value not in PAGE_SIZES:
        raise ValidationError(
            f"Page size must be one of {', '.join(str(s) for s in PAGE_SIZES)}, got {value}"
        )
    return value


def validate_source_type(source_type: Any) -> Optional[str]:
    """Validate detection source filter; empty means no filter"""
    if source_type in (None, '', 'all'):
        return None
    if source_type not in SOURCE_TYPES:
        raise ValidationError(
            f"Source type must be one of {', '.join(SOURCE_TYPES)}, got {source_type}"
        )
    return source_type


def validate_timeframe(timeframe: Any) -> str:
    """Validate repeated-plates timeframe"""
    value = str(timeframe).strip() if timeframe is not None else ''
    if value not in TIMEFRAMES:
        raise ValidationError(
            f"Timeframe must be one of {', '.join(TIMEFRAMES)}, got {timeframe}"
        )
    return value


def validate_theme(theme: Any) -> str:
    """Validate theme name"""
    if theme not in THEMES:
        raise ValidationError(f"Theme must be one of {', '.join(THEMES)}, got {theme}")
    return theme


def validate_config(config: Any) -> bool:
    """
    Validate the dashboard configuration module

    Args:
        config: Module (or object) exposing the config.py attributes

    Returns:
        bool: True if valid

    Raises:
        ConfigurationError: If configuration is invalid
    """
    backend_url = getattr(config, 'BACKEND_URL', '')
    parsed = urlparse(backend_url or '')
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ConfigurationError(f"BACKEND_URL must be an http(s) URL, got {backend_url!r}")

    try:
        interval = float(getattr(config, 'POLL_INTERVAL_SECONDS', 1.0))
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid POLL_INTERVAL_SECONDS format: {str(e)}") from e
    if interval <= 0:
        raise ConfigurationError(f"POLL_INTERVAL_SECONDS must be positive, got {interval}")

    try:
        workers = int(getattr(config, 'POLL_WORKERS', 1))
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid POLL_WORKERS format: {str(e)}") from e
    if workers < 1:
        raise ConfigurationError(f"POLL_WORKERS must be at least 1, got {workers}")

    timeout = getattr(config, 'BACKEND_TIMEOUT_SECONDS', None)
    if timeout is not None and timeout <= 0:
        raise ConfigurationError(f"BACKEND_TIMEOUT_SECONDS must be positive, got {timeout}")

    default_theme = getattr(config, 'DEFAULT_THEME', 'dark')
    if default_theme not in THEMES:
        raise ConfigurationError(f"DEFAULT_THEME must be one of {', '.join(THEMES)}, got {default_theme}")

    logger.info("✅ Configuration validated successfully")
    return True
