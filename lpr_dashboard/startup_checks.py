"""
Startup Validation
Performs checks before starting the dashboard server
"""

import os
import sys
import socket
import logging

import requests

from lpr_dashboard.constants import CAMERAS_PATH
from lpr_dashboard.error_handlers import ConfigurationError, validate_config

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def check_python_version():
    """Check Python version compatibility"""
    if sys.version_info < (3, 8):
        logger.error("❌ Python 3.8 or higher required, got %s", sys.version)
        return False
    logger.info("✅ Python version: %s", sys.version.split()[0])
    return True


def check_dependencies():
    """Check required dependencies are installed"""
    required_packages = {
        'flask': 'Flask',
        'werkzeug': 'Werkzeug',
        'requests': 'requests',
    }

    missing = []
    for module_name, package_name in required_packages.items():
        try:
            __import__(module_name)
            logger.info("✅ %s installed", package_name)
        except ImportError:
            logger.error("❌ %s not installed", package_name)
            missing.append(package_name)

    if missing:
        logger.error("Missing packages: %s", ', '.join(missing))
        logger.error("Install with: pip install %s", ' '.join(missing))
        return False

    return True


def check_config(config):
    """Validate the configuration module"""
    try:
        return validate_config(config)
    except ConfigurationError as e:
        logger.error("❌ %s", str(e))
        return False


def check_directories():
    """Check template and static directories exist"""
    for name in ('templates', 'static'):
        path = os.path.join(BASE_DIR, name)
        if not os.path.isdir(path):
            logger.error("❌ Directory missing: %s", path)
            return False
        logger.info("✅ Directory ready: %s", name)
    return True


def check_port_available(port=5000):
    """Check if port is available"""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(('', port))
            logger.info("✅ Port %d is available", port)
            return True
    except OSError:
        logger.error("❌ Port %d is already in use", port)
        logger.error("Please stop other services using this port or change PORT environment variable")
        return False


def check_backend_reachable(backend_url, timeout=5):
    """Check the backend answers the camera list; non-critical"""
    url = f"{backend_url}{CAMERAS_PATH}"
    try:
        response = requests.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        logger.warning("⚠️  Backend not reachable at %s: %s", backend_url, str(e))
        logger.warning("Cameras will show errors until the backend is up")
        return True
    if response.ok:
        logger.info("✅ Backend reachable: %s", backend_url)
    else:
        logger.warning("⚠️  Backend answered HTTP %d for %s", response.status_code, url)
    return True


def run_startup_checks(config):
    """
    Run all startup checks

    Args:
        config: The config.py module

    Returns:
        bool: True if every critical check passed
    """
    logger.info("=" * 60)
    logger.info("Starting License Plate Recorder Dashboard - Startup Checks")
    logger.info("=" * 60)

    checks = [
        ("Python Version", check_python_version),
        ("Dependencies", check_dependencies),
        ("Configuration", lambda: check_config(config)),
        ("Directories", check_directories),
        ("Port Availability", lambda: check_port_available(config.PORT)),
        ("Backend", lambda: check_backend_reachable(config.BACKEND_URL)),
    ]

    all_passed = True

    for check_name, check_func in checks:
        logger.info("")
        logger.info("Checking: %s", check_name)
        try:
            if not check_func():
                all_passed = False
                logger.error("❌ %s check failed", check_name)
        except Exception as e:
            logger.error("❌ %s check error: %s", check_name, str(e))
            all_passed = False

    logger.info("")
    logger.info("=" * 60)

    if all_passed:
        logger.info("✅ All startup checks passed!")
    else:
        logger.error("❌ Some startup checks failed")
        logger.error("Please fix the errors above before starting the dashboard")
    logger.info("=" * 60)
    return all_passed
