"""
System Health Check Script
Diagnostics for the dashboard and the backend it talks to
"""

import os
import sys
import logging
from datetime import datetime

import requests

logging.basicConfig(
    level=logging.INFO,
    format='%(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def section(title):
    logger.info("\n" + "=" * 60)
    logger.info(title)
    logger.info("=" * 60)


def check_python_packages():
    """Check required Python packages"""
    section("PYTHON PACKAGES")

    required = {
        'flask': 'Flask',
        'werkzeug': 'Werkzeug',
        'requests': 'requests',
    }
    missing = []
    for module_name, package_name in required.items():
        try:
            module = __import__(module_name)
            version = getattr(module, '__version__', 'unknown')
            logger.info("✅ %s: %s", package_name, version)
        except ImportError:
            logger.error("❌ %s: Not installed", package_name)
            missing.append(package_name)

    if missing:
        logger.error("Install with: pip install %s", ' '.join(missing))
        return False
    return True


def check_system_files():
    """Check templates and static assets"""
    section("SYSTEM FILES")

    files = {
        'Dashboard page': os.path.join(BASE_DIR, 'templates', 'index.html'),
        'Camera grid partial': os.path.join(BASE_DIR, 'templates', 'partials', 'camera_grid.html'),
        'Page script': os.path.join(BASE_DIR, 'static', 'dashboard.js'),
        'Stylesheet': os.path.join(BASE_DIR, 'static', 'dashboard.css'),
    }
    all_found = True
    for name, path in files.items():
        if os.path.isfile(path):
            logger.info("✅ %s: Found (%.2f KB)", name, os.path.getsize(path) / 1024)
        else:
            logger.error("❌ %s: Not found at %s", name, path)
            all_found = False
    return all_found


def check_configuration():
    """Check configuration values"""
    section("CONFIGURATION")

    try:
        import config
        from lpr_dashboard.error_handlers import ConfigurationError, validate_config
    except ImportError as e:
        logger.error("❌ Cannot import configuration: %s", str(e))
        return False

    logger.info("Settings:")
    logger.info("  Backend URL: %s", config.BACKEND_URL)
    logger.info("  Browser API URL: %s", config.API_URL or '(same origin)')
    logger.info("  Poll Interval: %.2fs", config.POLL_INTERVAL_SECONDS)
    logger.info("  Poll Workers: %d", config.POLL_WORKERS)
    logger.info("  Request Timeout: %s", config.BACKEND_TIMEOUT_SECONDS or 'transport default')

    try:
        return validate_config(config)
    except ConfigurationError as e:
        logger.error("❌ %s", str(e))
        return False


def check_backend(timeout=5):
    """Check each backend endpoint the dashboard reads"""
    section("BACKEND")

    import config
    base = config.BACKEND_URL

    try:
        response = requests.get(f"{base}/api/v1/cameras/", timeout=timeout)
        response.raise_for_status()
        cameras = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error("❌ Camera list unavailable at %s: %s", base, str(e))
        return False

    cameras = cameras if isinstance(cameras, list) else []
    logger.info("✅ Camera list: %d cameras", len(cameras))

    healthy = True
    for camera in cameras:
        if not camera.get('is_active', True):
            logger.info("   Camera %s (%s): inactive, skipped", camera.get('id'), camera.get('name'))
            continue
        try:
            status = requests.get(
                f"{base}/api/v1/cameras/{camera.get('id')}/decode-status/", timeout=timeout
            ).json()
            logger.info("   Camera %s (%s): %s, %s frames", camera.get('id'), camera.get('name'),
                        status.get('status'), status.get('frame_count'))
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning("⚠️  Camera %s decode status failed: %s", camera.get('id'), str(e))

    endpoints = [
        ("Detections", f"{base}/api/v1/license-plates", {'skip': 0, 'limit': 1}),
        ("Repeated plates", f"{base}/api/v1/license-plates/repeated/1", None),
    ]
    for name, url, params in endpoints:
        try:
            response = requests.get(url, params=params, timeout=timeout)
            if response.ok:
                logger.info("✅ %s: HTTP %d", name, response.status_code)
            else:
                logger.error("❌ %s: HTTP %d", name, response.status_code)
                healthy = False
        except requests.exceptions.RequestException as e:
            logger.error("❌ %s: %s", name, str(e))
            healthy = False

    return healthy


def run_health_check():
    """Run complete health check"""
    print("\n" + "=" * 60)
    print("LICENSE PLATE RECORDER DASHBOARD - HEALTH CHECK")
    print(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)

    checks = [
        check_python_packages,
        check_system_files,
        check_configuration,
        check_backend,
    ]

    results = []
    for check in checks:
        try:
            results.append(check())
        except Exception as e:
            logger.error("❌ Check failed with error: %s", str(e))
            results.append(False)

    section("SUMMARY")
    logger.info("Checks Passed: %d / %d", sum(results), len(results))

    if all(results):
        logger.info("✅ All checks passed - System is healthy!")
        return True
    logger.warning("⚠️  Some checks failed or have warnings")
    logger.warning("Review the messages above for details")
    return False


if __name__ == "__main__":
    try:
        healthy = run_health_check()
        print("\n" + "=" * 60)
        if healthy:
            print("✅ SYSTEM READY")
            print("You can start the dashboard with: python app.py")
        else:
            print("⚠️  SYSTEM HAS ISSUES")
            print("Please address the warnings/errors above")
        print("=" * 60 + "\n")
        sys.exit(0 if healthy else 1)
    except KeyboardInterrupt:
        print("\n\nHealth check interrupted by user")
        sys.exit(1)
