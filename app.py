"""
License Plate Recorder Dashboard
Flask-based web dashboard for cameras, plate detections and repeated plates
"""

import os
import sys
import time
import logging
from datetime import datetime

from flask import (
    Blueprint, Flask, Response, current_app, jsonify, redirect, render_template, request, url_for
)
from werkzeug.exceptions import RequestEntityTooLarge
from werkzeug.utils import secure_filename

import config
from lpr_dashboard.camera_dialog import CameraForm
from lpr_dashboard.constants import (
    CAMERA_POSITIONS, MAX_UPLOAD_SIZE, MAX_UPLOAD_SIZE_MB, PAGE_SIZES, SOURCE_TYPES, TIMEFRAMES
)
from lpr_dashboard.dashboard import DashboardContext
from lpr_dashboard.error_handlers import BackendError, ValidationError, error_message
from lpr_dashboard.header import TITLE, format_header_time

# Configure logging
logging.basicConfig(
    level=getattr(logging, str(config.LOG_LEVEL).upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
if config.LOG_FILE:
    file_handler = logging.FileHandler(config.LOG_FILE)
    file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
    logging.getLogger().addHandler(file_handler)
logger = logging.getLogger(__name__)

bp = Blueprint('dashboard', __name__)


def get_dashboard():
    """DashboardContext owned by the current app"""
    return current_app.extensions['lpr_dashboard']


def error_response(message, status_code):
    return jsonify({
        'success': False,
        'error': message
    }), status_code


def _file_size(storage):
    """Size of an uploaded file without reading it into memory"""
    if storage.content_length:
        return storage.content_length
    stream = storage.stream
    position = stream.tell()
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(position)
    return size


# ============================================================================
# PAGES
# ============================================================================

@bp.route('/')
def index():
    """Main dashboard page"""
    dashboard = get_dashboard()
    theme = dashboard.theme.resolve(request.cookies)

    try:
        dashboard.detections.configure(
            page=request.args.get('page'),
            page_size=request.args.get('page_size'),
            source_type=request.args.get('source_type'),
        )
    except ValidationError as e:
        dashboard.detections.error = str(e)

    timeframe = request.args.get('timeframe')
    try:
        if timeframe:
            dashboard.repeated.set_timeframe(timeframe)
        else:
            dashboard.repeated.fetch()
    except ValidationError as e:
        dashboard.repeated.error = str(e)

    return render_template(
        'index.html',
        title=TITLE,
        theme=theme,
        next_theme=dashboard.theme.toggle(theme),
        clock=format_header_time(datetime.now()),
        cameras=dashboard.cameras.view(),
        positions=CAMERA_POSITIONS,
        detections=dashboard.detections.view(),
        page_sizes=PAGE_SIZES,
        source_types=SOURCE_TYPES,
        upload=dashboard.upload.view(),
        max_upload_size=MAX_UPLOAD_SIZE,
        max_upload_size_mb=MAX_UPLOAD_SIZE_MB,
        repeated=dashboard.repeated.view(),
        timeframes=TIMEFRAMES,
    )


@bp.route('/partials/cameras')
def camera_grid():
    """Camera grid fragment, re-rendered by the page script every second"""
    return render_template('partials/camera_grid.html', cameras=get_dashboard().cameras.view())


@bp.route('/theme', methods=['POST'])
def set_theme():
    """Store the theme preference and go back"""
    dashboard = get_dashboard()
    response = redirect(request.referrer or url_for('dashboard.index'))
    try:
        dashboard.theme.persist(response, request.form.get('theme'))
    except ValidationError as e:
        return error_response(str(e), 400)
    return response


# ============================================================================
# CAMERAS
# ============================================================================

@bp.route('/api/health')
def health_check():
    """Health check endpoint"""
    dashboard = get_dashboard()
    return jsonify({
        'status': 'ok',
        'timestamp': datetime.now().isoformat(),
        'backend_url': dashboard.client.base_url,
        'polling': dashboard.monitor.running,
        'active_cameras': dashboard.monitor.active_camera_ids(),
    })


@bp.route('/api/cameras', methods=['GET'])
def list_cameras():
    """Current camera view state"""
    return jsonify(dict(get_dashboard().cameras.view(), success=True))


@bp.route('/api/cameras/reload', methods=['POST'])
def reload_cameras():
    """Re-fetch the camera list from the backend"""
    section = get_dashboard().cameras
    if not section.load():
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


def _save_camera(camera_id=None):
    section = get_dashboard().cameras
    data = request.get_json(silent=True) or request.form.to_dict()
    form = CameraForm.from_request_data(data, camera_id=camera_id)
    form.validate()

    if not section.save(form):
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True)), (200 if camera_id else 201)


@bp.route('/api/cameras', methods=['POST'])
def create_camera():
    """Create a camera, then re-fetch the list"""
    return _save_camera()


@bp.route('/api/cameras/<int:camera_id>', methods=['GET'])
def get_camera(camera_id):
    """Fresh camera record for the edit dialog"""
    section = get_dashboard().cameras
    form = section.open_edit(camera_id)
    if form is None:
        return error_response(section.error, 502)
    return jsonify({
        'success': True,
        'camera': {
            'id': form.camera_id,
            'name': form.name,
            'location': form.location,
            'rtsp_url': form.rtsp_url,
            'is_active': form.is_active,
            'vehicle_tracking_enabled': form.vehicle_tracking_enabled,
        },
        'title': form.title,
        'submit_label': form.submit_label,
    })


@bp.route('/api/cameras/<int:camera_id>', methods=['PUT'])
def update_camera(camera_id):
    """Update a camera, then re-fetch the list"""
    return _save_camera(camera_id)


@bp.route('/api/cameras/<int:camera_id>', methods=['DELETE'])
def delete_camera(camera_id):
    """Delete a camera, then re-fetch the list"""
    section = get_dashboard().cameras
    if not section.delete(camera_id):
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


@bp.route('/api/cameras/<int:camera_id>/toggle-active', methods=['POST'])
def toggle_camera_active(camera_id):
    """Flip the active flag"""
    section = get_dashboard().cameras
    if not section.toggle_active(camera_id):
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


@bp.route('/api/cameras/<int:camera_id>/toggle-tracking', methods=['POST'])
def toggle_camera_tracking(camera_id):
    """Flip the vehicle tracking flag"""
    section = get_dashboard().cameras
    if not section.toggle_tracking(camera_id):
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


@bp.route('/api/v1/cameras/<int:camera_id>/latest-frame/', methods=['GET'])
def latest_frame(camera_id):
    """Same-origin snapshot: relays the backend's latest frame to the browser"""
    timestamp_ms = request.args.get('_ts', type=int) or int(time.time() * 1000)
    try:
        frame = get_dashboard().client.fetch_latest_frame(camera_id, timestamp_ms)
    except BackendError as e:
        logger.debug("Latest frame relay failed for camera %s: %s", camera_id, str(e))
        return error_response(error_message(e), 502)
    return Response(frame, mimetype='image/jpeg', headers={'Cache-Control': 'no-store'})


# ============================================================================
# DETECTIONS
# ============================================================================

@bp.route('/api/detections', methods=['GET'])
def list_detections():
    """One page of detections"""
    section = get_dashboard().detections
    section.configure(
        page=request.args.get('page'),
        page_size=request.args.get('page_size'),
        source_type=request.args.get('source_type'),
    )
    if section.error:
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


@bp.route('/api/detections/refresh', methods=['POST'])
def refresh_detections():
    """Re-issue the last detection fetch"""
    section = get_dashboard().detections
    section.refresh()
    if section.error:
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


@bp.route('/api/detections/<detection_id>/image', methods=['GET'])
def detection_image(detection_id):
    """Full image path for the preview modal"""
    section = get_dashboard().detections
    detection = section.preview(detection_id)
    if detection is None:
        return error_response(f'Detection {detection_id} is not on the current page', 404)
    return jsonify({
        'success': True,
        'plate_number': detection.plate_number,
        'full_image_path': detection.full_image_path,
    })


@bp.route('/api/upload', methods=['POST'])
def upload_video():
    """Validate a video upload and forward it to the backend"""
    dialog = get_dashboard().upload

    if 'file' not in request.files or request.files['file'].filename == '':
        return error_response('No file selected: Please select a video file to upload.', 400)

    file = request.files['file']
    dialog.open()
    dialog.select(
        filename=secure_filename(file.filename) or 'upload',
        content_type=file.mimetype,
        size=_file_size(file),
        stream=file.stream,
    )

    try:
        result = dialog.submit(
            start_time_offset=request.form.get('start_time_offset', ''),
            location=request.form.get('location', ''),
        )
    except BackendError:
        return error_response(dialog.error, 502)

    return jsonify({
        'success': True,
        'message': dialog.message,
        'result': result,
    })


@bp.route('/api/upload/retry', methods=['POST'])
def retry_upload():
    """Resend the file kept from the last failed upload"""
    dialog = get_dashboard().upload
    data = request.get_json(silent=True) or request.form.to_dict()

    try:
        result = dialog.retry(
            start_time_offset=data.get('start_time_offset'),
            location=data.get('location'),
        )
    except BackendError:
        return error_response(dialog.error, 502)

    return jsonify({
        'success': True,
        'message': dialog.message,
        'result': result,
    })


# ============================================================================
# REPEATED PLATES
# ============================================================================

@bp.route('/api/repeated-plates', methods=['GET'])
def repeated_plates():
    """Plates seen at least twice in the timeframe"""
    section = get_dashboard().repeated
    timeframe = request.args.get('timeframe')
    if timeframe:
        section.set_timeframe(timeframe)
    else:
        section.fetch()
    if section.error:
        return error_response(section.error, 502)
    return jsonify(dict(section.view(), success=True))


@bp.route('/api/repeated-plates/toggle', methods=['POST'])
def toggle_repeated_plate():
    """Expand or collapse one plate group"""
    data = request.get_json(silent=True) or request.form.to_dict()
    plate_number = (data.get('plate_number') or '').strip()
    if not plate_number:
        return error_response('Missing required field: plate_number', 400)
    expanded = get_dashboard().repeated.toggle(plate_number)
    return jsonify({
        'success': True,
        'plate_number': plate_number,
        'expanded': expanded,
    })


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@bp.app_errorhandler(ValidationError)
def validation_error(error):
    """Handle client-side validation failures"""
    return error_response(str(error), 400)


@bp.app_errorhandler(BackendError)
def backend_error(error):
    """Handle backend failures that escaped a section"""
    logger.error("Backend error: %s", str(error))
    return error_response(error_message(error), 502)


@bp.app_errorhandler(RequestEntityTooLarge)
def too_large(_error):
    """Handle uploads above the size ceiling"""
    return error_response(
        f'File too large: Maximum allowed size is {MAX_UPLOAD_SIZE_MB}MB.', 413
    )


@bp.app_errorhandler(404)
def not_found(_error):
    """Handle 404 errors"""
    return error_response('Endpoint not found', 404)


@bp.app_errorhandler(500)
def internal_error(error):
    """Handle 500 errors"""
    logger.error("Internal server error: %s", str(error))
    return error_response('Internal server error', 500)


# ============================================================================
# APPLICATION
# ============================================================================

def create_app(dashboard=None):
    """
    Build the Flask app

    Args:
        dashboard: Optional DashboardContext; built from config.py when omitted

    Returns:
        Flask: Configured app; the context is not started
    """
    flask_app = Flask(__name__)
    flask_app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', os.urandom(32).hex())
    # Multipart envelope on top of the largest allowed video
    flask_app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_SIZE + 1024 * 1024
    flask_app.extensions['lpr_dashboard'] = dashboard or DashboardContext.from_config(config)
    flask_app.register_blueprint(bp)
    return flask_app


app = create_app()


def main():
    """Main entry point"""
    from lpr_dashboard.startup_checks import run_startup_checks
    if not run_startup_checks(config):
        logger.error("Startup checks failed. Please fix errors and restart.")
        sys.exit(1)

    dashboard = app.extensions['lpr_dashboard']
    dashboard.start()

    logger.info("Starting License Plate Recorder Dashboard on %s:%d", config.HOST, config.PORT)
    logger.info("Backend: %s (poll interval %.1fs)", config.BACKEND_URL, config.POLL_INTERVAL_SECONDS)

    try:
        # Reloader would start a second polling loop
        app.run(host=config.HOST, port=config.PORT, debug=config.DEBUG, threaded=True, use_reloader=False)
    finally:
        logger.info("Shutting down dashboard...")
        dashboard.close()


if __name__ == '__main__':
    main()
