"""
Camera Section
Loads the camera list and runs create/update/delete/toggle round trips against the backend
"""

import logging
from threading import RLock

from lpr_dashboard.camera_dialog import CameraForm
from lpr_dashboard.error_handlers import BackendError, ValidationError, error_message
from lpr_dashboard.models import Camera

logger = logging.getLogger(__name__)


class CameraSection:
    """
    Camera grid controller

    Every successful mutation re-fetches and replaces the whole camera list
    instead of patching it locally, so the grid is backend-authoritative after
    each round trip. Failed writes leave the list exactly as it was and set
    ``error`` for the page banner. When the write succeeds but the re-fetch
    fails, the written change is kept in the grid and the banner reports the
    load failure instead.
    """

    def __init__(self, client, monitor):
        self.client = client
        self.monitor = monitor
        self.loading = False
        self.error = None
        self.dialog_open = False
        self.form = CameraForm.for_new()
        self._lock = RLock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self):
        """Fetch the camera list; returns True on success"""
        with self._lock:
            self.loading = True
            self.error = None
            try:
                self._refresh_list()
                return True
            except BackendError as e:
                self.error = f"Failed to load cameras: {error_message(e)}"
                logger.error("Error loading cameras: %s", str(e))
                return False
            finally:
                self.loading = False

    def _refresh_list(self):
        cameras = self.client.list_cameras()
        self.monitor.replace_cameras(cameras)

    # ------------------------------------------------------------------
    # Dialog
    # ------------------------------------------------------------------

    def open_create(self):
        with self._lock:
            self.form = CameraForm.for_new()
            self.dialog_open = True
            return self.form

    def open_edit(self, camera_id):
        """
        Open the dialog for an existing camera

        The record is fetched fresh from the backend so the form never starts
        from a stale copy.

        Returns:
            CameraForm or None if the fetch failed
        """
        with self._lock:
            self.error = None
            try:
                camera = self.client.get_camera(camera_id)
            except BackendError as e:
                self.error = f"Failed to load camera: {error_message(e)}"
                logger.error("Error fetching camera %s: %s", camera_id, str(e))
                return None
            self.form = CameraForm.for_camera(camera)
            self.dialog_open = True
            return self.form

    def close_dialog(self):
        with self._lock:
            self.dialog_open = False
            self.form = CameraForm.for_new()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _reload_after_write(self):
        """
        Re-fetch the list after a write that already succeeded

        A failure here is a load failure, not a write failure: the caller keeps
        its written state and the banner reports the list fetch.
        """
        try:
            self._refresh_list()
            return True
        except BackendError as e:
            self.error = f"Failed to load cameras: {error_message(e)}"
            logger.error("Error reloading cameras after write: %s", str(e))
            return False

    def save(self, form):
        """
        Create or update a camera from a dialog form

        Args:
            form: CameraForm; ``form.camera_id`` selects update over create

        Returns:
            bool: True if the backend accepted the write. A failed list re-fetch
            afterwards still returns True and sets ``error``.
        """
        with self._lock:
            self.form = form
            self.error = None
            try:
                form.validate()
            except ValidationError as e:
                self.error = str(e)
                return False

            action = 'update' if form.is_edit else 'create'
            payload = form.to_payload()
            self.loading = True
            try:
                try:
                    if form.is_edit:
                        written = self.client.update_camera(form.camera_id, payload)
                    else:
                        written = self.client.create_camera(payload)
                except BackendError as e:
                    self.error = f"Failed to {action} camera: {error_message(e)}"
                    logger.error("Error trying to %s camera: %s", action, str(e))
                    return False

                logger.info("Camera %s succeeded (%s)", action, payload['name'])
                self.dialog_open = False
                self.form = CameraForm.for_new()
                if not self._reload_after_write():
                    self._apply_locally(form, payload, written)
                return True
            finally:
                self.loading = False

    def _apply_locally(self, form, payload, written):
        """Show a write in the grid when the list could not be re-fetched"""
        if form.is_edit:
            changes = dict(payload, rtsp_url=payload.get('rtsp_url'))
            self.monitor.patch_camera(form.camera_id, **changes)
        elif isinstance(written, dict) and written.get('id') is not None:
            self.monitor.add_camera(Camera.from_dict(written))

    def delete(self, camera_id):
        with self._lock:
            self.error = None
            self.loading = True
            try:
                try:
                    self.client.delete_camera(camera_id)
                except BackendError as e:
                    self.error = f"Failed to delete camera: {error_message(e)}"
                    logger.error("Error deleting camera %s: %s", camera_id, str(e))
                    return False
                logger.info("Camera %s deleted", camera_id)
                if not self._reload_after_write():
                    self.monitor.remove_camera(camera_id)
                return True
            finally:
                self.loading = False

    def toggle_active(self, camera_id):
        return self._toggle(camera_id, 'is_active')

    def toggle_tracking(self, camera_id):
        return self._toggle(camera_id, 'vehicle_tracking_enabled')

    def _toggle(self, camera_id, field):
        """Flip a flag locally, write it, then reconcile; restores the flag only if the write fails"""
        with self._lock:
            self.error = None
            current = self.monitor.get(camera_id)
            if current is None:
                self.error = f"Camera {camera_id} not found"
                return False

            new_value = not getattr(current.camera, field)
            previous = self.monitor.patch_camera(camera_id, **{field: new_value})
            try:
                self.client.update_camera(camera_id, {field: new_value})
            except BackendError as e:
                self.monitor.restore_camera(previous)
                self.error = f"Failed to update camera: {error_message(e)}"
                logger.error("Error toggling %s on camera %s: %s", field, camera_id, str(e))
                return False
            self._reload_after_write()
            return True

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def view(self):
        return {
            'cameras': [state.to_dict() for state in self.monitor.snapshot()],
            'loading': self.loading,
            'error': self.error,
            'dialog_open': self.dialog_open,
        }
