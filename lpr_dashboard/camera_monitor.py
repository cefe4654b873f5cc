"""
Thread-Safe Camera Monitor
Polls decode status and latest frames for active cameras and keeps per-camera view state
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from threading import RLock

from lpr_dashboard.constants import (
    DECODE_ERROR,
    DECODE_RUNNING,
    POLL_INTERVAL_SECONDS,
    POLL_WORKERS,
    STATUS_ERROR,
    STATUS_LIVE,
    STATUS_NO_SIGNAL,
)
from lpr_dashboard.error_handlers import BackendError
from lpr_dashboard.models import CameraViewState

logger = logging.getLogger(__name__)


def derive_status(payload):
    """
    Map a decode-status response to a badge status

    Args:
        payload: Decoded JSON body, e.g. {'status': 'running', 'frame_count': 12}

    Returns:
        str: 'live', 'error' or 'no-signal'
    """
    if not isinstance(payload, dict):
        return STATUS_NO_SIGNAL

    decode_status = payload.get('status')
    try:
        frame_count = float(payload.get('frame_count') or 0)
    except (ValueError, TypeError):
        frame_count = 0

    if decode_status == DECODE_RUNNING and frame_count > 0:
        return STATUS_LIVE
    if decode_status == DECODE_ERROR:
        return STATUS_ERROR
    return STATUS_NO_SIGNAL


class CameraMonitor:
    """
    Thread-safe holder of camera view state plus the polling loop that feeds it

    Each tick submits two independent jobs per active camera (decode status and
    latest frame) to a worker pool and returns without waiting, so a slow camera
    never delays the others or the next tick. A job is not resubmitted while the
    same camera's previous one is still in flight, so a hanging camera holds at
    most two workers. Results are merged per camera id; whichever response lands
    last wins, unless the camera list was replaced or the camera deactivated
    since the job was submitted.
    """

    def __init__(self, client, interval=POLL_INTERVAL_SECONDS, max_workers=POLL_WORKERS, clock=None):
        self._client = client
        self._interval = interval
        self._clock = clock or time.time
        self._states = {}  # {camera_id: CameraViewState}, in backend order
        self._generation = 0  # bumped by replace_cameras
        self._in_flight = set()  # {(camera_id, job_kind)}
        self._global_lock = RLock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="camera-poll")
        self._stop = threading.Event()
        self._thread = None
        self._closed = False

    # ------------------------------------------------------------------
    # Camera list
    # ------------------------------------------------------------------

    def replace_cameras(self, cameras):
        """
        Replace the whole camera list

        Every camera starts over at the default view state; the next poll tick
        re-establishes status and snapshot. Results of jobs submitted before the
        replacement are discarded.

        Args:
            cameras: Iterable of Camera records, in display order
        """
        with self._global_lock:
            self._generation += 1
            self._states = {camera.id: CameraViewState(camera=camera) for camera in cameras}
        logger.info("Camera list replaced (%d cameras)", len(self._states))

    def patch_camera(self, camera_id, **changes):
        """
        Edit one camera record in place, keeping its poll-derived state

        Args:
            camera_id: Camera identifier
            **changes: Camera fields to overwrite

        Returns:
            Camera: The record as it was before the change, or None if unknown
        """
        with self._global_lock:
            state = self._states.get(camera_id)
            if state is None:
                return None
            previous = state.camera
            state.camera = previous.with_changes(**changes)
            return previous

    def restore_camera(self, camera):
        """Put back a record previously returned by patch_camera"""
        with self._global_lock:
            state = self._states.get(camera.id)
            if state is not None:
                state.camera = camera

    def add_camera(self, camera):
        """Append a camera the backend just created; no-op if already listed"""
        with self._global_lock:
            if camera.id not in self._states:
                self._states[camera.id] = CameraViewState(camera=camera)

    def remove_camera(self, camera_id):
        with self._global_lock:
            self._states.pop(camera_id, None)

    def cameras(self):
        with self._global_lock:
            return [state.camera for state in self._states.values()]

    def get(self, camera_id):
        with self._global_lock:
            state = self._states.get(camera_id)
            return replace(state) if state is not None else None

    def snapshot(self):
        """Copy of every camera's view state, in display order"""
        with self._global_lock:
            return [replace(state) for state in self._states.values()]

    def active_camera_ids(self):
        with self._global_lock:
            return [cid for cid, state in self._states.items() if state.camera.is_active]

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def poll_once(self):
        """
        Fire one polling round for every active camera

        Cameras whose previous job of the same kind has not returned yet are
        skipped for that job.

        Returns:
            list: Futures of the submitted jobs (callers normally ignore them)
        """
        if self._closed:
            return []

        futures = []
        timestamp_ms = int(self._clock() * 1000)
        with self._global_lock:
            generation = self._generation
        for camera_id in self.active_camera_ids():
            for kind, job, args in (
                ('status', self._poll_status, (camera_id, generation)),
                ('snapshot', self._poll_snapshot, (camera_id, generation, timestamp_ms)),
            ):
                if not self._claim(camera_id, kind):
                    continue
                try:
                    futures.append(self._executor.submit(job, *args))
                except RuntimeError:
                    # Executor shut down between the closed check and submit
                    self._release(camera_id, kind)
                    return futures
        return futures

    def _claim(self, camera_id, kind):
        with self._global_lock:
            if (camera_id, kind) in self._in_flight:
                return False
            self._in_flight.add((camera_id, kind))
            return True

    def _release(self, camera_id, kind):
        with self._global_lock:
            self._in_flight.discard((camera_id, kind))

    def in_flight(self, camera_id):
        """Job kinds still running for a camera"""
        with self._global_lock:
            return {kind for cid, kind in self._in_flight if cid == camera_id}

    def _poll_status(self, camera_id, generation):
        try:
            self._merge(camera_id, generation, status=self._fetch_status(camera_id))
        finally:
            self._release(camera_id, 'status')

    def _poll_snapshot(self, camera_id, generation, timestamp_ms):
        try:
            self._merge(camera_id, generation,
                        snapshot_url=self._fetch_snapshot_url(camera_id, timestamp_ms))
        finally:
            self._release(camera_id, 'snapshot')

    def _fetch_status(self, camera_id):
        try:
            return derive_status(self._client.get_decode_status(camera_id))
        except BackendError as e:
            logger.debug("Decode status poll failed for camera %s: %s", camera_id, str(e))
        except Exception as e:
            logger.error("Unexpected error polling camera %s status: %s", camera_id, str(e))
        return STATUS_ERROR

    def _fetch_snapshot_url(self, camera_id, timestamp_ms):
        try:
            self._client.fetch_latest_frame(camera_id, timestamp_ms)
        except BackendError as e:
            logger.debug("Latest frame fetch failed for camera %s: %s", camera_id, str(e))
            return None
        except Exception as e:
            logger.error("Unexpected error fetching camera %s frame: %s", camera_id, str(e))
            return None
        return self._client.latest_frame_url(camera_id, timestamp_ms)

    def _merge(self, camera_id, generation, **fields):
        """
        Apply a poll result to one camera

        Results are dropped after teardown, for cameras removed or deactivated
        since submission, and for jobs submitted before the last list replacement.
        """
        with self._global_lock:
            if self._closed or generation != self._generation:
                return False
            state = self._states.get(camera_id)
            if state is None or not state.camera.is_active:
                return False
            for key, value in fields.items():
                setattr(state, key, value)
            return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        """Arm the polling timer"""
        if self._closed:
            raise RuntimeError("Camera monitor already stopped")
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="camera-monitor")
        self._thread.start()
        logger.info("Camera monitor started (interval=%.2fs)", self._interval)

    def stop(self):
        """
        Cancel the polling timer and release the worker pool

        In-flight requests are left to finish; their results are discarded.
        """
        with self._global_lock:
            if self._closed:
                return
            self._closed = True
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=max(2.0, self._interval * 2))
        self._executor.shutdown(wait=False)
        logger.info("Camera monitor stopped")

    def _run(self):
        next_deadline = time.monotonic()
        while not self._stop.is_set():
            timeout = max(0.0, next_deadline - time.monotonic())
            if self._stop.wait(timeout=timeout):
                break
            try:
                self.poll_once()
            except Exception as e:
                logger.error("Error in camera polling tick: %s", str(e))
            next_deadline = time.monotonic() + self._interval
