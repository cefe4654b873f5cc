"""
Repeated Plates Section
Shows plates seen two or more times inside the selected timeframe
"""

import logging
from threading import RLock

from lpr_dashboard.constants import DEFAULT_TIMEFRAME, TIMEFRAMES
from lpr_dashboard.error_handlers import BackendError, error_message, validate_timeframe
from lpr_dashboard.models import RepeatedPlateGroup

logger = logging.getLogger(__name__)


class RepeatedPlatesSection:
    """
    Grouping is done by the backend; this section only picks the timeframe and
    tracks which groups are expanded. Any number of groups may be open at once.
    """

    timeframes = TIMEFRAMES

    def __init__(self, client, timeframe=DEFAULT_TIMEFRAME):
        self.client = client
        self.timeframe = validate_timeframe(timeframe)
        self.groups = []
        self.expanded = set()
        self.loading = False
        self.error = None
        self._lock = RLock()

    def fetch(self):
        with self._lock:
            self.loading = True
            self.error = None
            try:
                payload = self.client.repeated_plates(self.timeframe)
                self.groups = [RepeatedPlateGroup.from_dict(item) for item in payload if isinstance(item, dict)]
            except BackendError as e:
                self.error = f"Failed to load repeated plates: {error_message(e)}"
                logger.error("Error fetching repeated plates (%s): %s", self.timeframe, str(e))
            finally:
                self.loading = False
            return self.groups

    def set_timeframe(self, timeframe):
        """Switch timeframe and re-fetch right away"""
        with self._lock:
            self.timeframe = validate_timeframe(timeframe)
            return self.fetch()

    def toggle(self, plate_number):
        """Expand or collapse one group; returns the new expanded state"""
        with self._lock:
            if plate_number in self.expanded:
                self.expanded.discard(plate_number)
                return False
            self.expanded.add(plate_number)
            return True

    def is_expanded(self, plate_number):
        return plate_number in self.expanded

    def view(self):
        return {
            'timeframe': self.timeframe,
            'timeframe_label': TIMEFRAMES[self.timeframe],
            'groups': [
                dict(group.to_dict(), expanded=self.is_expanded(group.plate_number))
                for group in self.groups
            ],
            'loading': self.loading,
            'error': self.error,
        }
