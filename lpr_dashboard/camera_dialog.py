"""
Camera Dialog Form
Form state for creating and editing a camera record
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from lpr_dashboard.constants import CAMERA_POSITIONS
from lpr_dashboard.error_handlers import ValidationError, validate_location
from lpr_dashboard.models import as_bool


@dataclass
class CameraForm:
    name: str = ''
    location: str = ''
    rtsp_url: str = ''
    is_active: bool = True
    vehicle_tracking_enabled: bool = False
    camera_id: Optional[int] = None

    @classmethod
    def for_new(cls) -> 'CameraForm':
        return cls()

    @classmethod
    def for_camera(cls, camera) -> 'CameraForm':
        return cls(
            name=camera.name or '',
            location=camera.location or '',
            rtsp_url=camera.rtsp_url or '',
            is_active=camera.is_active,
            vehicle_tracking_enabled=camera.vehicle_tracking_enabled,
            camera_id=camera.id,
        )

    @classmethod
    def from_request_data(cls, data: Dict[str, Any], camera_id: Optional[int] = None) -> 'CameraForm':
        """Build a form from submitted JSON or form fields"""
        return cls(
            name=str(data.get('name') or ''),
            location=str(data.get('location') or ''),
            rtsp_url=str(data.get('rtsp_url') or ''),
            is_active=as_bool(data.get('is_active'), True),
            vehicle_tracking_enabled=as_bool(data.get('vehicle_tracking_enabled'), False),
            camera_id=camera_id,
        )

    @property
    def is_edit(self) -> bool:
        return self.camera_id is not None

    @property
    def title(self) -> str:
        return "Edit Camera" if self.is_edit else "Add Camera"

    @property
    def submit_label(self) -> str:
        return "Update Camera" if self.is_edit else "Add Camera"

    @property
    def positions(self) -> List[str]:
        return list(CAMERA_POSITIONS)

    def validate(self) -> None:
        """
        Check required fields

        Raises:
            ValidationError: If the name is blank or the location is missing/unknown
        """
        if not self.name.strip():
            raise ValidationError("Camera name is required")
        validate_location(self.location)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body for create/update; an empty stream URL is left out"""
        payload = {
            'name': self.name.strip(),
            'location': self.location,
            'is_active': self.is_active,
            'vehicle_tracking_enabled': self.vehicle_tracking_enabled,
        }
        rtsp_url = self.rtsp_url.strip()
        if rtsp_url:
            payload['rtsp_url'] = rtsp_url
        return payload
