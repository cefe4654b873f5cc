"""
Dashboard Data Model
Plain records built from backend JSON payloads
"""

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from lpr_dashboard.constants import (
    CONFIDENCE_HIGH_THRESHOLD,
    CONFIDENCE_MEDIUM_THRESHOLD,
    STATUS_LIVE,
    STATUS_NO_SIGNAL,
)


def confidence_band(confidence: float) -> str:
    """
    Classify a detection confidence for display

    Args:
        confidence: Confidence in [0, 1]

    Returns:
        str: 'high' above 0.8, 'medium' above 0.6, otherwise 'low'
    """
    if confidence > CONFIDENCE_HIGH_THRESHOLD:
        return 'high'
    if confidence > CONFIDENCE_MEDIUM_THRESHOLD:
        return 'medium'
    return 'low'


def as_bool(value: Any, default: bool) -> bool:
    """Read a JSON or form flag; strings such as "false" and "0" are False"""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ('1', 'true', 'on', 'yes')


@dataclass(frozen=True)
class Camera:
    id: int
    name: str
    location: Optional[str] = None
    rtsp_url: Optional[str] = None
    is_active: bool = True
    vehicle_tracking_enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Camera':
        return cls(
            id=int(data['id']),
            name=data.get('name') or '',
            location=data.get('location') or None,
            rtsp_url=data.get('rtsp_url') or None,
            is_active=as_bool(data.get('is_active'), True),
            vehicle_tracking_enabled=as_bool(data.get('vehicle_tracking_enabled'), False),
        )

    def with_changes(self, **changes) -> 'Camera':
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'rtsp_url': self.rtsp_url,
            'is_active': self.is_active,
            'vehicle_tracking_enabled': self.vehicle_tracking_enabled,
        }


@dataclass
class CameraViewState:
    """Client-only view of a camera: record plus poll-derived state"""
    camera: Camera
    snapshot_url: Optional[str] = None
    status: str = STATUS_NO_SIGNAL

    @property
    def show_snapshot(self) -> bool:
        # A cached URL is never shown under a non-live badge
        return self.status == STATUS_LIVE and self.snapshot_url is not None

    def to_dict(self) -> Dict[str, Any]:
        data = self.camera.to_dict()
        data.update({
            'snapshot_url': self.snapshot_url,
            'status': self.status,
            'show_snapshot': self.show_snapshot,
        })
        return data


@dataclass(frozen=True)
class Detection:
    id: Any
    plate_number: str
    confidence: float = 0.0
    source_type: Optional[str] = None
    source_name: Optional[str] = None
    thumbnail_path: Optional[str] = None
    full_image_path: Optional[str] = None
    location: Optional[str] = None
    detected_at: Optional[str] = None
    video_path: Optional[str] = None
    video_timestamp: Optional[float] = None
    start_time_offset: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Detection':
        try:
            confidence = float(data.get('confidence') or 0.0)
        except (ValueError, TypeError):
            confidence = 0.0
        return cls(
            id=data.get('id'),
            plate_number=data.get('plate_number') or '',
            confidence=confidence,
            source_type=data.get('source_type'),
            source_name=data.get('source_name'),
            thumbnail_path=data.get('thumbnail_path'),
            full_image_path=data.get('full_image_path'),
            location=data.get('location'),
            detected_at=data.get('detected_at'),
            video_path=data.get('video_path'),
            video_timestamp=data.get('video_timestamp'),
            start_time_offset=data.get('start_time_offset'),
        )

    @property
    def confidence_band(self) -> str:
        return confidence_band(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'plate_number': self.plate_number,
            'confidence': self.confidence,
            'confidence_band': self.confidence_band,
            'source_type': self.source_type,
            'source_name': self.source_name,
            'thumbnail_path': self.thumbnail_path,
            'full_image_path': self.full_image_path,
            'location': self.location,
            'detected_at': self.detected_at,
            'video_path': self.video_path,
            'video_timestamp': self.video_timestamp,
            'start_time_offset': self.start_time_offset,
        }


@dataclass(frozen=True)
class RepeatedPlateGroup:
    plate_number: str
    count: int
    detections: List[Detection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepeatedPlateGroup':
        detections = [Detection.from_dict(d) for d in data.get('detections') or []]
        count = data.get('count')
        return cls(
            plate_number=data.get('plate_number') or '',
            count=int(count) if count is not None else len(detections),
            detections=detections,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'plate_number': self.plate_number,
            'count': self.count,
            'detections': [d.to_dict() for d in self.detections],
        }


@dataclass
class DetectionPage:
    items: List[Detection]
    page: int
    page_size: int
    total: Optional[int] = None

    @property
    def total_pages(self) -> Optional[int]:
        if self.total is None:
            return None
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        if self.total is not None:
            return self.page < self.total_pages
        # Without a total, a full page suggests more rows
        return len(self.items) == self.page_size

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [d.to_dict() for d in self.items],
            'page': self.page,
            'page_size': self.page_size,
            'total': self.total,
            'total_pages': self.total_pages,
            'has_previous': self.has_previous,
            'has_next': self.has_next,
        }
