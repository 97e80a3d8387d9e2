"""
Camera device descriptions and the backend interface used by the scan session.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

REAR_FACING_KEYWORDS = ('back', 'rear', 'environment')


def is_rear_facing_label(label: str) -> bool:
    """Classify a camera as rear-facing from its human-readable label."""
    label = (label or '').lower()
    return any(keyword in label for keyword in REAR_FACING_KEYWORDS)


@dataclass
class CameraDevice:
    """An available video input device."""
    device_id: str
    label: str

    @property
    def is_rear_facing(self) -> bool:
        return is_rear_facing_label(self.label)


def order_devices(devices: List[CameraDevice]) -> List[CameraDevice]:
    """Order devices rear-facing first, keeping the enumeration order otherwise."""
    return sorted(devices, key=lambda device: not device.is_rear_facing)


@dataclass
class StreamConstraints:
    """Requested capture settings for a camera stream."""
    device_id: Optional[str] = None
    facing_mode: Optional[str] = 'environment'
    ideal_width: int = 1280
    ideal_height: int = 720
    min_width: int = 640
    min_height: int = 480
    frame_rate: int = 30

    @classmethod
    def for_device(cls, device_id: Optional[str] = None, **kwargs) -> 'StreamConstraints':
        """Constraints that pin a device id, or prefer the rear camera when none is given."""
        return cls(
            device_id=device_id,
            facing_mode=None if device_id else 'environment',
            **kwargs
        )


class CameraStream(ABC):
    """An open, exclusively held camera stream."""

    device: CameraDevice

    @abstractmethod
    def read_frame(self) -> Optional[Any]:
        """Return the next frame, or None when the device did not deliver one."""

    @abstractmethod
    def release(self) -> None:
        """Release the underlying hardware handle."""

    def supports_torch(self) -> bool:
        return False

    def set_torch(self, enabled: bool) -> None:
        raise NotImplementedError("Torch control not supported")


class CameraBackend(ABC):
    """Enumerates and opens camera devices."""

    @abstractmethod
    def list_devices(self) -> List[CameraDevice]:
        """Enumerate available video input devices (unordered)."""

    @abstractmethod
    def open(self, constraints: StreamConstraints) -> CameraStream:
        """
        Open a stream matching the constraints.

        Raises:
            CameraError subclass describing why the camera could not be acquired
        """
