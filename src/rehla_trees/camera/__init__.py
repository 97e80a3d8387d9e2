"""
Camera access for QR scanning.
"""

from .devices import CameraBackend, CameraDevice, CameraStream, StreamConstraints, order_devices
from .errors import (
    CameraError,
    ConstraintsUnsatisfiable,
    DeviceBusy,
    DeviceNotFound,
    PermissionDenied,
)

__all__ = [
    'CameraBackend',
    'CameraDevice',
    'CameraStream',
    'StreamConstraints',
    'order_devices',
    'CameraError',
    'ConstraintsUnsatisfiable',
    'DeviceBusy',
    'DeviceNotFound',
    'PermissionDenied',
]
