"""
OpenCV camera backend.

Devices are V4L2 nodes (/dev/videoN) on Linux. Other platforms are probed by
capture index, in which case the device id is the index as a string.
"""

import os
import re
import sys
import logging
from pathlib import Path
from typing import Any, List, Optional

import cv2

from .devices import CameraBackend, CameraDevice, CameraStream, StreamConstraints, order_devices
from .errors import ConstraintsUnsatisfiable, DeviceBusy, DeviceNotFound, PermissionDenied

logger = logging.getLogger(__name__)

VIDEO_NODE_PATTERN = re.compile(r'^video(\d+)$')
SYSFS_VIDEO_DIR = Path('/sys/class/video4linux')


class OpenCVCameraStream(CameraStream):
    """Camera stream backed by cv2.VideoCapture."""

    def __init__(self, capture: Any, device: CameraDevice):
        self._capture = capture
        self.device = device

    def read_frame(self) -> Optional[Any]:
        ok, frame = self._capture.read()
        if not ok:
            return None
        return frame

    def release(self) -> None:
        self._capture.release()
        logger.debug(f"Released camera {self.device.device_id}")


class OpenCVCameraBackend(CameraBackend):
    """Enumerates and opens cameras through OpenCV."""

    def __init__(self, max_index: int = 10, dev_dir: str = '/dev', sysfs_dir: Path = SYSFS_VIDEO_DIR):
        self.max_index = max_index
        self.dev_dir = Path(dev_dir)
        self.sysfs_dir = Path(sysfs_dir)

    def _use_device_nodes(self) -> bool:
        return sys.platform.startswith('linux') and self.dev_dir.exists()

    def _node_label(self, index: int) -> str:
        name_file = self.sysfs_dir / f"video{index}" / "name"
        try:
            label = name_file.read_text(encoding='utf-8').strip()
        except OSError:
            label = ''
        return label or f"Camera {index}"

    def list_devices(self) -> List[CameraDevice]:
        """Enumerate video input devices."""
        devices = []

        if self._use_device_nodes():
            for path in sorted(self.dev_dir.glob('video*')):
                match = VIDEO_NODE_PATTERN.match(path.name)
                if not match:
                    continue
                devices.append(CameraDevice(device_id=str(path), label=self._node_label(int(match.group(1)))))
        else:
            for index in range(self.max_index):
                capture = cv2.VideoCapture(index)
                try:
                    if capture.isOpened():
                        devices.append(CameraDevice(device_id=str(index), label=f"Camera {index}"))
                finally:
                    capture.release()

        logger.debug(f"Found {len(devices)} camera devices")
        return devices

    def _capture_source(self, device_id: str) -> int:
        match = VIDEO_NODE_PATTERN.match(Path(device_id).name)
        if match:
            return int(match.group(1))
        try:
            return int(device_id)
        except ValueError:
            raise DeviceNotFound(f"Unknown camera device: {device_id}", device_id=device_id)

    def _select_device(self, constraints: StreamConstraints) -> CameraDevice:
        if constraints.device_id:
            for device in self.list_devices():
                if device.device_id == constraints.device_id:
                    return device
            raise DeviceNotFound(f"Camera device not found: {constraints.device_id}",
                                 device_id=constraints.device_id)

        devices = order_devices(self.list_devices())
        if not devices:
            raise DeviceNotFound("No camera devices available")

        if constraints.facing_mode == 'environment' and not devices[0].is_rear_facing:
            logger.info(f"No rear-facing camera found, using {devices[0].label}")
        return devices[0]

    def open(self, constraints: StreamConstraints) -> CameraStream:
        """Open a camera stream, classifying failures for the caller."""
        device = self._select_device(constraints)

        if self._use_device_nodes() and not os.access(device.device_id, os.R_OK | os.W_OK):
            raise PermissionDenied(f"No access to {device.device_id}. Try: sudo usermod -a -G video $USER",
                                   device_id=device.device_id)

        capture = cv2.VideoCapture(self._capture_source(device.device_id))
        if not capture.isOpened():
            capture.release()
            raise DeviceBusy(f"Could not open {device.device_id}", device_id=device.device_id)

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.ideal_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.ideal_height)
        capture.set(cv2.CAP_PROP_FPS, constraints.frame_rate)

        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if width < constraints.min_width or height < constraints.min_height:
            capture.release()
            raise ConstraintsUnsatisfiable(
                f"{device.device_id} delivers {width}x{height}, "
                f"minimum is {constraints.min_width}x{constraints.min_height}",
                device_id=device.device_id
            )

        logger.info(f"Opened camera {device.label} ({device.device_id}) at {width}x{height}")
        return OpenCVCameraStream(capture, device)
