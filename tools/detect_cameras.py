#!/usr/bin/env python3
"""
Utility to detect cameras that can be used for scanning tree labels.
"""

import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'src'))

from rehla_trees.camera.devices import StreamConstraints, order_devices
from rehla_trees.camera.errors import CameraError
from rehla_trees.camera.opencv_backend import OpenCVCameraBackend


def detect_cameras():
    """Detect camera devices and check that each one can be opened."""
    print("Detecting camera devices...")
    print("=" * 50)

    backend = OpenCVCameraBackend()
    devices = order_devices(backend.list_devices())

    if not devices:
        print("No camera devices found.")
        return

    for device in devices:
        print(f"  {device.device_id}: {device.label}")
        if device.is_rear_facing:
            print("    ** Rear-facing, preferred for scanning **")

        if os.path.exists(device.device_id) and not os.access(device.device_id, os.R_OK | os.W_OK):
            print("    No read/write access")

        try:
            stream = backend.open(StreamConstraints.for_device(device.device_id))
        except CameraError as e:
            print(f"    Cannot open: {e.user_message} ({e})")
        else:
            frame = stream.read_frame()
            print(f"    Opened OK, frame {'received' if frame is not None else 'NOT received'}")
            stream.release()
        print()

    print("Recommended usage:")
    print("1. Connect your camera")
    print("2. Run this script again to see new devices")
    print("3. Set CAMERA_DEVICE to the device path, or pass --camera")
    print("4. You may need to add your user to the video group:")
    print("   sudo usermod -a -G video $USER")


if __name__ == "__main__":
    detect_cameras()
