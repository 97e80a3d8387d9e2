"""
Camera acquisition errors.

Each category carries the message shown to the volunteer so the UI does not
need to inspect backend details.
"""


class CameraError(Exception):
    """Base class for camera acquisition failures"""

    user_message = "Unable to access camera. Please check your camera and try again."

    def __init__(self, detail: str = "", device_id: str = ""):
        self.detail = detail
        self.device_id = device_id
        super().__init__(detail or self.user_message)


class PermissionDenied(CameraError):
    user_message = "Unable to access camera. Camera permission denied. Please allow camera access and try again."


class DeviceNotFound(CameraError):
    user_message = "Unable to access camera. No camera found. Please connect a camera and try again."


class DeviceBusy(CameraError):
    user_message = "Unable to access camera. Camera is already in use by another application."


class ConstraintsUnsatisfiable(CameraError):
    user_message = "Unable to access camera. Camera constraints cannot be satisfied."
