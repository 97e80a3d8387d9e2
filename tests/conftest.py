"""Shared pytest configuration and fixtures for the field client test suite."""

import sys
import threading
import time
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, List, Optional

import pytest

# Ensure the src directory is importable without installing the package
SRC_ROOT = Path(__file__).parent.parent / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from rehla_trees.camera.devices import CameraBackend, CameraDevice, CameraStream, StreamConstraints, order_devices


# =============================================================================
# Fake camera hardware
# =============================================================================


class FakeStream(CameraStream):
    """Camera stream that counts releases and hands out placeholder frames."""

    def __init__(self, backend: "FakeBackend", device: CameraDevice, torch: bool = False):
        self.backend = backend
        self.device = device
        self.torch = torch
        self.torch_on = False
        self.released = False

    def read_frame(self) -> Optional[Any]:
        if self.backend.frames_fail:
            return None
        return object()

    def release(self) -> None:
        self.backend.releases += 1
        self.released = True

    def supports_torch(self) -> bool:
        return self.torch

    def set_torch(self, enabled: bool) -> None:
        self.torch_on = enabled


class FakeBackend(CameraBackend):
    """Camera backend that counts acquisitions."""

    def __init__(self, devices: Optional[List[CameraDevice]] = None, open_error: Optional[Exception] = None,
                 torch: bool = False):
        self.devices = devices if devices is not None else [
            CameraDevice(device_id="/dev/video0", label="Integrated Front Camera"),
            CameraDevice(device_id="/dev/video2", label="USB Back Camera"),
        ]
        self.open_error = open_error
        self.torch = torch
        self.frames_fail = False
        self.acquisitions = 0
        self.releases = 0
        self.constraints: List[StreamConstraints] = []
        self.open_gate: Optional[threading.Event] = None
        self.open_entered = threading.Event()
        self.streams: List[FakeStream] = []

    def list_devices(self) -> List[CameraDevice]:
        return list(self.devices)

    def open(self, constraints: StreamConstraints) -> CameraStream:
        self.constraints.append(constraints)
        self.open_entered.set()
        if self.open_gate is not None:
            self.open_gate.wait(timeout=5)
        if self.open_error is not None:
            raise self.open_error

        if constraints.device_id:
            device = next(d for d in self.devices if d.device_id == constraints.device_id)
        else:
            device = order_devices(self.devices)[0]

        self.acquisitions += 1
        stream = FakeStream(self, device, torch=self.torch)
        self.streams.append(stream)
        return stream


class FakeDecoder:
    """Returns queued payloads, then reports no code in every frame."""

    def __init__(self, payloads: Optional[List[Any]] = None):
        self.payloads = list(payloads or [])
        self.calls = 0

    def decode(self, frame: Any) -> Optional[str]:
        self.calls += 1
        if not self.payloads:
            return None
        item = self.payloads.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def wait_for(condition: Callable[[], bool], timeout: float = 3.0) -> bool:
    """Poll until condition() holds or the timeout passes."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if condition():
            return True
        time.sleep(0.005)
    return condition()


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def cms_config():
    return SimpleNamespace(api_url="https://cms.example.org", api_timeout=5)
