"""Tests for the OpenCV camera backend with a mocked cv2.VideoCapture."""

from unittest.mock import MagicMock, patch

import pytest

import rehla_trees.camera.opencv_backend as backend_module
from rehla_trees.camera.devices import StreamConstraints, order_devices
from rehla_trees.camera.errors import ConstraintsUnsatisfiable, DeviceBusy, DeviceNotFound, PermissionDenied
from rehla_trees.camera.opencv_backend import OpenCVCameraBackend


@pytest.fixture
def video_nodes(tmp_path, monkeypatch):
    """Fake /dev and /sys/class/video4linux trees with two cameras."""
    monkeypatch.setattr(backend_module.sys, "platform", "linux")

    dev_dir = tmp_path / "dev"
    sysfs_dir = tmp_path / "sysfs"
    dev_dir.mkdir()
    for index, label in [(0, "Integrated Webcam"), (2, "USB Rear Camera")]:
        (dev_dir / f"video{index}").write_text("")
        (sysfs_dir / f"video{index}").mkdir(parents=True)
        (sysfs_dir / f"video{index}" / "name").write_text(label + "\n")
    (dev_dir / "video-codec").write_text("")

    return OpenCVCameraBackend(dev_dir=str(dev_dir), sysfs_dir=sysfs_dir), dev_dir


def make_capture(opened=True, width=1280, height=720):
    capture = MagicMock()
    capture.isOpened.return_value = opened
    sizes = {
        backend_module.cv2.CAP_PROP_FRAME_WIDTH: width,
        backend_module.cv2.CAP_PROP_FRAME_HEIGHT: height,
    }
    capture.get.side_effect = lambda prop: sizes.get(prop, 0)
    capture.read.return_value = (True, "frame")
    return capture


def test_list_devices_reads_sysfs_labels(video_nodes):
    backend, dev_dir = video_nodes

    devices = backend.list_devices()

    assert [d.device_id for d in devices] == [str(dev_dir / "video0"), str(dev_dir / "video2")]
    assert [d.label for d in devices] == ["Integrated Webcam", "USB Rear Camera"]
    assert order_devices(devices)[0].label == "USB Rear Camera"


def test_open_prefers_rear_camera(video_nodes):
    backend, dev_dir = video_nodes
    capture = make_capture()

    with patch.object(backend_module.cv2, "VideoCapture", return_value=capture) as video_capture:
        stream = backend.open(StreamConstraints.for_device())

    video_capture.assert_called_once_with(2)
    assert stream.device.device_id == str(dev_dir / "video2")
    assert stream.read_frame() == "frame"

    stream.release()
    capture.release.assert_called_once()


def test_open_unknown_device_is_not_found(video_nodes):
    backend, dev_dir = video_nodes

    with pytest.raises(DeviceNotFound):
        backend.open(StreamConstraints.for_device(str(dev_dir / "video9")))


def test_open_without_devices_is_not_found(tmp_path, monkeypatch):
    monkeypatch.setattr(backend_module.sys, "platform", "linux")
    backend = OpenCVCameraBackend(dev_dir=str(tmp_path), sysfs_dir=tmp_path)

    with pytest.raises(DeviceNotFound):
        backend.open(StreamConstraints.for_device())


def test_open_without_access_is_permission_denied(video_nodes, monkeypatch):
    backend, _ = video_nodes
    monkeypatch.setattr(backend_module.os, "access", lambda path, mode: False)

    with pytest.raises(PermissionDenied):
        backend.open(StreamConstraints.for_device())


def test_open_failure_is_device_busy(video_nodes):
    backend, _ = video_nodes
    capture = make_capture(opened=False)

    with patch.object(backend_module.cv2, "VideoCapture", return_value=capture):
        with pytest.raises(DeviceBusy):
            backend.open(StreamConstraints.for_device())

    capture.release.assert_called_once()


def test_low_resolution_is_unsatisfiable(video_nodes):
    backend, _ = video_nodes
    capture = make_capture(width=320, height=240)

    with patch.object(backend_module.cv2, "VideoCapture", return_value=capture):
        with pytest.raises(ConstraintsUnsatisfiable):
            backend.open(StreamConstraints.for_device())

    capture.release.assert_called_once()


def test_failed_read_returns_none(video_nodes):
    backend, _ = video_nodes
    capture = make_capture()
    capture.read.return_value = (False, None)

    with patch.object(backend_module.cv2, "VideoCapture", return_value=capture):
        stream = backend.open(StreamConstraints.for_device())

    assert stream.read_frame() is None
    assert stream.supports_torch() is False
