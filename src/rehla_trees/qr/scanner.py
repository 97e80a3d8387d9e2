"""
Camera QR scan session for tree labels.

Owns one camera acquisition at a time, decodes frames on a background thread
and hands the first decoded code, resolved to a serial number, to the
caller's callback. The session then stops itself and releases the camera.
"""

import time
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..camera.devices import CameraBackend, CameraDevice, CameraStream, StreamConstraints, order_devices
from ..camera.errors import CameraError
from ..config.config_manager import DEFAULT_EXPECTED_QR_DOMAIN
from .decoder import FrameDecoder
from .extractor import DomainAdvisory, extract_serial_number

logger = logging.getLogger(__name__)


class ScanState(Enum):
    """Scan session lifecycle states."""
    IDLE = "idle"
    INITIALIZING = "initializing"
    SCANNING = "scanning"
    STOPPED = "stopped"
    ERROR = "error"


class TorchStatus(Enum):
    """Outcome of a torch toggle request."""
    ON = "on"
    OFF = "off"
    UNSUPPORTED = "unsupported"


class ScanSessionBusy(Exception):
    """Raised when start() is called while a camera acquisition is already active"""
    pass


@dataclass
class QRScanEvent:
    """Represents a resolved QR scan."""
    timestamp: float
    raw_payload: str
    serial: str
    device_id: str = ""


class ScanSession:
    """
    Single-owner camera scan session.

    States: IDLE -> INITIALIZING -> SCANNING -> STOPPED, with ERROR reachable
    from INITIALIZING and SCANNING. start() may be called again from STOPPED
    or ERROR for a fresh acquisition.
    """

    def __init__(self,
                 backend: CameraBackend,
                 on_result: Optional[Callable[[str], None]] = None,
                 on_error: Optional[Callable[[CameraError], None]] = None,
                 decoder: Optional[FrameDecoder] = None,
                 expected_domain: str = DEFAULT_EXPECTED_QR_DOMAIN,
                 on_advisory: Optional[Callable[[DomainAdvisory], None]] = None,
                 frame_interval: float = 0.033,
                 max_read_failures: int = 30,
                 constraint_options: Optional[Dict[str, int]] = None):
        """Initialize the scan session."""
        self.backend = backend
        self.on_result = on_result
        self.on_error = on_error
        self.decoder = decoder if decoder is not None else FrameDecoder()
        self.expected_domain = expected_domain
        self.on_advisory = on_advisory
        self.frame_interval = frame_interval
        self.max_read_failures = max_read_failures
        self.constraint_options = constraint_options or {}

        self._lock = threading.RLock()
        self._state = ScanState.IDLE
        self._stream: Optional[CameraStream] = None
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None
        self._resolved = False
        self._torch_on = False
        self._last_error: Optional[CameraError] = None
        self._last_event: Optional[QRScanEvent] = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the session holds or is acquiring a camera."""
        return self._state in (ScanState.INITIALIZING, ScanState.SCANNING)

    @property
    def last_error(self) -> Optional[CameraError]:
        return self._last_error

    @property
    def last_event(self) -> Optional[QRScanEvent]:
        return self._last_event

    def list_devices(self) -> List[CameraDevice]:
        """Enumerate cameras, rear-facing first. An empty list is a valid result."""
        try:
            return order_devices(self.backend.list_devices())
        except (CameraError, OSError) as e:
            logger.error(f"Error enumerating cameras: {e}")
            return []

    def start(self, preferred_device_id: Optional[str] = None) -> ScanState:
        """
        Acquire a camera and start decoding frames.

        Blocks until the camera is open. Without a device id the rear-facing
        camera is preferred.

        Returns:
            SCANNING, or STOPPED when stop() was called while acquiring

        Raises:
            ScanSessionBusy: an acquisition is already in flight or active
            CameraError: PermissionDenied, DeviceNotFound, DeviceBusy or
                ConstraintsUnsatisfiable
        """
        with self._lock:
            if self.is_running:
                raise ScanSessionBusy(f"Scan session already {self._state.value}")

            cancel = threading.Event()
            self._cancel = cancel
            self._state = ScanState.INITIALIZING
            self._resolved = False
            self._torch_on = False
            self._last_error = None

        constraints = StreamConstraints.for_device(preferred_device_id, **self.constraint_options)
        logger.info(f"Starting camera {preferred_device_id or '(rear-facing preferred)'}")

        try:
            stream = self.backend.open(constraints)
        except CameraError as e:
            self._enter_error(e)
            logger.error(f"Camera access error: {e.user_message} ({e})")
            raise
        except Exception as e:
            error = CameraError(str(e))
            self._enter_error(error)
            logger.error(f"Camera access error: {e}")
            raise error from e

        with self._lock:
            if cancel.is_set():
                # stop() arrived while the camera was being acquired
                self._release(stream)
                self._state = ScanState.STOPPED
                logger.info("Scan cancelled during camera initialization")
                return self._state

            self._stream = stream
            self._state = ScanState.SCANNING
            self._thread = threading.Thread(
                target=self._scan_loop,
                args=(stream, cancel),
                daemon=True,
                name="QRScanSession"
            )
            self._thread.start()

        logger.info(f"QR scan started on {stream.device.label}")
        return ScanState.SCANNING

    def _scan_loop(self, stream: CameraStream, cancel: threading.Event) -> None:
        """Decode frames until a code is found, the session is stopped or the camera fails."""
        read_failures = 0

        while not cancel.is_set():
            try:
                frame = stream.read_frame()
            except Exception as e:
                logger.debug(f"Frame read error: {e}")
                frame = None

            if frame is None:
                read_failures += 1
                if read_failures >= self.max_read_failures:
                    self._fail(cancel, CameraError(
                        f"Camera {stream.device.device_id} stopped delivering frames",
                        device_id=stream.device.device_id
                    ))
                    return
                cancel.wait(self.frame_interval)
                continue

            read_failures = 0

            try:
                text = self.decoder.decode(frame)
            except Exception as e:
                # Transient decode failures are ignored
                logger.debug(f"QR detection error: {e}")
                text = None

            if text is not None and not cancel.is_set():
                self.handle_decode(text)

            cancel.wait(self.frame_interval)

    def handle_decode(self, raw_payload: str) -> bool:
        """
        Deliver a decoded payload.

        Only the first payload of a session reaches the result callback; the
        session stops right after it.

        Returns:
            True if the payload was delivered
        """
        with self._lock:
            if self._resolved or self._state != ScanState.SCANNING:
                return False
            self._resolved = True
            device_id = self._stream.device.device_id if self._stream else ""

        logger.debug(f"QR code detected (raw): {raw_payload!r}")
        serial = extract_serial_number(raw_payload, self.expected_domain, self.on_advisory)
        self._last_event = QRScanEvent(
            timestamp=time.time(),
            raw_payload=raw_payload,
            serial=serial,
            device_id=device_id
        )
        logger.info(f"QR code scanned, serial number: {serial}")

        try:
            if self.on_result:
                self.on_result(serial)
        except Exception as e:
            logger.error(f"Error in QR scan callback: {e}")
        finally:
            self.stop()

        return True

    def stop(self) -> None:
        """Stop scanning and release the camera. Safe to call in any state, any number of times."""
        with self._lock:
            if self._cancel is not None:
                self._cancel.set()
            thread = self._thread

        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout=max(self.frame_interval * 4, 1.0))
            if thread.is_alive():
                logger.warning("Scan loop did not exit in time, releasing camera anyway")

        with self._lock:
            stream, self._stream = self._stream, None
            if stream is not None:
                self._release(stream)
            if self._state == ScanState.SCANNING:
                self._state = ScanState.STOPPED
                logger.info("QR scan stopped")
            if self._thread is thread:
                self._thread = None
            self._torch_on = False

    def toggle_torch(self) -> TorchStatus:
        """Toggle the torch on the active camera. Reports UNSUPPORTED instead of raising."""
        with self._lock:
            stream = self._stream
            if stream is None or self._state != ScanState.SCANNING:
                logger.warning("Torch toggle failed: no active camera")
                return TorchStatus.UNSUPPORTED

            try:
                if not stream.supports_torch():
                    logger.warning(f"Torch not supported on {stream.device.label}")
                    return TorchStatus.UNSUPPORTED
                stream.set_torch(not self._torch_on)
            except Exception as e:
                logger.warning(f"Torch toggle failed: {e}")
                return TorchStatus.UNSUPPORTED

            self._torch_on = not self._torch_on
            return TorchStatus.ON if self._torch_on else TorchStatus.OFF

    def _release(self, stream: CameraStream) -> None:
        try:
            stream.release()
        except Exception as e:
            logger.error(f"Error releasing camera {stream.device.device_id}: {e}")

    def _enter_error(self, error: CameraError) -> None:
        with self._lock:
            self._state = ScanState.ERROR
            self._last_error = error

    def _fail(self, cancel: threading.Event, error: CameraError) -> None:
        """Move to ERROR after a resource failure in the scan loop."""
        with self._lock:
            if cancel.is_set():
                return
            cancel.set()
            stream, self._stream = self._stream, None
            if stream is not None:
                self._release(stream)
            self._state = ScanState.ERROR
            self._last_error = error

        logger.error(f"QR scan failed: {error}")
        if self.on_error:
            try:
                self.on_error(error)
            except Exception as e:
                logger.error(f"Error in scan error callback: {e}")

    def get_status(self) -> Dict[str, Any]:
        """Get session status."""
        return {
            "state": self._state.value,
            "device_id": self._stream.device.device_id if self._stream else None,
            "resolved": self._resolved,
            "torch_on": self._torch_on,
            "last_error": str(self._last_error) if self._last_error else None,
            "scan_thread_active": self._thread is not None and self._thread.is_alive(),
        }

    def __enter__(self) -> 'ScanSession':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.stop()
