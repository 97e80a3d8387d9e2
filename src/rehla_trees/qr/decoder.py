"""
QR decoding for camera frames.

Uses pyzbar (zbar) when the shared library is available and OpenCV's
QRCodeDetector otherwise, or when zbar finds nothing.
"""

import logging
from typing import Any, Optional, Union

import cv2

try:
    from pyzbar import pyzbar
    HAS_PYZBAR = True
except ImportError:
    HAS_PYZBAR = False
    logging.getLogger(__name__).info("pyzbar not available - using OpenCV QR detection only. "
                                     "Install zbar with: sudo apt install libzbar0")

logger = logging.getLogger(__name__)


def clean_payload(raw: Union[str, bytes]) -> str:
    """Decode scanner output and drop NUL bytes and control characters."""
    if isinstance(raw, bytes):
        decoded = raw.decode("utf-8", errors="ignore")
    else:
        decoded = raw

    return "".join(ch for ch in decoded if ord(ch) >= 32 or ch in '\t\n').strip()


class FrameDecoder:
    """Decodes a QR code from a BGR camera frame."""

    def __init__(self, use_pyzbar: bool = HAS_PYZBAR):
        self.use_pyzbar = use_pyzbar and HAS_PYZBAR
        self._detector = cv2.QRCodeDetector()

    def decode(self, frame: Any) -> Optional[str]:
        """
        Decode the first QR code in the frame.

        Returns:
            Cleaned payload text, or None when the frame holds no readable code
        """
        if frame is None:
            return None

        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)

        if self.use_pyzbar:
            decoded = pyzbar.decode(gray, symbols=[pyzbar.ZBarSymbol.QRCODE])
            if decoded:
                text = clean_payload(decoded[0].data)
                if text:
                    return text

        data, _, _ = self._detector.detectAndDecode(gray)
        if data:
            text = clean_payload(data)
            if text:
                return text

        return None
