"""
QR code handling for tree labels.

Resolves scanned payloads to serial numbers and runs camera scan sessions.
"""

from .extractor import DomainAdvisory, SerialResolution, extract_serial_number, resolve_payload
from .scanner import QRScanEvent, ScanSession, ScanSessionBusy, ScanState, TorchStatus

__all__ = [
    'DomainAdvisory',
    'SerialResolution',
    'extract_serial_number',
    'resolve_payload',
    'QRScanEvent',
    'ScanSession',
    'ScanSessionBusy',
    'ScanState',
    'TorchStatus',
]
