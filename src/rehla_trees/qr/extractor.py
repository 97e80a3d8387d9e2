"""
Serial number extraction for scanned tree QR codes.

Tree labels encode a URL such as https://rehla-trees-planting.com/00001 whose
last path segment is the tree's serial number. Older labels and hand-typed
codes carry the bare serial. Both resolve to the same canonical string.
"""

import time
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import urlsplit

from ..config.config_manager import DEFAULT_EXPECTED_QR_DOMAIN

logger = logging.getLogger(__name__)


@dataclass
class DomainAdvisory:
    """A QR payload pointed at a host other than the expected domain."""
    host: str
    expected_domain: str
    payload: str
    timestamp: float = 0.0


@dataclass
class SerialResolution:
    """Result of resolving a raw QR payload."""
    payload: str
    serial: str
    is_url: bool = False
    host: Optional[str] = None
    domain_mismatch: bool = False
    processing_time: float = 0.0


def _path_segments(path: str) -> List[str]:
    return [segment for segment in path.split('/') if segment]


def resolve_payload(payload: str, expected_domain: str = DEFAULT_EXPECTED_QR_DOMAIN) -> SerialResolution:
    """
    Resolve a raw QR payload to a serial number.

    Payloads that are not absolute URLs (no scheme or no host) are returned
    unchanged. For URLs the serial is the last non-empty path segment, falling
    back to the whole payload when the path is empty.

    Args:
        payload: Decoded QR text
        expected_domain: Host the tree labels are printed for

    Returns:
        Resolution result; never raises
    """
    start_time = time.time()
    result = SerialResolution(payload=payload, serial=payload)

    if not payload:
        return result

    try:
        parts = urlsplit(payload)
        host = parts.hostname
    except ValueError:
        # Malformed netloc such as an unbalanced IPv6 bracket
        logger.debug(f"QR payload is not a URL, using as-is: {payload!r}")
        result.processing_time = time.time() - start_time
        return result

    if not parts.scheme or not host:
        logger.debug(f"QR payload is not a URL, using as-is: {payload!r}")
        result.processing_time = time.time() - start_time
        return result

    result.is_url = True
    result.host = host
    result.domain_mismatch = host != (expected_domain or '').lower()

    segments = _path_segments(parts.path)
    if segments:
        result.serial = segments[-1]

    result.processing_time = time.time() - start_time
    return result


def extract_serial_number(payload: str,
                          expected_domain: str = DEFAULT_EXPECTED_QR_DOMAIN,
                          on_advisory: Optional[Callable[[DomainAdvisory], None]] = None) -> str:
    """
    Map scanned QR text to the tree serial number.

    A host mismatch is reported as a warning and through ``on_advisory`` but
    does not change the returned serial.
    """
    result = resolve_payload(payload, expected_domain)

    if result.domain_mismatch:
        logger.warning(
            f"QR code scanned from unexpected domain: {result.host}. Expected: {expected_domain}"
        )
        if on_advisory:
            advisory = DomainAdvisory(
                host=result.host or '',
                expected_domain=expected_domain,
                payload=payload,
                timestamp=time.time()
            )
            try:
                on_advisory(advisory)
            except Exception as e:
                logger.error(f"Error in domain advisory callback: {e}")

    if result.is_url:
        logger.debug(f"QR URL {payload!r} -> serial {result.serial!r}")

    return result.serial
