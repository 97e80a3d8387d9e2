"""
Tree data-entry form binding.

Collects the fields of a planting record, takes the serial number from a scan
session or typed input, and submits the validated entry to the CMS.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..api.client import CMSClient
from ..config.config_manager import DEFAULT_EXPECTED_QR_DOMAIN
from ..models import TreeEntry
from ..qr.extractor import extract_serial_number

logger = logging.getLogger(__name__)

FORM_FIELDS = (
    'serial_number',
    'planting_date',
    'planted_by',
    'location_name',
    'google_map_location',
    'tree_status',
    'city',
    'tree_type',
    'notes',
    'tree_photo',
    'planter_photo',
)


class FormValidationError(Exception):
    """Raised when the draft cannot be submitted"""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


class TreeEntryBinder:
    """Draft of a tree entry bound to scan results."""

    def __init__(self, expected_domain: str = DEFAULT_EXPECTED_QR_DOMAIN):
        self.expected_domain = expected_domain
        self._draft: Dict[str, Any] = {}

    @property
    def draft(self) -> Dict[str, Any]:
        return dict(self._draft)

    @property
    def serial_number(self) -> str:
        return self._draft.get('serial_number', '')

    def bind_serial(self, serial: str) -> None:
        """Scan session result callback: the serial is already resolved."""
        self._draft['serial_number'] = serial
        logger.debug(f"Serial number bound from scan: {serial}")

    def set_manual_serial(self, text: str) -> str:
        """Resolve a typed or pasted code the same way a scanned one is."""
        serial = extract_serial_number(text, self.expected_domain)
        self._draft['serial_number'] = serial
        return serial

    def set(self, field: str, value: Any) -> None:
        if field not in FORM_FIELDS:
            raise KeyError(f"Unknown form field: {field}")
        self._draft[field] = value

    def update(self, values: Dict[str, Any]) -> None:
        for field, value in values.items():
            self.set(field, value)

    def reset(self) -> None:
        self._draft = {}

    def validate(self) -> TreeEntry:
        """Build the validated entry from the draft."""
        try:
            return TreeEntry.model_validate(self._draft)
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
            raise FormValidationError(errors) from e

    def submit(self, client: CMSClient) -> Dict[str, Any]:
        """
        Validate the draft and create the tree in the CMS.

        Photos are uploaded before the entry is created. The draft is cleared
        only after the CMS accepted the entry.

        Raises:
            FormValidationError: required fields missing or invalid
            CMSError: the CMS rejected an upload or the entry
        """
        entry = self.validate()

        logger.info(f"Submitting tree entry for serial {entry.serial_number}")
        result = client.create_tree(
            entry.to_cms_data(),
            tree_photo=entry.tree_photo,
            planter_photo=entry.planter_photo
        )

        self.reset()
        return result

    def missing_fields(self) -> List[str]:
        required = [field for field in FORM_FIELDS if field != 'planter_photo']
        return [field for field in required if not self._draft.get(field)]

    def get_status(self) -> Dict[str, Optional[Any]]:
        return {
            "serial_number": self.serial_number or None,
            "missing_fields": self.missing_fields(),
        }
