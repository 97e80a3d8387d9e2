"""
Main Application Module

Entry point for the Rehla Trees field client: scan a tree label, resolve its
serial number, and register or look up the tree in the CMS.
"""

import argparse
import getpass
import json
import logging
import os
import signal
import sys
import time
from typing import Any, Dict, Optional

from .api.client import AuthenticationError, CMSClient, CMSError
from .auth.session import AuthSession, FileTokenStorage
from .camera.errors import CameraError
from .camera.opencv_backend import OpenCVCameraBackend
from .config.config_manager import ConfigManager, get_config
from .config.logging_config import setup_logging
from .config.validator import validate_config
from .forms.binder import FormValidationError, TreeEntryBinder
from .models import translate_city, translate_status, translate_tree_type
from .qr.extractor import DomainAdvisory, extract_serial_number
from .qr.scanner import ScanSession


class TreePlantingApp:
    """Main application class for the field client"""

    def __init__(self) -> None:
        self.config: Optional[ConfigManager] = None
        self.logger: Optional[logging.Logger] = None
        self.auth_session: Optional[AuthSession] = None
        self.cms_client: Optional[CMSClient] = None
        self.scan_session: Optional[ScanSession] = None
        self.binder: Optional[TreeEntryBinder] = None
        self.shutdown_requested: bool = False
        self.scanned_serial: Optional[str] = None

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown"""
        def signal_handler(signum, frame):
            _ = signum, frame
            print("Shutdown signal received...")
            self.shutdown_requested = True

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    def load_configuration(self, debug: bool = False) -> None:
        """Load application configuration"""
        if debug:
            os.environ['DEBUG'] = 'true'
            os.environ['LOG_LEVEL'] = 'DEBUG'

        if not validate_config():
            raise RuntimeError("Configuration validation failed")

        self.config = get_config()

    def setup_logging(self) -> None:
        """Setup logging system"""
        if not self.config:
            raise RuntimeError("Configuration not loaded")

        setup_logging({
            "log_level": self.config.log_level,
            "log_file": self.config.log_file,
            "debug": self.config.debug
        })
        self.logger = logging.getLogger(__name__)
        self.logger.info("Logging system initialized")

    def initialize_components(self) -> None:
        """Initialize CMS client, form binder and scan session"""
        if not self.config:
            raise RuntimeError("Configuration not loaded")

        self.auth_session = AuthSession(FileTokenStorage(self.config.session_file))
        self.cms_client = CMSClient(self.config, self.auth_session)
        self.binder = TreeEntryBinder(self.config.expected_qr_domain)

        self.scan_session = ScanSession(
            backend=OpenCVCameraBackend(max_index=self.config.camera_max_index),
            on_result=self._handle_scan_result,
            on_error=self._handle_scan_error,
            expected_domain=self.config.expected_qr_domain,
            on_advisory=self._handle_domain_advisory,
            frame_interval=self.config.scan_frame_interval,
            max_read_failures=self.config.scan_max_read_failures,
            constraint_options={
                'ideal_width': self.config.camera_width,
                'ideal_height': self.config.camera_height,
                'min_width': self.config.camera_min_width,
                'min_height': self.config.camera_min_height,
                'frame_rate': self.config.camera_fps,
            }
        )

        if self.logger:
            self.logger.info("All components initialized")

    def _handle_scan_result(self, serial: str) -> None:
        self.scanned_serial = serial
        if self.binder:
            self.binder.bind_serial(serial)

    def _handle_scan_error(self, error: CameraError) -> None:
        print(f"Scan failed: {error.user_message}")

    def _handle_domain_advisory(self, advisory: DomainAdvisory) -> None:
        if self.logger:
            self.logger.warning(f"Tree label from unexpected host {advisory.host}: {advisory.payload}")

    def list_cameras(self) -> int:
        """Print available cameras, rear-facing first"""
        devices = self.scan_session.list_devices() if self.scan_session else []
        if not devices:
            print("No cameras found.")
            return 0

        for device in devices:
            marker = " (recommended)" if device.is_rear_facing else ""
            print(f"{device.device_id:<16} {device.label}{marker}")
        return 0

    def scan(self, device_id: Optional[str] = None) -> Optional[str]:
        """Scan one QR code and return its serial number"""
        if not self.scan_session:
            raise RuntimeError("Scan session not initialized")

        self.scanned_serial = None
        try:
            self.scan_session.start(device_id or (self.config.camera_device if self.config else None))
        except CameraError as e:
            print(e.user_message)
            return None

        print("Hold the tree QR code inside the camera frame... (Ctrl+C to cancel)")
        try:
            while self.scan_session.is_running and not self.shutdown_requested:
                time.sleep(0.1)
        finally:
            self.scan_session.stop()

        return self.scanned_serial

    def ensure_login(self, identifier: Optional[str]) -> None:
        """Sign in when no stored session exists"""
        if not self.cms_client or not self.auth_session:
            raise RuntimeError("CMS client not initialized")

        if self.auth_session.is_authenticated and not identifier:
            return
        if not identifier:
            raise AuthenticationError("Not signed in. Use --login USERNAME")

        password = os.getenv('CMS_PASSWORD') or getpass.getpass(f"Password for {identifier}: ")
        user = self.cms_client.login(identifier, password)
        print(f"Signed in as {user.username}")

    def submit_entry(self, entry_file: str) -> Dict[str, Any]:
        """Fill the form from a JSON file and submit it"""
        if not self.binder or not self.cms_client:
            raise RuntimeError("Components not initialized")

        with open(entry_file, 'r', encoding='utf-8') as f:
            values = json.load(f)

        scanned = self.binder.serial_number
        self.binder.update(values)
        if scanned:
            # The scanned label wins over a serial typed into the file
            self.binder.bind_serial(scanned)
        elif values.get('serial_number'):
            self.binder.set_manual_serial(values['serial_number'])

        return self.binder.submit(self.cms_client)

    def lookup(self, code: str) -> int:
        """Print the public profile of a tree"""
        if not self.cms_client or not self.config:
            raise RuntimeError("CMS client not initialized")

        serial = extract_serial_number(code, self.config.expected_qr_domain)
        try:
            tree = self.cms_client.find_tree_by_serial(serial)
        except CMSError as e:
            print(f"Failed to look up tree {serial}: {e}")
            return 1
        if tree is None:
            print(f"No tree found for serial number {serial}")
            return 1

        print(f"Serial number : {tree.serial_number}")
        print(f"Location      : {tree.location_name or '-'}")
        print(f"City          : {translate_city(tree.city)}")
        print(f"Tree type     : {translate_tree_type(tree.tree_type)}")
        print(f"Status        : {translate_status(tree.tree_status)}")
        print(f"Planted on    : {tree.planting_date.isoformat() if tree.planting_date else '-'}")
        print(f"Planted by    : {tree.planted_by or '-'}")
        print(f"Map           : {tree.google_map_location or '-'}")
        if tree.tree_photo:
            print(f"Tree photo    : {self.cms_client.media_url(tree.tree_photo.url)}")
        if tree.notes:
            print(f"Notes         : {tree.notes}")
        return 0

    def print_config(self) -> None:
        """Print current environment variables"""
        print("=== Rehla Trees Field Client Configuration ===")
        print()
        print("Environment Variables:")
        print("-" * 40)
        env_vars = [
            'API_URL',
            'API_TIMEOUT',
            'EXPECTED_QR_DOMAIN',
            'SESSION_FILE',
            'CAMERA_DEVICE',
            'CAMERA_WIDTH',
            'CAMERA_HEIGHT',
            'CAMERA_FPS',
            'SCAN_FRAME_INTERVAL',
            'LOG_LEVEL',
            'LOG_FILE',
            'DEBUG',
            'APP_VERSION',
            'CMS_PASSWORD',
        ]

        for var in env_vars:
            value = os.getenv(var, 'NOT SET')
            if 'PASSWORD' in var and value != 'NOT SET':
                value = '*' * 8
            print(f"{var:<20} = {value}")

        print()
        print("=" * 50)

    def shutdown(self) -> None:
        """Clean shutdown"""
        if self.scan_session:
            self.scan_session.stop()

        if self.logger:
            self.logger.info("Shutdown complete")

    def run(self, args: argparse.Namespace) -> int:
        """Run the requested command"""
        try:
            self.setup_signal_handlers()
            self.load_configuration(debug=args.debug)
            self.setup_logging()
            self.initialize_components()

            if args.logout:
                self.cms_client.logout()
                print("Signed out")
                return 0

            if args.extract is not None:
                print(extract_serial_number(args.extract, self.config.expected_qr_domain))
                return 0

            if args.list_cameras:
                return self.list_cameras()

            if args.lookup:
                return self.lookup(args.lookup)

            if args.serial:
                serial = self.binder.set_manual_serial(args.serial)
            else:
                serial = self.scan(args.camera)
                if not serial:
                    return 1
                print(f"Serial number: {serial}")

            if args.entry:
                self.ensure_login(args.login)
                self.submit_entry(args.entry)
                print(f"Tree data submitted for serial number {serial}")

            return 0

        except FormValidationError as e:
            print("Form is incomplete:")
            for error in e.errors:
                print(f"  {error}")
            return 1
        except AuthenticationError as e:
            print(f"Authentication error: {e}")
            return 1
        except CMSError as e:
            print(f"Failed to submit tree data: {e}")
            return 1
        except Exception as e:
            if self.logger:
                self.logger.error(f"Application error: {e}", exc_info=True)
            print(f"Application error: {e}")
            return 1
        finally:
            self.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Rehla Trees field client")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--check-config", action="store_true", help="Print current environment variables")
    parser.add_argument("--list-cameras", action="store_true", help="List available cameras")
    parser.add_argument("--camera", help="Camera device to scan with")
    parser.add_argument("--extract", metavar="PAYLOAD", help="Resolve a QR payload to its serial number")
    parser.add_argument("--lookup", metavar="SERIAL", help="Show the public profile of a tree")
    parser.add_argument("--serial", help="Use this serial number or label URL instead of scanning")
    parser.add_argument("--entry", metavar="FILE", help="JSON file with the tree data to submit")
    parser.add_argument("--login", metavar="USERNAME", help="Sign in to the CMS before submitting")
    parser.add_argument("--logout", action="store_true", help="Forget the stored CMS session")
    return parser


def main() -> int:
    """Main entry point"""
    args = build_parser().parse_args()

    app = TreePlantingApp()

    if args.check_config:
        app.print_config()
        return 0

    return app.run(args)


if __name__ == "__main__":
    sys.exit(main())
