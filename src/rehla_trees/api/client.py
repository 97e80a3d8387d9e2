"""
CMS API client for tree records, media uploads and authentication
"""

import json
import logging
import mimetypes
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from ..auth.session import AuthSession
from ..models import TreeRecord, User

logger = logging.getLogger(__name__)

AUTH_LOGIN_ENDPOINT = '/api/auth/local'
UPLOAD_ENDPOINT = '/api/upload'
TREES_ENDPOINT = '/api/trees'


class CMSError(Exception):
    """Error response from the CMS"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(CMSError):
    """Missing, invalid or expired credentials"""
    pass


def unwrap_response(payload: Any) -> Any:
    """Strip the CMS ``{"data": ...}`` envelope when present."""
    if isinstance(payload, dict) and 'data' in payload:
        return payload['data']
    return payload


class CMSClient:
    """Client for the tree CMS REST API."""

    def __init__(self, config_manager, session: Optional[AuthSession] = None):
        self.config = config_manager
        self.session = session if session is not None else AuthSession()

        self.base_url = self.config.api_url
        if not self.base_url:
            raise ValueError("API_URL configuration is required")

        self.timeout = self.config.api_timeout

        logger.info(f"CMS client initialized for {self.base_url}")

    def _error_message(self, response: requests.Response) -> str:
        try:
            error_data = response.json()
            message = error_data.get('error', {}).get('message')
        except (ValueError, AttributeError):
            message = None
        return message or f"HTTP {response.status_code}"

    def _make_request(self, method: str, endpoint: str,
                      data: Optional[Dict[str, Any]] = None,
                      params: Optional[Dict[str, Any]] = None,
                      files: Optional[Dict[str, Any]] = None,
                      authenticated: bool = True,
                      public: bool = False) -> Any:
        """
        Make API request and return the decoded JSON body.

        Public requests never carry the stored token.
        """
        url = f"{self.base_url}{endpoint}"
        headers = {}

        # Multipart uploads set their own content type
        if files is None:
            headers['Content-Type'] = 'application/json'

        token = None if public else self.session.token
        if token:
            headers['Authorization'] = f"Bearer {token}"
        elif authenticated:
            self.session.clear()
            raise AuthenticationError("Authentication required")

        try:
            response = requests.request(
                method,
                url,
                headers=headers,
                data=json.dumps(data) if data is not None else None,
                params=params,
                files=files,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            logger.error(f"API request timeout: {method} {endpoint}")
            raise
        except requests.exceptions.RequestException as e:
            logger.error(f"API request failed: {method} {endpoint} - {e}")
            raise

        if response.status_code == 401 and authenticated:
            self.session.clear()
            raise AuthenticationError("Authentication expired", status_code=401)

        if not response.ok:
            message = self._error_message(response)
            logger.error(f"API error: {method} {endpoint} - {response.status_code} {message}")
            raise CMSError(message, status_code=response.status_code)

        return response.json()

    def login(self, identifier: str, password: str) -> User:
        """Sign in and store the issued JWT in the session."""
        response = self._make_request(
            'POST',
            AUTH_LOGIN_ENDPOINT,
            data={"identifier": identifier, "password": password},
            authenticated=False
        )
        user = User.model_validate(response['user'])
        self.session.store(response['jwt'], user)
        return user

    def logout(self) -> None:
        self.session.clear()

    def upload_file(self, file_path: Union[str, Path]) -> int:
        """
        Upload a single file to the media library.

        Returns:
            ID of the uploaded file
        """
        path = Path(file_path)
        mime_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
        logger.debug(f"Uploading file: {path.name} ({path.stat().st_size} bytes, {mime_type})")

        with open(path, 'rb') as f:
            uploaded = self._make_request(
                'POST',
                UPLOAD_ENDPOINT,
                files={'files': (path.name, f, mime_type)}
            )

        if not uploaded:
            raise CMSError(f"Upload of {path.name} returned no files")

        file_id = uploaded[0]['id']
        logger.info(f"File uploaded: {path.name} -> {file_id}")
        return file_id

    def create_tree(self, tree_data: Dict[str, Any],
                    tree_photo: Optional[Union[str, Path]] = None,
                    planter_photo: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Create a tree entry, uploading its photos first.

        The CMS links the entry to the authenticated user from the JWT.
        """
        entry = dict(tree_data)

        if tree_photo:
            entry['tree_photo'] = self.upload_file(tree_photo)
        if planter_photo:
            entry['planter_photo'] = self.upload_file(planter_photo)

        logger.debug(f"Creating tree entry: {entry}")
        result = unwrap_response(self._make_request('POST', TREES_ENDPOINT, data={"data": entry}))
        logger.info(f"Tree entry created for serial {entry.get('serial_number')}")
        return result

    def get_trees(self) -> List[Dict[str, Any]]:
        return unwrap_response(self._make_request('GET', TREES_ENDPOINT))

    def get_tree(self, tree_id: Union[int, str]) -> Dict[str, Any]:
        return unwrap_response(self._make_request('GET', f"{TREES_ENDPOINT}/{tree_id}"))

    def find_tree_by_serial(self, serial: str) -> Optional[TreeRecord]:
        """Public lookup of a tree by serial number. Returns None when no tree matches."""
        response = self._make_request(
            'GET',
            TREES_ENDPOINT,
            params={'filters[serial_number][$eq]': serial, 'populate': '*'},
            authenticated=False,
            public=True
        )
        trees = response.get('data') or []
        if not trees:
            logger.info(f"No tree found for serial {serial}")
            return None
        return TreeRecord.model_validate(trees[0])

    def media_url(self, url: str) -> str:
        """Absolute URL for a CMS media path."""
        if not url:
            return ''
        return url if url.startswith('http') else f"{self.base_url}{url}"
