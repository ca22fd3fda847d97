"""
HTTP client for the reconciliation API.

Handles HTTP communication with retry logic and error handling for:
- /users: Register a user
- /clients: Log in and obtain a client session key
- /file-actions: Push a batch of file actions
- /file-actions/preview: Preview the files a batch leaves behind
- /files: List the current file index
"""

from typing import Dict, Any, Iterable, List, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
import logging

from ..models.data_models import File, FileAction
from ..services.action_codec import dump_file_action

SESSION_KEY_HEADER = "X-Session-Key"


class SyncAPIError(Exception):
    """Custom exception for sync API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class SyncAPI:
    """
    HTTP client for the reconciliation service endpoints.

    Provides methods for all API endpoints with error handling and retry
    logic. Only idempotent requests are retried; a pushed batch is sent once.
    """

    def __init__(self, base_url: str, timeout: int = 30, max_retries: int = 3):
        """
        Initialize sync API client with base URL and configuration.

        Args:
            base_url: Base URL for the reconciliation API server
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.logger = logging.getLogger(__name__)

        # Configure session with retry strategy
        self.session = requests.Session()

        retry_strategy = Retry(
            total=max_retries,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"],
            backoff_factor=1
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _make_request(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        """
        Make HTTP request with error handling and logging.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for requests

        Returns:
            Response object

        Raises:
            SyncAPIError: If request fails after retries
        """
        url = f"{self.base_url}{endpoint}"

        try:
            self.logger.debug(f"Making {method} request to {url}")
            response = self.session.request(
                method=method,
                url=url,
                timeout=self.timeout,
                **kwargs
            )

            self.logger.debug(f"Response status: {response.status_code}")

            response.raise_for_status()

            return response

        except requests.exceptions.HTTPError as e:
            if e.response is None:
                raise SyncAPIError(f"Sync API request failed: {method} {url} - {str(e)}") from e
            detail = self._error_detail(e.response)
            error_msg = f"Sync API request failed: {method} {url} - {detail}"
            self.logger.error(error_msg)
            raise SyncAPIError(error_msg, status_code=e.response.status_code) from e

        except requests.exceptions.RequestException as e:
            error_msg = f"Sync API request failed: {method} {url} - {str(e)}"
            self.logger.error(error_msg)
            raise SyncAPIError(error_msg) from e

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            return str(response.json().get("detail", response.text))
        except ValueError:
            return response.text or f"HTTP {response.status_code}"

    def _session_headers(self, session_key: str) -> Dict[str, str]:
        if not session_key:
            raise ValueError("session_key cannot be empty")
        return {SESSION_KEY_HEADER: session_key}

    def register_user(self, email: str, password: str) -> Dict[str, Any]:
        """
        Register a new user.

        Returns:
            Dictionary with the new user's id and email

        Raises:
            SyncAPIError: If the API call fails
        """
        self.logger.info(f"Registering user: {email}")
        response = self._make_request(
            method="POST",
            endpoint="/users",
            json={"email": email, "password": password}
        )
        return response.json()

    def create_client(self, email: str, password: str) -> Dict[str, Any]:
        """
        Log in and open a new client session.

        Returns:
            Dictionary with client_id, user_id and session_key

        Raises:
            SyncAPIError: If the credentials are rejected or the call fails
        """
        self.logger.info(f"Creating client session for: {email}")
        response = self._make_request(
            method="POST",
            endpoint="/clients",
            json={"email": email, "password": password}
        )
        return response.json()

    def push_file_actions(self, session_key: str, file_actions: Iterable[FileAction]) -> Dict[str, Any]:
        """
        Push a batch of file actions for reconciliation.

        Args:
            session_key: Client session key
            file_actions: Actions in the order they were observed

        Returns:
            Dictionary containing the server's batch statistics

        Raises:
            SyncAPIError: If the batch is rejected or the call fails
        """
        payloads = [dump_file_action(action) for action in file_actions]
        self.logger.info(f"Pushing {len(payloads)} file actions")

        response = self._make_request(
            method="POST",
            endpoint="/file-actions",
            json={"file_actions": payloads},
            headers=self._session_headers(session_key)
        )

        results = response.json()
        self.logger.info(f"Batch accepted: {results}")
        return results

    def preview_file_actions(self, session_key: str, file_actions: Iterable[FileAction]) -> List[File]:
        """Ask the server which files a batch would leave behind."""
        payloads = [dump_file_action(action) for action in file_actions]
        response = self._make_request(
            method="POST",
            endpoint="/file-actions/preview",
            json={"file_actions": payloads},
            headers=self._session_headers(session_key)
        )
        return [File.from_dict(data) for data in response.json().get("files", [])]

    def list_files(self, session_key: str) -> List[File]:
        """
        Get the current file index of the session's owner.

        Raises:
            SyncAPIError: If the API call fails
        """
        response = self._make_request(
            method="GET",
            endpoint="/files",
            headers=self._session_headers(session_key)
        )
        files = [File.from_dict(data) for data in response.json().get("files", [])]
        self.logger.info(f"Retrieved {len(files)} files")
        return files

    def health_check(self) -> bool:
        """
        Check if the API server is healthy and reachable.

        Returns:
            True if server is healthy, False otherwise
        """
        try:
            response = self._make_request(method="GET", endpoint="/")
            return response.status_code == 200
        except SyncAPIError as e:
            self.logger.warning(f"Sync API health check failed: {str(e)}")
            return False
