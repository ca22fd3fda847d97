"""
Tests for the SyncAPI HTTP client.

Tests HTTP communication with the server endpoints including
error handling and session headers.
"""

import json
import pytest
import requests
from unittest.mock import Mock, patch
from urllib3.util.retry import Retry
from datetime import datetime

from boxsync.clients.sync_api import SyncAPI, SyncAPIError
from boxsync.models.data_models import File, FileAction


def json_response(data, status_code=200):
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.json.return_value = data
    mock_response.raise_for_status.return_value = None
    return mock_response


def sample_action():
    return FileAction(
        is_create=True,
        file=File(
            path="./client.go",
            hash="f953d35b",
            size=6622,
            modified=datetime(2015, 2, 9, 14, 39, 22),
            name="client.go"
        )
    )


class TestSyncAPI:
    """Test cases for SyncAPI client."""

    def setup_method(self):
        """Set up test fixtures."""
        self.base_url = "http://localhost:8002"
        self.api_client = SyncAPI(self.base_url)

    def test_init(self):
        """Test SyncAPI initialization."""
        assert self.api_client.base_url == self.base_url
        assert self.api_client.timeout == 30
        assert self.api_client.max_retries == 3
        assert self.api_client.session is not None

    def test_init_strips_trailing_slash(self):
        api_client = SyncAPI(base_url="http://example.com/", timeout=60, max_retries=5)
        assert api_client.base_url == "http://example.com"
        assert api_client.timeout == 60
        assert api_client.max_retries == 5

    def test_retry_strategy_skips_post(self):
        """The mounted urllib3 Retry only repeats idempotent requests."""
        retries = self.api_client.session.get_adapter(self.base_url).max_retries

        assert isinstance(retries, Retry)
        assert retries.total == 3
        assert "GET" in retries.allowed_methods
        assert "POST" not in retries.allowed_methods

    @patch('boxsync.clients.sync_api.requests.Session.request')
    def test_push_file_actions(self, mock_request):
        """Pushed actions are encoded in the client wire format with the session header."""
        mock_request.return_value = json_response({"success": True, "files_created": 1})

        result = self.api_client.push_file_actions("key123", [sample_action()])

        call_kwargs = mock_request.call_args[1]
        assert call_kwargs['method'] == 'POST'
        assert call_kwargs['url'] == f"{self.base_url}/file-actions"
        assert call_kwargs['headers'] == {"X-Session-Key": "key123"}

        payloads = call_kwargs['json']['file_actions']
        assert len(payloads) == 1
        decoded = json.loads(payloads[0])
        assert decoded["IsCreate"] is True
        assert decoded["File"]["Path"] == "./client.go"

        assert result["files_created"] == 1

    def test_push_requires_session_key(self):
        with pytest.raises(ValueError, match="session_key cannot be empty"):
            self.api_client.push_file_actions("", [sample_action()])

    @patch('boxsync.clients.sync_api.requests.Session.request')
    def test_list_files(self, mock_request):
        mock_request.return_value = json_response({"files": [{
            "path": "a.txt",
            "name": "a.txt",
            "hash": "abc",
            "size": 3,
            "modified": "2015-02-09T14:39:22",
            "user_id": 1,
            "id": 4,
            "created_at": None
        }], "total_count": 1})

        files = self.api_client.list_files("key123")

        assert mock_request.call_args[1]['method'] == 'GET'
        assert len(files) == 1
        assert files[0].path == "a.txt"
        assert files[0].modified == datetime(2015, 2, 9, 14, 39, 22)

    @patch('boxsync.clients.sync_api.requests.Session.request')
    def test_register_and_login(self, mock_request):
        mock_request.side_effect = [
            json_response({"id": 1, "email": "me@example.com"}, 201),
            json_response({"client_id": 2, "user_id": 1, "session_key": "k" * 64}, 201),
        ]

        assert self.api_client.register_user("me@example.com", "pw")["id"] == 1
        assert self.api_client.create_client("me@example.com", "pw")["session_key"] == "k" * 64
        assert mock_request.call_args[1]['url'] == f"{self.base_url}/clients"

    @patch('boxsync.clients.sync_api.requests.Session.request')
    def test_http_error_carries_detail(self, mock_request):
        """Server rejections become SyncAPIError with the status code and detail."""
        error_response = Mock()
        error_response.status_code = 409
        error_response.json.return_value = {"detail": "File already exists at path: a.txt"}
        error_response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=error_response)
        mock_request.return_value = error_response

        with pytest.raises(SyncAPIError, match="already exists") as exc_info:
            self.api_client.push_file_actions("key123", [sample_action()])

        assert exc_info.value.status_code == 409

    @patch('boxsync.clients.sync_api.requests.Session.request')
    def test_connection_error(self, mock_request):
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(SyncAPIError) as exc_info:
            self.api_client.list_files("key123")

        assert exc_info.value.status_code is None

    @patch('boxsync.clients.sync_api.requests.Session.request')
    def test_health_check(self, mock_request):
        mock_request.return_value = json_response({"message": "ok"})
        assert self.api_client.health_check() is True

        mock_request.side_effect = requests.exceptions.ConnectionError("refused")
        assert self.api_client.health_check() is False
