"""
Tests for the Supabase REST client retry behaviour.
"""
from unittest.mock import Mock, patch

import pytest
import requests

from app.services import supabase_client
from app.services.supabase_client import (
    SupabaseConfigError,
    SupabaseConnectionError,
    SupabaseError,
    SupabaseResponseError,
    SupabaseTimeoutError,
    in_filter,
    select_rows,
    supabase_request,
)


@pytest.fixture(autouse=True)
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co/")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service")
    monkeypatch.setenv("SUPABASE_MAX_RETRIES", "2")
    monkeypatch.setenv("SUPABASE_INITIAL_BACKOFF", "0.5")


def _response(status_code, body=None):
    response = Mock()
    response.status_code = status_code
    response.text = str(body)
    response.json.return_value = body
    return response


class TestSupabaseRequest:
    """Tests for supabase_request."""

    @patch.object(supabase_client.time, "sleep")
    @patch.object(supabase_client.requests, "request")
    def test_success_on_first_attempt(self, mock_request, mock_sleep):
        mock_request.return_value = _response(200, [])

        response = supabase_request("get", "/rest/v1/courses", params={"select": "*"})

        assert response.status_code == 200
        kwargs = mock_request.call_args.kwargs
        assert kwargs["method"] == "GET"
        assert kwargs["url"] == "https://example.supabase.co/rest/v1/courses"
        assert kwargs["headers"]["apikey"] == "anon"
        assert kwargs["headers"]["Authorization"] == "Bearer service"
        mock_sleep.assert_not_called()

    @patch.object(supabase_client.time, "sleep")
    @patch.object(supabase_client.requests, "request")
    def test_retries_server_errors_with_backoff(self, mock_request, mock_sleep):
        mock_request.side_effect = [_response(503), _response(502), _response(200, [])]

        response = supabase_request("GET", "/rest/v1/courses")

        assert response.status_code == 200
        assert mock_request.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]

    @patch.object(supabase_client.time, "sleep")
    @patch.object(supabase_client.requests, "request")
    def test_server_error_after_retries(self, mock_request, mock_sleep):
        mock_request.return_value = _response(500)

        with pytest.raises(SupabaseResponseError) as exc_info:
            supabase_request("GET", "/rest/v1/courses")

        assert exc_info.value.status_code == 500
        assert mock_request.call_count == 3

    @patch.object(supabase_client.time, "sleep")
    @patch.object(supabase_client.requests, "request")
    def test_client_error_is_not_retried(self, mock_request, mock_sleep):
        mock_request.return_value = _response(404)

        with pytest.raises(SupabaseResponseError):
            supabase_request("GET", "/rest/v1/courses")

        assert mock_request.call_count == 1

    @patch.object(supabase_client.time, "sleep")
    @patch.object(supabase_client.requests, "request")
    def test_connection_error_after_retries(self, mock_request, mock_sleep):
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(SupabaseConnectionError):
            supabase_request("GET", "/rest/v1/courses")

        assert mock_request.call_count == 3

    @patch.object(supabase_client.time, "sleep")
    @patch.object(supabase_client.requests, "request")
    def test_timeout_after_retries(self, mock_request, mock_sleep):
        mock_request.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(SupabaseTimeoutError):
            supabase_request("GET", "/rest/v1/courses")

    def test_missing_configuration(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL")

        with pytest.raises(SupabaseConfigError):
            supabase_request("GET", "/rest/v1/courses")


class TestSelectRows:
    """Tests for select_rows and filters."""

    @patch.object(supabase_client.requests, "request")
    def test_select_rows_passes_filters(self, mock_request):
        mock_request.return_value = _response(200, [{"id": "CS1110"}])

        rows = select_rows("courses", {"id": "eq.CS1110"}, columns="id,document")

        assert rows == [{"id": "CS1110"}]
        assert mock_request.call_args.kwargs["params"] == {"select": "id,document", "id": "eq.CS1110"}

    @patch.object(supabase_client.requests, "request")
    def test_select_rows_rejects_non_list(self, mock_request):
        mock_request.return_value = _response(200, {"message": "oops"})

        with pytest.raises(SupabaseError):
            select_rows("courses", {})

    def test_in_filter_quotes_ids(self):
        assert in_filter(["CS1110", "MATH1910"]) == 'in.("CS1110","MATH1910")'
