"""Unit tests for SupabaseRestClient and ScrapeRun."""

from unittest.mock import Mock, patch

import pytest
import requests

from services.normalizer.parsers import AvailabilityRow
from services.publisher.rest_client import (
    API_TIMEOUT_SECONDS,
    SupabaseRestClient,
    TransportError,
)
from services.publisher.scrape_runs import ScrapeRun


def make_row(date="2026-06-01"):
    return AvailabilityRow(
        hut_id="kemptner-huette",
        date=date,
        available_beds=9,
        status="available",
        confidence="exact",
        source="huettenholiday",
        checked_at="2026-02-09T20:00:00.000Z",
    )


def make_run(status="ok"):
    return ScrapeRun(
        source="huettenholiday",
        run_id="run-1",
        status=status,
        started_at="2026-02-09T20:00:00.000Z",
        finished_at="2026-02-09T20:01:00.000Z",
        metadata={"fileCount": 1},
    )


def ok_response(status_code=201):
    response = Mock()
    response.ok = True
    response.status_code = status_code
    return response


class TestSupabaseRestClient:
    """Test cases for SupabaseRestClient."""

    def test_init_strips_trailing_slash(self):
        client = SupabaseRestClient("https://xyz.supabase.co/", "key")
        assert client.base_url == "https://xyz.supabase.co"

    @pytest.mark.parametrize("base_url,key", [("", "key"), ("https://xyz.supabase.co", "")])
    def test_init_requires_credentials(self, base_url, key):
        with pytest.raises(ValueError):
            SupabaseRestClient(base_url, key)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://xyz.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "env-key")
        client = SupabaseRestClient.from_env()
        assert client.base_url == "https://xyz.supabase.co"
        assert client.service_role_key == "env-key"

    def test_from_env_missing(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "env-key")
        with pytest.raises(ValueError, match="SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set"):
            SupabaseRestClient.from_env()

    @patch("services.publisher.rest_client.requests.post")
    def test_upsert_posts_rows(self, mock_post):
        mock_post.return_value = ok_response()
        client = SupabaseRestClient("https://xyz.supabase.co", "secret")

        client.upsert([make_row("2026-06-01"), make_row("2026-06-02")])

        mock_post.assert_called_once()
        call_args = mock_post.call_args
        assert call_args[0][0] == (
            "https://xyz.supabase.co/rest/v1/availability_daily?on_conflict=hut_id,date"
        )
        headers = call_args[1]["headers"]
        assert headers["apikey"] == "secret"
        assert headers["Authorization"] == "Bearer secret"
        assert headers["Content-Type"] == "application/json"
        assert headers["Prefer"] == "resolution=merge-duplicates,return=minimal"
        assert call_args[1]["timeout"] == API_TIMEOUT_SECONDS

        body = call_args[1]["json"]
        assert [record["date"] for record in body] == ["2026-06-01", "2026-06-02"]
        assert body[0]["hut_id"] == "kemptner-huette"
        assert body[0]["available_beds"] == 9

    @patch("services.publisher.rest_client.requests.post")
    def test_upsert_empty_batch_makes_no_request(self, mock_post):
        SupabaseRestClient("https://xyz.supabase.co", "secret").upsert([])
        mock_post.assert_not_called()

    @patch("services.publisher.rest_client.requests.post")
    def test_record_run_posts_single_record(self, mock_post):
        mock_post.return_value = ok_response()
        client = SupabaseRestClient("https://xyz.supabase.co", "secret")

        client.record_run(make_run())

        call_args = mock_post.call_args
        assert call_args[0][0] == "https://xyz.supabase.co/rest/v1/scrape_runs?on_conflict=source,run_id"
        assert call_args[1]["json"] == [{
            "source": "huettenholiday",
            "run_id": "run-1",
            "status": "ok",
            "started_at": "2026-02-09T20:00:00.000Z",
            "finished_at": "2026-02-09T20:01:00.000Z",
            "error_summary": None,
            "metadata": {"fileCount": 1},
        }]

    @patch("services.publisher.rest_client.requests.post")
    def test_error_status_raises_transport_error(self, mock_post):
        response = Mock()
        response.ok = False
        response.status_code = 409
        response.reason = "Conflict"
        response.text = "duplicate key"
        mock_post.return_value = response
        client = SupabaseRestClient("https://xyz.supabase.co", "secret")

        with pytest.raises(TransportError, match="409 Conflict: duplicate key"):
            client.upsert([make_row()])

    @patch("services.publisher.rest_client.requests.post")
    def test_network_error_raises_transport_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("Connection failed")
        client = SupabaseRestClient("https://xyz.supabase.co", "secret")

        with pytest.raises(TransportError, match="Connection failed"):
            client.record_run(make_run())

        # No retries
        assert mock_post.call_count == 1


class TestScrapeRun:
    """Test cases for ScrapeRun."""

    def test_invalid_status(self):
        with pytest.raises(ValueError, match="Invalid run status"):
            make_run(status="done")

    @pytest.mark.parametrize("status", ["ok", "partial", "failed"])
    def test_valid_statuses(self, status):
        assert make_run(status=status).to_record()["status"] == status
