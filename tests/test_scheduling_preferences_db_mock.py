"""Tests for scheduling preference and calendar integration storage with mocked Supabase."""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest

from optigence.db.calendar_integrations import get_integration
from optigence.db.scheduling_preferences import (
    PreferenceStoreError,
    get_scheduling_preferences,
    upsert_scheduling_preferences,
)


@pytest.fixture
def mock_supabase():
    """Mock Supabase client."""
    with patch("optigence.db.scheduling_preferences.get_supabase") as mock:
        yield mock.return_value


class TestGetSchedulingPreferences:
    def test_returns_row(self, mock_supabase):
        user_id = uuid4()
        row = {"user_id": str(user_id), "timezone": "UTC"}
        mock_response = MagicMock()
        mock_response.data = [row]
        (
            mock_supabase.table.return_value.select.return_value.eq.return_value
            .limit.return_value.execute.return_value
        ) = mock_response

        result = get_scheduling_preferences(user_id)

        assert result == row
        mock_supabase.table.assert_called_once_with("scheduling_preferences")
        mock_supabase.table.return_value.select.return_value.eq.assert_called_once_with(
            "user_id", str(user_id)
        )

    def test_missing_row_is_none(self, mock_supabase):
        mock_response = MagicMock()
        mock_response.data = []
        (
            mock_supabase.table.return_value.select.return_value.eq.return_value
            .limit.return_value.execute.return_value
        ) = mock_response

        assert get_scheduling_preferences(uuid4()) is None

    def test_query_failure_raises_store_error(self, mock_supabase):
        (
            mock_supabase.table.return_value.select.return_value.eq.return_value
            .limit.return_value.execute.side_effect
        ) = Exception("connection reset")

        with pytest.raises(PreferenceStoreError, match="connection reset"):
            get_scheduling_preferences(uuid4())


class TestUpsertSchedulingPreferences:
    def test_upsert_on_user_id(self, mock_supabase):
        user_id = uuid4()
        prefs = {"timezone": "Europe/Paris", "blocked_times": []}
        mock_response = MagicMock()
        mock_response.data = [{"user_id": str(user_id), **prefs}]
        mock_supabase.table.return_value.upsert.return_value.execute.return_value = mock_response

        result = upsert_scheduling_preferences(user_id, prefs)

        assert result["timezone"] == "Europe/Paris"
        row, kwargs = (
            mock_supabase.table.return_value.upsert.call_args[0][0],
            mock_supabase.table.return_value.upsert.call_args[1],
        )
        assert row["user_id"] == str(user_id)
        assert "updated_at" in row
        assert kwargs == {"on_conflict": "user_id"}

    def test_empty_response_raises(self, mock_supabase):
        mock_response = MagicMock()
        mock_response.data = []
        mock_supabase.table.return_value.upsert.return_value.execute.return_value = mock_response

        with pytest.raises(PreferenceStoreError):
            upsert_scheduling_preferences(uuid4(), {"timezone": "UTC"})

    def test_write_failure_raises_store_error(self, mock_supabase):
        mock_supabase.table.return_value.upsert.return_value.execute.side_effect = Exception("denied")

        with pytest.raises(PreferenceStoreError):
            upsert_scheduling_preferences(uuid4(), {"timezone": "UTC"})


class TestGetIntegration:
    def test_active_integration(self):
        user_id = uuid4()
        with patch("optigence.db.calendar_integrations.get_supabase") as mock:
            supabase = mock.return_value
            mock_response = MagicMock()
            mock_response.data = [{"user_id": str(user_id), "google_refresh_token": "enc"}]
            (
                supabase.table.return_value.select.return_value.eq.return_value
                .eq.return_value.execute.return_value
            ) = mock_response

            result = get_integration(user_id)

        assert result["google_refresh_token"] == "enc"
        supabase.table.assert_called_once_with("calendar_integration")

    def test_no_integration(self):
        with patch("optigence.db.calendar_integrations.get_supabase") as mock:
            mock_response = MagicMock()
            mock_response.data = []
            (
                mock.return_value.table.return_value.select.return_value.eq.return_value
                .eq.return_value.execute.return_value
            ) = mock_response

            assert get_integration(uuid4()) is None
