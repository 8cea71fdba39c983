"""Tests for JiraClient and the paginated issue fetch."""

import pytest
from unittest.mock import Mock, patch
import requests
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from conftest import make_issue
from services.jira_client import ISSUE_FIELDS, PAGE_SIZE, JiraClient


def _page(start, count, total):
    issues = [make_issue(f"PROJ-{start + i}") for i in range(count)]
    return {"issues": issues, "total": total, "startAt": start, "maxResults": PAGE_SIZE}


@pytest.fixture
def jira_client(mock_jira_credentials):
    return JiraClient(**mock_jira_credentials)


class TestJiraClientInit:
    """Test client initialization."""

    def test_init_strips_trailing_slash(self):
        client = JiraClient(
            base_url="https://test.atlassian.net/rest/api/3/",
            email="test@example.com",
            token="token123"
        )
        assert client.base_url == "https://test.atlassian.net/rest/api/3"

    def test_init_stores_credentials(self, mock_jira_credentials):
        client = JiraClient(**mock_jira_credentials)
        assert client.email == mock_jira_credentials["email"]
        assert client.token == mock_jira_credentials["token"]


class TestRequest:
    """Test the authenticated request helper."""

    @patch("services.jira_client.requests.get")
    def test_uses_basic_auth_and_json(self, mock_get, jira_client):
        mock_get.return_value = Mock(json=lambda: [{"id": "1", "key": "PROJ", "name": "P"}])

        projects = jira_client.get_projects()

        assert projects[0]["key"] == "PROJ"
        mock_get.assert_called_once_with(
            "https://test.atlassian.net/rest/api/3/project",
            auth=("test@example.com", "test-token-123"),
            headers={"Accept": "application/json"},
            params=None,
            timeout=30
        )

    @patch("services.jira_client.requests.get")
    def test_raises_on_http_error(self, mock_get, jira_client):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("401 Unauthorized")
        mock_get.return_value = response

        with pytest.raises(requests.exceptions.HTTPError):
            jira_client.get_projects()

    @patch("services.jira_client.requests.get")
    def test_search_page_params(self, mock_get, jira_client):
        mock_get.return_value = Mock(json=lambda: _page(0, 0, 0))

        jira_client.search_page('project = "PROJ"', ["status", "created"], 200)

        _, kwargs = mock_get.call_args
        assert kwargs["params"] == {
            "jql": 'project = "PROJ"',
            "fields": "status,created",
            "startAt": 200,
            "maxResults": 100
        }


class TestFetchAllIssues:
    """Test paginated retrieval of a project's issues."""

    def test_rejects_empty_project_key(self, jira_client):
        with pytest.raises(ValueError):
            jira_client.fetch_all_issues("")

    def test_builds_project_query(self, jira_client):
        with patch.object(jira_client, "search_page", return_value=_page(0, 3, 3)) as mock_page:
            issues = jira_client.fetch_all_issues("PROJ")

        assert len(issues) == 3
        mock_page.assert_called_once_with('project = "PROJ"', ISSUE_FIELDS, 0)

    def test_fetches_every_page(self, jira_client):
        pages = [_page(0, 100, 250), _page(100, 100, 250), _page(200, 50, 250)]

        with patch.object(jira_client, "search_page", side_effect=pages) as mock_page:
            issues = jira_client.fetch_all_issues("PROJ")

        assert len(issues) == 250
        assert [c.args[2] for c in mock_page.call_args_list] == [0, 100, 200]
        # Upstream order is preserved
        assert issues[0]["key"] == "PROJ-0"
        assert issues[-1]["key"] == "PROJ-249"

    def test_stops_when_total_reached(self, jira_client):
        pages = [_page(0, 100, 200), _page(100, 100, 200)]

        with patch.object(jira_client, "search_page", side_effect=pages) as mock_page:
            issues = jira_client.fetch_all_issues("PROJ")

        assert len(issues) == 200
        assert mock_page.call_count == 2

    def test_stops_on_short_page(self, jira_client):
        with patch.object(jira_client, "search_page", return_value=_page(0, 30, 500)) as mock_page:
            issues = jira_client.fetch_all_issues("PROJ")

        assert len(issues) == 30
        assert mock_page.call_count == 1

    def test_returns_partial_results_on_page_failure(self, jira_client):
        """A failed page ends pagination without raising."""
        side_effect = [_page(0, 100, 300), requests.exceptions.ConnectionError("connection reset")]

        with patch.object(jira_client, "search_page", side_effect=side_effect) as mock_page:
            issues = jira_client.fetch_all_issues("PROJ")

        assert len(issues) == 100
        assert mock_page.call_count == 2

    def test_first_page_failure_returns_empty(self, jira_client):
        with patch.object(jira_client, "search_page",
                          side_effect=requests.exceptions.HTTPError("500 Server Error")):
            assert jira_client.fetch_all_issues("PROJ") == []

    @patch("services.jira_client.requests.get")
    def test_http_error_mid_stream_is_tolerated(self, mock_get, jira_client):
        failing = Mock()
        failing.raise_for_status.side_effect = requests.exceptions.HTTPError("503")
        first = _page(0, 100, 300)
        mock_get.side_effect = [Mock(json=lambda: first), failing]

        issues = jira_client.fetch_all_issues("PROJ")

        assert len(issues) == 100

    def test_malformed_page_treated_as_empty(self, jira_client):
        with patch.object(jira_client, "search_page", return_value={}) as mock_page:
            assert jira_client.fetch_all_issues("PROJ") == []
        assert mock_page.call_count == 1

    def test_logs_page_failure(self, jira_client, caplog):
        side_effect = [_page(0, 100, 300), requests.exceptions.Timeout("read timeout")]

        with patch.object(jira_client, "search_page", side_effect=side_effect):
            with caplog.at_level("WARNING", logger="services.jira_client"):
                jira_client.fetch_all_issues("PROJ")

        assert "startAt=100" in caplog.text
        assert "read timeout" in caplog.text


class TestSearchAllStrict:
    """Test strict searches used for global counts."""

    def test_strict_reraises(self, jira_client):
        side_effect = [_page(0, 100, 300), requests.exceptions.ConnectionError("boom")]

        with patch.object(jira_client, "search_page", side_effect=side_effect):
            with pytest.raises(requests.exceptions.ConnectionError):
                jira_client.search_all("project is not EMPTY", ["status"], strict=True)
