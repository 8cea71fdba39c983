"""Shared fixtures for project dashboard tests."""

import pytest
from datetime import datetime, timezone

# Fixed "current time" used by the calculator tests
NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

CATEGORY_NAMES = {
    "new": "To Do",
    "indeterminate": "In Progress",
    "done": "Done",
}

JIRA_TEST_CONFIG = {
    "base_url": "https://test.atlassian.net/rest/api/3",
    "email": "test@example.com",
    "token": "test-token-123"
}


def make_issue(key, category="new", created="2024-05-01T10:00:00.000+0000",
               resolved=None, due=None, priority=None, assignee=None,
               status_name=None, category_name=None):
    """Build a Jira search result issue with the fields the dashboard reads."""
    fields = {
        "status": {
            "name": status_name or CATEGORY_NAMES.get(category, "To Do"),
            "statusCategory": {
                "key": category,
                "name": category_name or CATEGORY_NAMES.get(category, "To Do")
            }
        },
        "created": created,
        "resolutiondate": resolved,
        "duedate": due,
        "project": {"id": "10000", "key": key.split("-")[0], "name": "Test Project"}
    }
    if priority:
        fields["priority"] = {"name": priority}
    if assignee:
        fields["assignee"] = {"accountId": assignee, "displayName": assignee.title()}

    return {"id": key.split("-")[-1], "key": key, "fields": fields}


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def mock_jira_credentials():
    """Mock Jira connection settings for testing."""
    return dict(JIRA_TEST_CONFIG)


@pytest.fixture
def sample_project():
    return {"id": "10000", "key": "PROJ", "name": "Project Phoenix"}


@pytest.fixture
def sample_issues():
    """A small project: two done, one in progress (overdue), one to do."""
    return [
        make_issue(
            "PROJ-1", category="done",
            created="2024-05-01T10:00:00.000+0000",
            resolved="2024-05-03T10:00:00.000+0000",
            due="2024-05-10", priority="High", assignee="alice"
        ),
        make_issue(
            "PROJ-2", category="done",
            created="2024-05-02T10:00:00.000+0000",
            resolved="2024-05-06T10:00:00.000+0000",
            due="2024-05-05", priority="Medium", assignee="bob"
        ),
        make_issue(
            "PROJ-3", category="indeterminate",
            created="2024-05-05T10:00:00.000+0000",
            due="2024-05-20", priority="Low", assignee="alice"
        ),
        make_issue(
            "PROJ-4", category="new",
            created="2024-05-06T10:00:00.000+0000",
            due="2024-07-01"
        ),
    ]


@pytest.fixture
def app():
    """Create Flask test app."""
    import sys
    import os
    sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

    from app import create_app
    app = create_app({
        "TESTING": True,
        "JIRA": dict(JIRA_TEST_CONFIG),
        "OVERVIEW_MAX_WORKERS": 2
    })
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()


@pytest.fixture
def unconfigured_client():
    """Test client for an app with no Jira credentials."""
    from app import create_app
    app = create_app({
        "TESTING": True,
        "JIRA": {"base_url": "", "email": "", "token": ""}
    })
    return app.test_client()
