"""Jira REST client used by the project dashboard."""

from typing import Optional
import logging
import requests

logger = logging.getLogger(__name__)

PAGE_SIZE = 100

ISSUE_FIELDS = [
    "status", "priority", "assignee", "created",
    "resolutiondate", "duedate", "project"
]


class JiraClient:
    """Thin wrapper around the Jira REST API (v3).

    ``base_url`` already carries the REST prefix, e.g.
    ``https://example.atlassian.net/rest/api/3``.
    """

    def __init__(self, base_url: str, email: str, token: str, timeout: int = 30):
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.token = token
        self.timeout = timeout

    def _request(self, endpoint: str, params: Optional[dict] = None):
        """Make authenticated request to Jira API."""
        response = requests.get(
            f"{self.base_url}{endpoint}",
            auth=(self.email, self.token),
            headers={"Accept": "application/json"},
            params=params,
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def get_projects(self) -> list:
        """List all projects visible to the configured account."""
        return self._request("/project")

    def search_projects(self) -> dict:
        """Project search including per-project issue insight."""
        return self._request(
            "/project/search",
            params={"expand": "description,lead,url,issueTypes,insight"}
        )

    def get_users(self) -> list:
        return self._request("/users/search")

    def search_page(self, jql: str, fields: list, start_at: int,
                    max_results: int = PAGE_SIZE) -> dict:
        """Fetch a single page of a JQL search."""
        return self._request(
            "/search",
            params={
                "jql": jql,
                "fields": ",".join(fields),
                "startAt": start_at,
                "maxResults": max_results
            }
        )

    def search_all(self, jql: str, fields: list, strict: bool = False) -> list:
        """Fetch every issue matching ``jql``, one page at a time.

        Stops once the accumulated count reaches the reported total or a page
        comes back short. If a page request fails the issues gathered so far
        are returned, unless ``strict`` is set, in which case the error is
        re-raised.
        """
        all_issues = []
        start_at = 0

        while True:
            try:
                data = self.search_page(jql, fields, start_at)
            except requests.exceptions.RequestException as e:
                if strict:
                    raise
                logger.warning(
                    f"Search '{jql}' failed at startAt={start_at}, "
                    f"returning {len(all_issues)} issues: {e}"
                )
                break

            issues = data.get("issues") or []
            total = data.get("total") or 0
            all_issues.extend(issues)

            logger.debug(f"Fetched {len(all_issues)}/{total} issues for '{jql}'")

            if len(all_issues) >= total or len(issues) < PAGE_SIZE:
                break

            start_at += PAGE_SIZE

        return all_issues

    def fetch_all_issues(self, project_key: str) -> list:
        """Retrieve all issues of a project (best effort on page failures)."""
        if not project_key:
            raise ValueError("project_key must be a non-empty string")

        return self.search_all(f'project = "{project_key}"', ISSUE_FIELDS)
