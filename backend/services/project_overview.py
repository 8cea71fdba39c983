"""Per-project dashboard overview built from freshly fetched Jira issues."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Optional
import logging

from services.jira_client import JiraClient
from services.project_metrics import (
    ProjectHealthCalculator,
    aggregate_metrics,
    calculate_progress,
    calculate_resource_utilization,
    calculate_timeline,
    count_completed,
    count_resources,
    format_display_date,
    get_project_priority,
    get_project_status,
)

logger = logging.getLogger(__name__)

GLOBAL_COUNT_JQL = "project is not EMPTY"

# Status category names counted as finished work in the global counts
GLOBAL_DONE_CATEGORIES = {"Done", "Ready for Launch"}


def error_project_info(project: dict) -> dict:
    """Zeroed placeholder for a project whose metrics could not be computed."""
    return {
        "name": project.get("name"),
        "key": project.get("key"),
        "status": "Error",
        "priority": "Unknown",
        "progressPercentage": 0,
        "taskCount": 0,
        "completedTaskCount": 0,
        "resourcesCount": 0,
        "completionRatePercentage": 0,
        "tasksPerResource": 0,
        "completedTasksPerResource": 0,
        "utilizationEfficiency": 0,
        "taskCompletionRate": None,
        "healthScore": 0,
        "healthBreakdown": None,
        "timeline": None
    }


def empty_task_counts() -> dict:
    return {
        "todo": 0,
        "inProgress": 0,
        "done": 0,
        "blocked": 0,
        "testing": 0,
        "total": 0
    }


def count_global_tasks(issues: list) -> dict:
    """Count issues by status category plus the Blocked/Testing statuses."""
    results = empty_task_counts()
    results["total"] = len(issues)

    for issue in issues:
        status = (issue.get("fields") or {}).get("status") or {}
        status_name = status.get("name")
        category = (status.get("statusCategory") or {}).get("name")

        if category == "To Do":
            results["todo"] += 1
        elif category == "In Progress":
            results["inProgress"] += 1
        elif category in GLOBAL_DONE_CATEGORIES:
            results["done"] += 1

        if status_name == "Blocked":
            results["blocked"] += 1
        elif status_name == "Testing":
            results["testing"] += 1

    return results


class ProjectOverviewService:
    """Builds the project dashboard payloads.

    Each project is processed in its own worker; a failure in one project is
    replaced by an error placeholder and never affects the others.
    """

    def __init__(self, client: JiraClient, max_workers: Optional[int] = None):
        self.client = client
        self.max_workers = max_workers
        self.health_calculator = ProjectHealthCalculator()

    def build_project_info(self, project: dict, now: Optional[datetime] = None) -> dict:
        """Fetch a project's issues and derive every dashboard field."""
        now = now or datetime.now(timezone.utc)

        issues = self.client.fetch_all_issues(project["key"])

        metrics = aggregate_metrics(issues, now=now)
        health = self.health_calculator.calculate_health_score(metrics)
        utilization = calculate_resource_utilization(issues)
        timeline = calculate_timeline(issues, now=now)
        progress = calculate_progress(issues)

        return {
            "name": project.get("name"),
            "key": project["key"],
            "status": get_project_status(issues, now=now),
            "priority": get_project_priority(issues),
            "progressPercentage": progress,
            "taskCount": len(issues),
            "completedTaskCount": count_completed(issues),
            "resourcesCount": count_resources(issues),
            "completionRatePercentage": progress,
            "tasksPerResource": utilization.tasks_per_resource,
            "completedTasksPerResource": utilization.completed_tasks_per_resource,
            "utilizationEfficiency": utilization.utilization_efficiency,
            "taskCompletionRate": metrics.to_dict(),
            "healthScore": health.overall_score,
            "healthBreakdown": health.to_dict(),
            "timeline": timeline.to_dict(date_format=format_display_date)
        }

    def _safe_project_info(self, project: dict, now: Optional[datetime]) -> dict:
        try:
            return self.build_project_info(project, now=now)
        except Exception as e:
            logger.warning(f"Failed to compute metrics for project {project.get('key')}: {e}")
            return error_project_info(project)

    def get_projects_info(self, projects: list, now: Optional[datetime] = None) -> list:
        """Compute every project's info in parallel, keeping input order.

        All projects run at once unless ``max_workers`` caps the pool.
        """
        if not projects:
            return []

        workers = len(projects)
        if self.max_workers:
            workers = min(workers, self.max_workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(self._safe_project_info, project, now)
                for project in projects
            ]
            return [future.result() for future in futures]

    def get_status_overview(self, now: Optional[datetime] = None) -> list:
        """Info for every project visible to the configured account."""
        projects = self.client.get_projects()
        return self.get_projects_info(projects, now=now)

    def get_global_task_counts(self) -> dict:
        """Status counts across all projects; all zeros if anything fails."""
        try:
            issues = self.client.search_all(GLOBAL_COUNT_JQL, ["status"], strict=True)
        except Exception as e:
            logger.warning(f"Error fetching global task counts: {e}")
            return empty_task_counts()
        return count_global_tasks(issues)

    def get_global_overview(self) -> dict:
        """Headline totals across the whole Jira instance."""
        projects = self.client.search_projects()
        users = self.client.get_users()
        atlassian_users = [u for u in users if u.get("accountType") == "atlassian"]

        total_issues = sum(
            (project.get("insight") or {}).get("totalIssueCount", 0)
            for project in projects.get("values", [])
        )

        return {
            "totalProjects": projects.get("total", 0),
            "totalIssues": total_issues,
            "totalResources": len(atlassian_users),
            "globalTaskCounts": self.get_global_task_counts()
        }
