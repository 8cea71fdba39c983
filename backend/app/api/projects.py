"""Project overview API endpoints."""

from datetime import datetime, timezone
from flask import Blueprint, current_app, jsonify

from services.jira_client import JiraClient
from services.project_overview import ProjectOverviewService

bp = Blueprint("projects", __name__, url_prefix="/api")

MISSING_CONFIG_ERROR = "Missing Jira configuration. Please check environment variables."


def get_jira_config():
    """Return (base_url, email, token), or Nones if any is missing."""
    config = current_app.config.get("JIRA") or {}
    base_url = (config.get("base_url") or "").rstrip("/")
    email = config.get("email")
    token = config.get("token")

    if not all([base_url, email, token]):
        return None, None, None

    return base_url, email, token


def _utc_timestamp():
    """ISO-8601 UTC timestamp with milliseconds, e.g. 2024-01-01T00:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _build_service(base_url, email, token):
    client = JiraClient(base_url, email, token)
    return ProjectOverviewService(
        client, max_workers=current_app.config["OVERVIEW_MAX_WORKERS"]
    )


@bp.route("/project-status-overview", methods=["GET"])
def get_project_status_overview():
    """Get health, timeline and utilization info for every project.

    Returns:
        - success: True
        - data: one entry per project, in Jira's project order
        - total: number of projects
        - timestamp: when the response was built
    """
    base_url, email, token = get_jira_config()

    if not base_url:
        return jsonify({"success": False, "error": MISSING_CONFIG_ERROR}), 500

    try:
        service = _build_service(base_url, email, token)
        projects_info = service.get_status_overview()

        return jsonify({
            "success": True,
            "data": projects_info,
            "total": len(projects_info),
            "timestamp": _utc_timestamp()
        })
    except Exception as e:
        current_app.logger.error(f"Project status overview failed: {e}")
        return jsonify({
            "success": False,
            "error": "Failed to fetch project information",
            "message": str(e)
        }), 500


@bp.route("/project-overview", methods=["GET"])
def get_project_overview():
    """Get instance-wide totals: projects, issues, resources and task counts."""
    base_url, email, token = get_jira_config()

    if not base_url:
        return jsonify({"success": False, "error": MISSING_CONFIG_ERROR}), 500

    try:
        service = _build_service(base_url, email, token)
        return jsonify(service.get_global_overview())
    except Exception as e:
        current_app.logger.error(f"Project overview failed: {e}")
        return jsonify({"error": "Internal Server Error"}), 500
