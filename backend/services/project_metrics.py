"""Project metrics derived from a project's Jira issues.

Every function here is a pure reduction over an issue list as returned by the
Jira search API (``{"key": ..., "fields": {...}}``). Nothing is cached; the
caller passes ``now`` when it needs deterministic results.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import math

from services.models import (
    HealthBreakdown, ProjectMetrics, TimelineData, UtilizationData
)

DAY_SECONDS = 24 * 60 * 60

DEFAULT_TIMELINE_DAYS = 90
RECENT_ACTIVITY_DAYS = 30

PRIORITY_ORDER = {
    "Highest": 5,
    "High": 4,
    "Medium": 3,
    "Low": 2,
    "Lowest": 1,
}

ON_TRACK = "On Track"
BEHIND_SCHEDULE = "Behind Schedule"
AHEAD_OF_SCHEDULE = "Ahead of Schedule"

ACTIVE_STATUS_TERMS = ("progress", "review", "testing", "development")


def round_half_up(value: float, ndigits: int = 0):
    """Round halves towards +infinity (2.5 -> 3, -2.5 -> -2).

    Returns an int when ``ndigits`` is 0.
    """
    if ndigits == 0:
        return int(math.floor(value + 0.5))
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """Parse a Jira date string into an aware UTC datetime.

    Values without an offset (including plain due dates) are taken as UTC.
    """
    if not date_str:
        return None

    # Jira formats: "2024-10-31T12:11:56.289-0400" or "2024-10-31T12:11:56.289+0000"
    formats = [
        "%Y-%m-%dT%H:%M:%S.%f%z",
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S.%f",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%d"
    ]

    for fmt in formats:
        try:
            parsed = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)

    return None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / DAY_SECONDS


def _fields(issue: dict) -> dict:
    return issue.get("fields") or {}


def _status_category(issue: dict) -> dict:
    status = _fields(issue).get("status") or {}
    return status.get("statusCategory") or {}


def _is_done(issue: dict) -> bool:
    """Whether the issue sits in the ``done`` status category."""
    return _status_category(issue).get("key") == "done"


def _assignee_id(issue: dict) -> Optional[str]:
    assignee = _fields(issue).get("assignee") or {}
    return assignee.get("accountId")


def count_completed(issues: list) -> int:
    return sum(1 for issue in issues if _is_done(issue))


def count_resources(issues: list) -> int:
    """Number of distinct assignees across the issues."""
    return len({aid for aid in (_assignee_id(i) for i in issues) if aid})


def calculate_progress(issues: list) -> int:
    """Percentage of issues in the done category."""
    if not issues:
        return 0
    return round_half_up(count_completed(issues) / len(issues) * 100)


def aggregate_metrics(issues: list, now: Optional[datetime] = None) -> ProjectMetrics:
    """Reduce an issue list into a ProjectMetrics summary.

    Completed means status category ``Done`` *and* a resolution date. A Done
    issue without one falls through to the generic overdue check, like any
    To Do issue.
    """
    now = now or _utcnow()

    completed_tasks = 0
    delayed_tasks = 0
    in_progress_tasks = 0
    completion_times = []

    for issue in issues:
        fields = _fields(issue)
        category = _status_category(issue).get("name")
        created = parse_date(fields.get("created"))
        resolved = parse_date(fields.get("resolutiondate"))
        due_date = parse_date(fields.get("duedate"))

        if category == "Done" and resolved:
            completed_tasks += 1
            if created:
                completion_times.append(_days_between(created, resolved))
            if due_date and resolved > due_date:
                delayed_tasks += 1
        elif category == "In Progress":
            in_progress_tasks += 1
            if due_date and now > due_date:
                delayed_tasks += 1
        elif due_date and now > due_date:
            delayed_tasks += 1

    total_tasks = len(issues)

    avg_completion_time = (
        round_half_up(sum(completion_times) / len(completion_times), 1)
        if completion_times else 0
    )
    completion_rate = (
        round_half_up(completed_tasks / total_tasks * 100)
        if total_tasks > 0 else 0
    )

    return ProjectMetrics(
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        delayed_tasks=delayed_tasks,
        in_progress_tasks=in_progress_tasks,
        completion_times=tuple(completion_times),
        avg_completion_time=avg_completion_time,
        completion_rate=completion_rate
    )


def _score_from_thresholds(value: float, thresholds: tuple, floor_score: int) -> int:
    for limit, score in thresholds:
        if value <= limit:
            return score
    return floor_score


class ProjectHealthCalculator:
    """Weighted 0-100 health score over a ProjectMetrics summary."""

    WEIGHTS = {
        "completion": 0.35,
        "timeliness": 0.30,
        "velocity": 0.20,
        "quality": 0.15,
    }

    # (upper bound, score), checked in order
    DELAY_RATE_THRESHOLDS = ((5, 90), (10, 80), (20, 60), (30, 40), (50, 20))
    COMPLETION_DAYS_THRESHOLDS = ((3, 100), (7, 90), (14, 80), (21, 60), (30, 40), (45, 20))
    VARIATION_THRESHOLDS = ((20, 100), (40, 80), (60, 60), (80, 40), (100, 20))

    NEUTRAL_SCORE = 50
    FLOOR_SCORE = 10

    def calculate_health_score(self, metrics: ProjectMetrics) -> HealthBreakdown:
        completion = self.calculate_completion_score(metrics)
        timeliness = self.calculate_timeliness_score(metrics)
        velocity = self.calculate_velocity_score(metrics)
        quality = self.calculate_quality_score(metrics)

        overall_score = round_half_up(
            completion * self.WEIGHTS["completion"]
            + timeliness * self.WEIGHTS["timeliness"]
            + velocity * self.WEIGHTS["velocity"]
            + quality * self.WEIGHTS["quality"]
        )

        return HealthBreakdown(
            completion=completion,
            timeliness=timeliness,
            velocity=velocity,
            quality=quality,
            overall_score=overall_score
        )

    def calculate_completion_score(self, metrics: ProjectMetrics) -> int:
        if metrics.total_tasks == 0:
            return 0
        return min(metrics.completion_rate, 100)

    def calculate_timeliness_score(self, metrics: ProjectMetrics) -> int:
        # No tasks means nothing can be late
        if metrics.total_tasks == 0:
            return 100

        delay_rate = metrics.delayed_tasks / metrics.total_tasks * 100
        if delay_rate == 0:
            return 100
        return _score_from_thresholds(delay_rate, self.DELAY_RATE_THRESHOLDS, self.FLOOR_SCORE)

    def calculate_velocity_score(self, metrics: ProjectMetrics) -> int:
        if not metrics.completion_times:
            return self.NEUTRAL_SCORE
        return _score_from_thresholds(
            metrics.avg_completion_time, self.COMPLETION_DAYS_THRESHOLDS, self.FLOOR_SCORE
        )

    def calculate_quality_score(self, metrics: ProjectMetrics) -> int:
        """Score the consistency of completion times.

        Uses the population coefficient of variation around the rounded
        average completion time.
        """
        times = metrics.completion_times
        if len(times) < 2:
            return self.NEUTRAL_SCORE

        mean = metrics.avg_completion_time
        variance = sum((t - mean) ** 2 for t in times) / len(times)
        std_dev = math.sqrt(variance)
        coefficient_of_variation = std_dev / mean * 100 if mean > 0 else 0

        return _score_from_thresholds(
            coefficient_of_variation, self.VARIATION_THRESHOLDS, self.FLOOR_SCORE
        )


def _timeline_priority(issues: list) -> str:
    """Collapse issue priorities into High/Medium/Low for the timeline."""
    project_priority = "Medium"
    highest = 0

    for issue in issues:
        priority = _fields(issue).get("priority")
        if not priority:
            continue
        value = PRIORITY_ORDER.get(priority.get("name"), 3)
        if value > highest:
            highest = value
            if value >= 4:
                project_priority = "High"
            elif value == 3:
                project_priority = "Medium"
            else:
                project_priority = "Low"

    return project_priority


def calculate_timeline(issues: list, now: Optional[datetime] = None) -> TimelineData:
    """Derive schedule bounds, progress and schedule status."""
    now = now or _utcnow()

    created_dates = [d for d in (parse_date(_fields(i).get("created")) for i in issues) if d]
    due_dates = [d for d in (parse_date(_fields(i).get("duedate")) for i in issues) if d]

    start_date = min(created_dates) if created_dates else now
    end_date = (
        max(due_dates) if due_dates
        else now + timedelta(days=DEFAULT_TIMELINE_DAYS)
    )

    total_project_days = max(1, _days_between(start_date, end_date))
    elapsed_days = max(0, _days_between(start_date, now))
    time_progress = min(100, max(0, round_half_up(elapsed_days / total_project_days * 100)))

    total_tasks = len(issues)
    completed_tasks = count_completed(issues)
    task_progress = (
        round_half_up(completed_tasks / total_tasks * 100) if total_tasks > 0 else 0
    )

    # Asymmetric on purpose: falling behind is flagged sooner than running ahead
    schedule_status = ON_TRACK
    if time_progress > task_progress + 10:
        schedule_status = BEHIND_SCHEDULE
    elif task_progress > time_progress + 15:
        schedule_status = AHEAD_OF_SCHEDULE

    remaining_days = max(0, math.ceil(_days_between(now, end_date)))

    return TimelineData(
        start_date=start_date,
        end_date=end_date,
        priority=_timeline_priority(issues),
        time_progress=time_progress,
        task_progress=task_progress,
        schedule_status=schedule_status,
        resources_assigned=count_resources(issues),
        total_tasks=total_tasks,
        completed_tasks=completed_tasks,
        project_duration=round_half_up(total_project_days),
        remaining_days=remaining_days
    )


def calculate_resource_utilization(issues: list) -> UtilizationData:
    """Task load and completion per distinct assignee."""
    total_tasks = len(issues)
    total_resources = count_resources(issues)
    completed_tasks = count_completed(issues)

    if total_resources > 0:
        tasks_per_resource = round_half_up(total_tasks / total_resources, 1)
        completed_per_resource = round_half_up(completed_tasks / total_resources, 1)
    else:
        tasks_per_resource = 0
        completed_per_resource = 0

    utilization_efficiency = (
        round_half_up(completed_per_resource / tasks_per_resource * 100, 1)
        if tasks_per_resource > 0 else 0
    )

    return UtilizationData(
        total_tasks=total_tasks,
        total_resources=total_resources,
        completed_tasks=completed_tasks,
        tasks_per_resource=tasks_per_resource,
        completed_tasks_per_resource=completed_per_resource,
        utilization_efficiency=utilization_efficiency
    )


def get_project_status(issues: list, now: Optional[datetime] = None) -> str:
    """Active/Inactive, based on recent activity or open work."""
    if not issues:
        return "Inactive"

    now = now or _utcnow()
    cutoff = now - timedelta(days=RECENT_ACTIVITY_DAYS)

    for issue in issues:
        fields = _fields(issue)
        created = parse_date(fields.get("created"))
        resolved = parse_date(fields.get("resolutiondate"))
        if (created and created > cutoff) or (resolved and resolved > cutoff):
            return "Active"

    for issue in issues:
        category = _status_category(issue).get("key")
        status_name = ((_fields(issue).get("status") or {}).get("name") or "").lower()
        if category in ("new", "indeterminate"):
            return "Active"
        if any(term in status_name for term in ACTIVE_STATUS_TERMS):
            return "Active"

    return "Inactive"


def get_project_priority(issues: list) -> str:
    """Name of the highest priority declared by any issue.

    Unrecognized priority names never win. A project whose issues declare
    no known priority reports "Lowest".
    """
    if not issues:
        return "Unknown"

    highest_priority = "Lowest"
    highest_value = 0

    for issue in issues:
        priority = _fields(issue).get("priority")
        if not priority:
            continue
        name = priority.get("name")
        value = PRIORITY_ORDER.get(name, 0)
        if value > highest_value:
            highest_value = value
            highest_priority = name

    return highest_priority


def format_display_date(value: datetime) -> str:
    """DD/MM/YYYY, as shown on the dashboard."""
    return value.strftime("%d/%m/%Y")
