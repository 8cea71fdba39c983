"""Derived, per-request project metric types."""

from dataclasses import dataclass
from datetime import datetime


def _iso_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


@dataclass(frozen=True)
class ProjectMetrics:
    """Task counts and completion-time distribution for one project."""

    total_tasks: int = 0
    completed_tasks: int = 0
    delayed_tasks: int = 0
    in_progress_tasks: int = 0
    completion_times: tuple = ()
    avg_completion_time: float = 0
    completion_rate: int = 0

    def to_dict(self) -> dict:
        return {
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "delayedTasks": self.delayed_tasks,
            "inProgressTasks": self.in_progress_tasks,
            "avgCompletionTime": self.avg_completion_time,
            "completionRate": self.completion_rate,
            "completionTimes": list(self.completion_times)
        }


@dataclass(frozen=True)
class HealthBreakdown:
    completion: int
    timeliness: int
    velocity: int
    quality: int
    overall_score: int

    def to_dict(self) -> dict:
        return {
            "overallScore": self.overall_score,
            "completionScore": self.completion,
            "timelinessScore": self.timeliness,
            "velocityScore": self.velocity,
            "qualityScore": self.quality
        }


@dataclass(frozen=True)
class TimelineData:
    """Schedule bounds and progress derived from a project's issues."""

    start_date: datetime
    end_date: datetime
    priority: str
    time_progress: int
    task_progress: int
    schedule_status: str
    resources_assigned: int
    total_tasks: int
    completed_tasks: int
    project_duration: int
    remaining_days: int

    def to_dict(self, date_format=_iso_date) -> dict:
        return {
            "startDate": date_format(self.start_date),
            "endDate": date_format(self.end_date),
            "priority": self.priority,
            "timeProgress": self.time_progress,
            "taskProgress": self.task_progress,
            "scheduleStatus": self.schedule_status,
            "resourcesAssigned": self.resources_assigned,
            "totalTasks": self.total_tasks,
            "completedTasks": self.completed_tasks,
            "projectDuration": self.project_duration,
            "remainingDays": self.remaining_days
        }


@dataclass(frozen=True)
class UtilizationData:
    total_tasks: int
    total_resources: int
    completed_tasks: int
    tasks_per_resource: float
    completed_tasks_per_resource: float
    utilization_efficiency: float

    def to_dict(self) -> dict:
        return {
            "tasksPerResource": self.tasks_per_resource,
            "completedTasksPerResource": self.completed_tasks_per_resource,
            "totalTasks": self.total_tasks,
            "totalResources": self.total_resources,
            "completedTasks": self.completed_tasks,
            "utilizationEfficiency": self.utilization_efficiency
        }
