"""Background jobs and their scheduler."""

from wge.jobs.context import JobContext, LoggingNotifier, SummaryNotifier
from wge.jobs.scheduler import JobSpec, Scheduler, build_default_scheduler, default_job_specs
from wge.jobs.tasks import JOBS

__all__ = [
    "JOBS",
    "JobContext",
    "JobSpec",
    "LoggingNotifier",
    "Scheduler",
    "SummaryNotifier",
    "build_default_scheduler",
    "default_job_specs",
]
