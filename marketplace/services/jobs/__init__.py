"""
Scheduled jobs package.
"""

from marketplace.services.jobs.scheduled_jobs import JobName, JobsReport, ScheduledJobs

__all__ = ["JobName", "JobsReport", "ScheduledJobs"]
