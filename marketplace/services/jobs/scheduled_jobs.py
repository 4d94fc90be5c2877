"""
Scheduled jobs.

Entry points for an external scheduler (cron, a worker, an HTTP trigger):
- Generate upcoming recurring bookings
- Send due reminders
- Retry failed reminders
- Revert expired waitlist offers

Each job runs on its own; one failing job never stops the others.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from marketplace.core.clock import Clock, SystemClock
from marketplace.core.logging import get_logger, log_execution_time
from marketplace.services.base.service_result import ServiceResult


class JobName(str, Enum):
    """Jobs an external scheduler can trigger."""
    GENERATE_RECURRING = "generate-recurring"
    SEND_REMINDERS = "send-reminders"
    RETRY_REMINDERS = "retry-reminders"
    EXPIRE_WAITLIST = "expire-waitlist"


class JobStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class JobExecution:
    """Execution record for one job."""
    job: JobName
    status: JobStatus
    duration_seconds: float
    result: Any = None
    error: Optional[str] = None


@dataclass
class JobsReport:
    """Report of a run over several jobs."""
    started_at: datetime
    completed_at: datetime
    executions: List[JobExecution] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for e in self.executions if e.status == JobStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return sum(1 for e in self.executions if e.status == JobStatus.FAILED)


class ScheduledJobs:
    """Runs the periodic booking jobs, each isolated from the others."""

    def __init__(self, recurring, reminders, waitlist, clock: Optional[Clock] = None):
        self.recurring = recurring
        self.reminders = reminders
        self.waitlist = waitlist
        self.clock = clock or SystemClock()
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def jobs(self) -> Dict[JobName, Callable[[], ServiceResult]]:
        return {
            JobName.GENERATE_RECURRING: self.recurring.generate_upcoming_bookings,
            JobName.SEND_REMINDERS: self.reminders.send_pending_reminders,
            JobName.RETRY_REMINDERS: self.reminders.retry_failed_reminders,
            JobName.EXPIRE_WAITLIST: self.waitlist.process_expired_notifications,
        }

    def run(self, job: JobName) -> JobExecution:
        """Run one job; an exception or failed result is recorded, not raised."""
        job = JobName(job)
        start = time.perf_counter()
        try:
            outcome = self.jobs[job]()
        except Exception as e:
            self._logger.error(f"Job {job.value} raised: {e}", exc_info=True, extra={"job": job.value})
            return JobExecution(
                job=job,
                status=JobStatus.FAILED,
                duration_seconds=round(time.perf_counter() - start, 4),
                error=str(e),
            )

        duration = round(time.perf_counter() - start, 4)
        if not outcome.is_success:
            self._logger.warning(
                f"Job {job.value} failed: {outcome.message}",
                extra={"job": job.value},
            )
            return JobExecution(job=job, status=JobStatus.FAILED, duration_seconds=duration, error=outcome.message)

        return JobExecution(job=job, status=JobStatus.SUCCESS, duration_seconds=duration, result=outcome.data)

    @log_execution_time()
    def run_all(self) -> JobsReport:
        started_at = self.clock.now()
        executions = [self.run(job) for job in JobName]
        report = JobsReport(started_at=started_at, completed_at=self.clock.now(), executions=executions)
        self._logger.info(
            f"Scheduled jobs executed ({report.succeeded} succeeded, {report.failed} failed)",
            extra={"failed_jobs": [e.job.value for e in executions if e.status == JobStatus.FAILED]},
        )
        return report
