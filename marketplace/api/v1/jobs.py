"""
HTTP triggers for the scheduled jobs.

Meant for an external scheduler; any caller with an X-User-Id header can
trigger them, so expose this router behind an internal gateway only.
"""

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder

from marketplace.api.deps import get_current_user_id, get_services
from marketplace.services.base.service_factory import ServiceFactory
from marketplace.services.jobs.scheduled_jobs import JobName

router = APIRouter(prefix="/jobs", tags=["Jobs"], dependencies=[Depends(get_current_user_id)])


@router.post("/run-all")
def run_all_jobs(services: ServiceFactory = Depends(get_services)):
    report = services.jobs().run_all()
    return jsonable_encoder(
        {
            "started_at": report.started_at,
            "completed_at": report.completed_at,
            "succeeded": report.succeeded,
            "failed": report.failed,
            "executions": report.executions,
        }
    )


@router.post("/{job}")
def run_job(job: JobName, services: ServiceFactory = Depends(get_services)):
    return jsonable_encoder(services.jobs().run(job))
