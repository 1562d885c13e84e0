"""Job API: submit documents for processing, poll their status."""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from pydantic import BaseModel

from app.api.deps import get_coordinator, get_status_service
from app.jobs.coordinator import SubmissionCoordinator
from app.jobs.models import JobStatusView
from app.jobs.status_service import StatusQueryService

router = APIRouter()


class JobSubmitResponse(BaseModel):
    message: str
    job_id: str
    status: str


async def accept_upload(
    file: Optional[UploadFile],
    coordinator: SubmissionCoordinator,
) -> JobSubmitResponse:
    """Shared by POST /jobs and the root-level POST /upload."""
    filename = file.filename if file is not None else None
    try:
        result = await coordinator.submit_upload(filename, file)
    finally:
        if file is not None:
            await file.close()
    return JobSubmitResponse(
        message="File accepted for processing",
        job_id=result.job_id,
        status=result.status.value,
    )


@router.post(
    "/jobs",
    response_model=JobSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def submit_job(
    file: Optional[UploadFile] = File(None),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
):
    """Upload a document and queue it for processing.

    Poll GET /api/v1/jobs/{job_id} for status.
    """
    return await accept_upload(file, coordinator)


@router.get("/jobs/{job_id}", response_model=JobStatusView)
async def get_job_status(
    job_id: str,
    status_service: StatusQueryService = Depends(get_status_service),
):
    return await status_service.query(job_id)
