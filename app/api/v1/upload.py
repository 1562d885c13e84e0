"""Root-level upload/status paths kept for existing clients.

  POST /upload            - receive a document, queue a job
  GET  /status/{job_id}   - poll job status

Thin layer over the /api/v1/jobs handlers.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status

from app.api.deps import get_coordinator, get_status_service
from app.api.v1.jobs import JobSubmitResponse, accept_upload
from app.jobs.coordinator import SubmissionCoordinator
from app.jobs.models import JobStatusView
from app.jobs.status_service import StatusQueryService

router = APIRouter()


@router.post(
    "/upload",
    response_model=JobSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    coordinator: SubmissionCoordinator = Depends(get_coordinator),
):
    return await accept_upload(file, coordinator)


@router.get("/status/{job_id}", response_model=JobStatusView)
async def get_status(
    job_id: str,
    status_service: StatusQueryService = Depends(get_status_service),
):
    return await status_service.query(job_id)
