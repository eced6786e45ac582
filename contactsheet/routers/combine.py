# contactsheet/routers/combine.py
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from contactsheet import codec
from contactsheet.auth import User, get_current_user
from contactsheet.compositor import combine
from contactsheet.config import Settings, get_settings
from contactsheet.db import get_db
from contactsheet.errors import ImagePipelineError, ItemDecodeError
from contactsheet.logging_config import get_logger
from contactsheet.models import Job, JobKind, JobStatus, log_action
from contactsheet.pipelines import run_combine
from contactsheet.routers.common import fail_job, http_error, to_stream
from contactsheet.selector import admit
from contactsheet.storage import get_storage

log = get_logger(__name__)

router = APIRouter(prefix="/combine", tags=["combine"])


class CombineRequest(BaseModel):
    bucket: str = Field(..., min_length=1, max_length=255)


@router.post("")
def create_contact_sheet(
    req: CombineRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Build the contact sheet for every image in ``bucket`` and store it as
    combined.png in the configured destination bucket.
    """
    job = Job(
        user_id=user.username,
        kind=JobKind.combine,
        source=req.bucket,
        params={"bucket": req.bucket},
        status=JobStatus.processing,
    )
    db.add(job); db.commit(); db.refresh(job)

    try:
        result = run_combine(req.bucket, storage=get_storage(settings), settings=settings)
    except ImagePipelineError as e:
        fail_job(db, job, user.username, e)
        raise http_error(e)
    except Exception as e:
        fail_job(db, job, user.username, e)
        raise HTTPException(500, f"Processing failed: {e}")

    job.status = JobStatus.done
    job.output_key = result.key
    job.location = result.location
    job.image_count = result.image_count
    job.width, job.height = result.width, result.height
    db.commit()

    log_action(
        db=db,
        user_id=user.username,
        job_id=job.id,
        action="combine",
        details={"image_count": result.image_count, "width": result.width,
                 "height": result.height, "location": result.location},
    )
    return {
        "job_id": job.id,
        "location": result.location,
        "key": result.key,
        "image_count": result.image_count,
        "width": result.width,
        "height": result.height,
    }


@router.post("/upload")
def combine_uploads(
    files: List[UploadFile] = File(...),
    user: User = Depends(get_current_user),
):
    """Contact sheet of the uploaded files, placed in upload order. Returns PNG."""
    try:
        admit(files)
    except ImagePipelineError as e:
        raise http_error(e)

    images = []
    for f in files:
        name = f.filename or ""
        try:
            images.append(codec.decode(f.file.read(), codec.format_hint(name)))
        except ItemDecodeError as e:
            log.warning("Skipping upload %s, %s", name, e)
    return to_stream(combine(images), "PNG", filename="combined")
