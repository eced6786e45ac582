# contactsheet/routers/modify.py
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from contactsheet import codec
from contactsheet.auth import User, get_current_user
from contactsheet.config import Settings, get_settings
from contactsheet.db import get_db
from contactsheet.errors import ImagePipelineError
from contactsheet.filters import OUTPUT_SIZE, modify, parse_operation
from contactsheet.models import Job, JobKind, JobStatus, log_action
from contactsheet.pipelines import run_modify
from contactsheet.routers.common import fail_job, http_error, to_stream
from contactsheet.storage import optional_storage

router = APIRouter(prefix="/modify", tags=["modify"])


class ModifyRequest(BaseModel):
    operation: str
    base64Image: str
    imgName: str


@router.post("")
def modify_image(
    req: ModifyRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    job = Job(
        user_id=user.username,
        kind=JobKind.modify,
        source=req.imgName,
        params={"operation": req.operation},
        status=JobStatus.processing,
    )
    db.add(job); db.commit(); db.refresh(job)

    try:
        result = run_modify(req.base64Image, req.operation, req.imgName,
                            storage=optional_storage(settings, settings.modified_bucket),
                            settings=settings)
    except ImagePipelineError as e:
        fail_job(db, job, user.username, e)
        raise http_error(e)
    except Exception as e:
        fail_job(db, job, user.username, e)
        raise HTTPException(500, f"Processing failed: {e}")

    job.status = JobStatus.done
    job.output_key = result.key
    job.location = result.location
    job.width = job.height = OUTPUT_SIZE
    db.commit()

    log_action(
        db=db,
        user_id=user.username,
        job_id=job.id,
        action=req.operation,
        details={"key": result.key, "uploaded": result.uploaded, "location": result.location},
    )
    return {
        "job_id": job.id,
        "image": result.image_b64,
        "key": result.key,
        "location": result.location,
    }


@router.post("/file")
def modify_file(
    op: str = Query(...),
    file: UploadFile = File(...),
    user: User = Depends(get_current_user),
):
    """Apply ``op`` to an uploaded image and stream the 400x400 JPEG back."""
    try:
        _, ext = codec.parse_image_name(file.filename or "")
        operation = parse_operation(op)
        img = codec.decode(file.file.read(), codec.format_for_extension(ext))
        out = modify(img, operation)
    except ImagePipelineError as e:
        raise http_error(e)
    return to_stream(out, "JPEG", filename="modified")
