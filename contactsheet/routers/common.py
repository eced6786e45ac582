# contactsheet/routers/common.py
from io import BytesIO

from fastapi import HTTPException
from fastapi.responses import StreamingResponse
from PIL import Image
from sqlalchemy.orm import Session

from contactsheet import codec
from contactsheet.errors import (
    BatchTooLargeError, ConfigurationError, EncodeError, ImagePipelineError,
    ItemDecodeError, ListingError, NameFormatError, UnsupportedOperationError,
    UploadError,
)
from contactsheet.models import Job, JobStatus, log_action

# first match wins
_STATUS_CODES = (
    (BatchTooLargeError, 413),
    (NameFormatError, 400),
    (UnsupportedOperationError, 400),
    (ItemDecodeError, 400),
    (ListingError, 404),
    (UploadError, 502),
    (EncodeError, 500),
    (ConfigurationError, 500),
)


def http_error(e: ImagePipelineError) -> HTTPException:
    for cls, code in _STATUS_CODES:
        if isinstance(e, cls):
            return HTTPException(status_code=code, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def fail_job(db: Session, job: Job, user_id: str, e: Exception) -> None:
    job.status = JobStatus.error
    job.error_message = str(e)
    db.commit()
    log_action(db=db, user_id=user_id, job_id=job.id, action="error",
               details={"error": str(e), "type": type(e).__name__})


def to_stream(img: Image.Image, fmt: str = "PNG", filename: str = "output") -> StreamingResponse:
    fmt = fmt.upper()
    try:
        data = codec.encode(img, fmt)
    except EncodeError as e:
        raise http_error(e)
    ext = "png" if fmt == "PNG" else "jpg"
    return StreamingResponse(
        BytesIO(data),
        media_type=codec.CONTENT_TYPES[fmt],
        headers={"Content-Disposition": f'inline; filename="{filename}.{ext}"'},
    )
