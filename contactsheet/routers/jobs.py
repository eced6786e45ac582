# contactsheet/routers/jobs.py
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime

from contactsheet.auth import User, get_current_user
from contactsheet.db import get_db
from contactsheet.models import Job

router = APIRouter(prefix="/jobs", tags=["jobs"])

class JobOut(BaseModel):
    id: str
    user_id: str
    kind: str            # "combine" | "modify"
    source: str
    status: str          # "processing" | "done" | "error"
    params: Optional[dict] = None
    output_key: Optional[str] = None
    location: Optional[str] = None
    image_count: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime

def _job_out(j: Job) -> JobOut:
    return JobOut(
        id=j.id, user_id=j.user_id, kind=j.kind.value, source=j.source,
        status=j.status.value, params=j.params, output_key=j.output_key,
        location=j.location, image_count=j.image_count, width=j.width,
        height=j.height, error_message=j.error_message, created_at=j.created_at,
    )

SORT_FIELDS = {"created_at", "source", "kind", "status", "id"}
SORT_ORDERS = {"asc", "desc"}

@router.get("", response_model=List[JobOut])
def list_jobs(
    response: Response,
    # pagination (support both styles)
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    page: Optional[int] = Query(None, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=100),

    # filtering
    kind: Optional[str] = Query(None, pattern="^(combine|modify)$"),
    status: Optional[str] = Query(None, pattern="^(processing|done|error)$"),
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,

    # sorting
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),

    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    # normalize pagination
    if page is not None or per_page is not None:
        p = page or 1
        pp = per_page or limit
        limit, offset = pp, (p - 1) * pp

    # unknown sort options fall back to defaults
    if sort_by not in SORT_FIELDS:
        sort_by = "created_at"
    if order not in SORT_ORDERS:
        order = "desc"

    q = db.query(Job).filter(Job.user_id == user.username)
    if kind: q = q.filter(Job.kind == kind)
    if status: q = q.filter(Job.status == status)
    if created_after: q = q.filter(Job.created_at >= created_after)
    if created_before: q = q.filter(Job.created_at <= created_before)

    total = q.count()
    sort_col = getattr(Job, sort_by)
    q = q.order_by(sort_col.asc() if order == "asc" else sort_col.desc())
    rows = q.offset(offset).limit(limit).all()

    # headers: total + RFC5988 pagination links
    response.headers["X-Total-Count"] = str(total)

    def build_link(off, lim):
        qs = [f"limit={lim}", f"offset={off}"]
        if kind: qs.append(f"kind={kind}")
        if status: qs.append(f"status={status}")
        if created_after: qs.append(f"created_after={created_after.isoformat()}")
        if created_before: qs.append(f"created_before={created_before.isoformat()}")
        qs.append(f"sort_by={sort_by}")
        qs.append(f"order={order}")
        return f'</v1/jobs?{"&".join(qs)}>'

    links = [build_link(offset, limit) + '; rel="self"']
    if offset + limit < total:
        links.append(build_link(offset + limit, limit) + '; rel="next"')
    if offset > 0:
        links.append(build_link(max(0, offset - limit), limit) + '; rel="prev"')
    if total > 0:
        last_page_off = ((total - 1) // limit) * limit
        links.append(build_link(last_page_off, limit) + '; rel="last"')

    response.headers["Link"] = ", ".join(links)
    return [_job_out(r) for r in rows]

@router.get("/{job_id}", response_model=JobOut)
def get_job(
    job_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    job = db.get(Job, job_id)
    if not job or job.user_id != user.username:
        raise HTTPException(status_code=404, detail="Not Found")
    return _job_out(job)
