# contactsheet/models.py
from sqlalchemy import (
    Column, String, Integer, DateTime, JSON, Enum, ForeignKey, func, Index
)
from sqlalchemy.orm import relationship, Session
from contactsheet.db import Base
import enum
from datetime import datetime, timezone
import uuid


# ----- Enums -----
class JobKind(str, enum.Enum):
    combine = "combine"
    modify = "modify"


class JobStatus(str, enum.Enum):
    processing = "processing"
    done = "done"
    error = "error"


def _utcnow():
    return datetime.now(tz=timezone.utc)


# ----- One pipeline invocation (contact sheet or filter) -----
class Job(Base):
    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, nullable=False)
    kind = Column(Enum(JobKind), nullable=False)

    # source bucket (combine) or uploaded file name (modify)
    source = Column(String, nullable=False)

    # e.g. {"operation": "blur"} or {"bucket": "uploads"}
    params = Column(JSON, nullable=True)

    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.processing)
    error_message = Column(String, nullable=True)

    output_key = Column(String, nullable=True)
    location = Column(String, nullable=True)
    image_count = Column(Integer, nullable=True)
    width = Column(Integer, nullable=True)
    height = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    logs = relationship("ProcessingLog", back_populates="job", cascade="all, delete-orphan")


Index("ix_jobs_created_at", Job.created_at)


# ----- Processing history -----
class ProcessingLog(Base):
    __tablename__ = "processing_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, nullable=False)
    job_id = Column(String, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False)

    # "combine", "blur", "all", ... or "error"
    action = Column(String, nullable=False)

    # image count, canvas size, error text, upload location
    details = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    job = relationship("Job", back_populates="logs")


Index("ix_processing_logs_timestamp", ProcessingLog.timestamp)
Index("ix_processing_logs_action", ProcessingLog.action)


def log_action(db: Session, user_id: str, job_id: str, action: str, details: dict = None):
    log = ProcessingLog(
        user_id=user_id,
        job_id=job_id,
        action=action,
        details=details or {}
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def log_row(r: ProcessingLog) -> dict:
    return {
        "id": r.id,
        "timestamp": r.timestamp.isoformat() if r.timestamp else None,
        "user_id": r.user_id,
        "job_id": r.job_id,
        "action": r.action,
        "details": r.details,
    }
