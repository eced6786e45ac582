# contactsheet/main.py
from fastapi import FastAPI, Query, Depends
from typing import Optional
from sqlalchemy.orm import Session

from contactsheet.auth import router as auth_router, get_current_user, require_role, User
from contactsheet.db import init_db, get_db
from contactsheet.models import ProcessingLog, log_row
from contactsheet.routers.combine import router as combine_router
from contactsheet.routers.modify import router as modify_router
from contactsheet.routers.jobs import router as jobs_router


app = FastAPI(title="Contact Sheet API")

# Routers
app.include_router(auth_router)
app.include_router(combine_router, prefix="/v1")
app.include_router(modify_router, prefix="/v1")
app.include_router(jobs_router, prefix="/v1")


# --- Startup ---
@app.on_event("startup")
def on_startup():
    init_db()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"username": user.username, "role": user.role}


# === Processing logs ===
@app.get("/admin/logs")
def admin_logs(
    limit: int = Query(20, ge=1, le=200),
    action: Optional[str] = Query(None),
    user: User = Depends(require_role("admin")),
    db: Session = Depends(get_db),
):
    q = db.query(ProcessingLog).order_by(ProcessingLog.timestamp.desc())
    if action:
        q = q.filter(ProcessingLog.action == action)
    return [log_row(r) for r in q.limit(limit).all()]

@app.get("/logs/mine")
def my_logs(
    limit: int = Query(10, ge=1, le=200),
    action: Optional[str] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    q = (db.query(ProcessingLog)
         .filter(ProcessingLog.user_id == user.username)
         .order_by(ProcessingLog.timestamp.desc()))
    if action:
        q = q.filter(ProcessingLog.action == action)
    return [log_row(r) for r in q.limit(limit).all()]
