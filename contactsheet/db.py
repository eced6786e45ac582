# contactsheet/db.py
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from contactsheet.config import load_settings

Base = declarative_base()

def _resolve_db_url():
    url = os.getenv("DATABASE_URL")
    if not url:
        url = f"sqlite:///{os.path.join(load_settings().data_dir, 'jobs.db')}"
    if url.startswith("sqlite:///"):
        parent = os.path.dirname(url[len("sqlite:///"):])
        if parent:
            os.makedirs(parent, exist_ok=True)
    return url

DATABASE_URL = _resolve_db_url()
engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db():
    # registers the job tables on Base
    from contactsheet import models  # noqa: F401
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
