# contactsheet/config.py
import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    data_dir: str
    storage_backend: str
    aws_region: Optional[str]
    combined_bucket: Optional[str]
    modified_bucket: Optional[str]
    fetch_workers: int
    debug: bool

    @property
    def buckets_dir(self) -> str:
        # local storage root; each bucket is a sub-directory
        return os.path.join(self.data_dir, "buckets")


def _optional(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def load_settings() -> Settings:
    """
    Reads configuration from environment variables. Called per request / per
    event so that each invocation sees the current environment.
    """
    backend = os.getenv("STORAGE_BACKEND", "local").strip().lower()
    if backend not in ("local", "s3"):
        backend = "local"
    try:
        workers = int(os.getenv("FETCH_WORKERS", "8"))
    except ValueError:
        workers = 8

    return Settings(
        data_dir=os.getenv("DATA_DIR", "/data"),
        storage_backend=backend,
        aws_region=_optional("AWS_DEFAULT_REGION"),
        combined_bucket=_optional("BUCKET_FOR_SAVING_COMBINED_IMG"),
        modified_bucket=_optional("BUCKET_FOR_SAVING_IMG"),
        fetch_workers=max(1, workers),
        debug=os.getenv("DEBUG_MODE", "False").lower() == "true",
    )


# FastAPI dependency
def get_settings() -> Settings:
    return load_settings()
