# contactsheet/handlers.py
"""
Lambda-style entry points.

combine_handler: S3 put event -> contact sheet of the triggering bucket.
modify_handler:  {"operation", "base64Image", "imgName"} -> base64 JPEG.

Both pick their storage backend from STORAGE_BACKEND.
"""
from contactsheet.config import load_settings
from contactsheet.logging_config import get_logger
from contactsheet.pipelines import run_combine, run_modify
from contactsheet.storage import get_storage, optional_storage

log = get_logger(__name__)


def combine_handler(event, context=None):
    settings = load_settings()
    results = []
    for record in event.get("Records", []):
        bucket = record["s3"]["bucket"]["name"]
        key = record["s3"]["object"].get("key")
        log.info("Using bucket: %s and key: %s", bucket, key)
        storage = get_storage(settings, record.get("awsRegion"))
        result = run_combine(bucket, storage=storage, settings=settings)
        results.append(result.location)
    return results


def modify_handler(event, context=None) -> str:
    settings = load_settings()
    result = run_modify(
        event.get("base64Image", ""),
        event.get("operation", ""),
        event.get("imgName", ""),
        storage=optional_storage(settings, settings.modified_bucket),
        settings=settings,
    )
    return result.image_b64
