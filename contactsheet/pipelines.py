# contactsheet/pipelines.py
"""
Trigger-level pipelines. These glue the storage and codec boundaries to the
selector, compositor and filter pipeline and are shared by the HTTP routes
and the Lambda-style handlers.
"""
from dataclasses import dataclass
from typing import Optional

from contactsheet import codec
from contactsheet.compositor import combine
from contactsheet.config import Settings
from contactsheet.errors import ConfigurationError, UploadError
from contactsheet.filters import modify, parse_operation
from contactsheet.logging_config import get_logger
from contactsheet.selector import select_images

log = get_logger(__name__)

COMBINED_KEY = "combined.png"


@dataclass
class CombineResult:
    location: str
    key: str
    image_count: int
    width: int
    height: int


@dataclass
class ModifyResult:
    image_b64: str
    key: str
    location: Optional[str] = None

    @property
    def uploaded(self) -> bool:
        return self.location is not None


def run_combine(bucket: str, *, storage, settings: Settings) -> CombineResult:
    log.info("Using bucket: %s", bucket)
    if not settings.combined_bucket:
        raise ConfigurationError(
            "cannot find bucket name, specify BUCKET_FOR_SAVING_COMBINED_IMG env"
        )

    images = select_images(storage, bucket, max_workers=settings.fetch_workers)
    sheet = combine(images)
    data = codec.encode(sheet, "PNG")

    log.info("Starting upload of %s to %s", COMBINED_KEY, settings.combined_bucket)
    location = storage.put_bytes(
        settings.combined_bucket, COMBINED_KEY, data, codec.CONTENT_TYPES["PNG"]
    )
    log.info("Successfully uploaded to: %s", location)
    return CombineResult(
        location=location,
        key=COMBINED_KEY,
        image_count=len(images),
        width=sheet.width,
        height=sheet.height,
    )


def modified_key(stem: str) -> str:
    return f"{stem.strip()}-modified.jpg"


def run_modify(image_b64: str, operation: str, img_name: str, *,
               storage=None, settings: Settings) -> ModifyResult:
    log.info("Starting processing image: %s", img_name)
    stem, ext = codec.parse_image_name(img_name)
    op = parse_operation(operation)

    raw = codec.decode_base64(image_b64)
    img = codec.decode(raw, codec.format_for_extension(ext))

    log.debug("Modifying image with %s", op.value)
    out = modify(img, op)
    data = codec.encode(out, "JPEG")
    result = ModifyResult(image_b64=codec.encode_base64(data), key=modified_key(stem))

    # persistence is best effort on this path
    if not settings.modified_bucket:
        log.info("Cannot find bucket name, specify BUCKET_FOR_SAVING_IMG env; image not uploaded")
        return result
    if storage is None:
        log.info("No storage available, image not uploaded")
        return result
    try:
        result.location = storage.put_bytes(
            settings.modified_bucket, result.key, data, codec.CONTENT_TYPES["JPEG"]
        )
        log.info("Successfully uploaded to: %s", result.location)
    except UploadError as e:
        log.warning("Failed to upload: %s", e)
    return result
