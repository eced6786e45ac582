# contactsheet/selector.py
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from PIL import Image

from contactsheet import codec
from contactsheet.errors import BatchTooLargeError, ItemDecodeError, ItemFetchError
from contactsheet.logging_config import get_logger

log = get_logger(__name__)

MAX_BATCH_SIZE = 75


@dataclass(frozen=True)
class SourceItem:
    name: str
    last_modified: datetime


def admit(items) -> None:
    if len(items) > MAX_BATCH_SIZE:
        raise BatchTooLargeError(len(items), MAX_BATCH_SIZE)


def order_items(items: Iterable[SourceItem]) -> List[SourceItem]:
    # sorted() is stable: equal timestamps keep listing order
    return sorted(items, key=lambda item: item.last_modified)


def _fetch_and_decode(storage, bucket: str, item: SourceItem) -> Optional[Image.Image]:
    try:
        data = storage.fetch_bytes(bucket, item.name)
        return codec.decode(data, codec.format_hint(item.name))
    except (ItemFetchError, ItemDecodeError) as e:
        log.warning("Cannot download %s from %s, %s", item.name, bucket, e)
        return None


def select_images(storage, bucket: str, *, max_workers: int = 8) -> List[Image.Image]:
    """
    List ``bucket``, enforce the batch cap, and return the decoded images
    oldest first. Items that fail to download or decode are skipped.
    """
    listing = storage.list(bucket)
    admit(listing)
    ordered = order_items(listing)
    log.info("Fetching %d items from %s", len(ordered), bucket)

    if not ordered:
        return []
    # map() yields results in input order, so placement stays deterministic
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        results = list(pool.map(lambda item: _fetch_and_decode(storage, bucket, item), ordered))

    images = [img for img in results if img is not None]
    if len(images) < len(ordered):
        log.info("Skipped %d of %d items", len(ordered) - len(images), len(ordered))
    return images
