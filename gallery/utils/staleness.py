from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from gallery.utils.storage import LocalStorage

Timestamp = Union[datetime, float, int]


def _as_epoch(value: Timestamp) -> float:
    if isinstance(value, datetime):
        # naive values follow the datetime.utcnow() convention of the DB layer
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)


def is_stale(
    processed: Path,
    resized: Path,
    updated_at: Optional[Timestamp],
    storage: Optional[LocalStorage] = None,
) -> bool:
    """
    Return True when the cached artifacts for an image must be regenerated.

    Missing artifacts are always stale, and so is every image without a
    gallery timestamp to compare against. Otherwise the processed file is
    stale once the gallery changed after it was written.
    """
    storage = storage or LocalStorage()
    if not (storage.exists(processed) and storage.exists(resized)):
        return True
    if updated_at is None:
        return True
    return _as_epoch(updated_at) > storage.mtime(processed)
