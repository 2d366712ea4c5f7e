"""TTL-gated persistence of the raw catalog snapshot.

Reads never raise: a missing, unreadable or malformed cache file is a
miss and ingestion falls through to a live fetch.
"""

import logging
import time
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from gitlab_tree.models import CatalogSnapshot


logger = logging.getLogger(__name__)


def cache_is_valid(created_at: int, ttl_seconds: int, now: float) -> bool:
    """Check snapshot freshness.

    The age saturates at zero, so a snapshot stamped in the future (clock
    skew) counts as fresh. An age of exactly ``ttl_seconds`` is still valid.
    """
    age = max(0, int(now) - created_at)
    return age <= ttl_seconds


class CacheStore:
    """JSON snapshot file with a time-to-live."""

    def __init__(self, path: Path, ttl_seconds: int):
        self.path = path
        self.ttl_seconds = ttl_seconds

    def read(self) -> Optional[CatalogSnapshot]:
        """Read the snapshot without checking its age."""
        try:
            data = self.path.read_bytes()
        except OSError:
            return None
        try:
            return CatalogSnapshot.model_validate_json(data)
        except ValidationError as e:
            logger.debug("Ignoring malformed cache %s: %s", self.path, e)
            return None

    def load(self, now: Optional[float] = None) -> Optional[CatalogSnapshot]:
        """Return the cached snapshot if present and still within the TTL."""
        snapshot = self.read()
        if snapshot is None:
            logger.debug("Cache miss: %s", self.path)
            return None
        if now is None:
            now = time.time()
        if not cache_is_valid(snapshot.created_at, self.ttl_seconds, now):
            logger.info("Cache expired: %s", self.path)
            return None
        logger.info("Cache hit: %s", self.path)
        return snapshot

    def store(self, snapshot: CatalogSnapshot) -> None:
        """Persist the snapshot, creating parent directories.

        Raises:
            OSError: If the file cannot be written.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")

    def clear(self) -> bool:
        """Delete the cache file. Returns False if there was nothing to delete."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
