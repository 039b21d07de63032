"""
Directory Store - Persisted canonical directory with an in-memory TTL cache.

The directory is a flat JSON list of canonical records. It is read wholesale
and overwritten wholesale (write to a temp file, then replace); there is no
append or on-disk merge.

Reads go through a time-based cache. When the cache has expired, every reader
that notices reloads the file independently; there is no single-flight
de-duplication. The lock only guards the cache slot itself, so concurrent
reloads are possible and harmless (each produces the same list).
"""

import json
import logging
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from config import Config
from scrapers.models import CanonicalRecord

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20


class DirectoryStoreError(Exception):
    """Persisted directory cannot be read."""
    pass


def write_json_atomic(path: Union[str, Path], payload: Any) -> None:
    """Serialize payload to path via a sibling temp file and os.replace()."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class DirectoryStore:
    """
    Canonical directory backed by a JSON file.

    Example:
        store = DirectoryStore("data/agency-directory.json")
        records = store.get_records()
        matches = store.search("justice")
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = Path(path or Config.DIRECTORY_PATH)
        self.ttl_seconds = (
            Config.DIRECTORY_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[List[CanonicalRecord]] = None
        self._loaded_at: float = 0.0

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> List[CanonicalRecord]:
        """
        Read the whole directory from disk (bypasses the cache).

        Returns:
            Records in stored order; [] when the file does not exist.

        Raises:
            DirectoryStoreError: File exists but is not a JSON list of records.
        """
        if not self.path.exists():
            logger.warning(f"Directory file not found: {self.path}; using empty directory")
            return []

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise DirectoryStoreError(f"Invalid JSON in {self.path}: {e}") from e

        if not isinstance(raw, list):
            raise DirectoryStoreError(
                f"Expected a list of records in {self.path}, got {type(raw).__name__}"
            )

        try:
            records = [CanonicalRecord.from_dict(item) for item in raw]
        except (KeyError, TypeError, AttributeError) as e:
            raise DirectoryStoreError(f"Malformed record in {self.path}: {e}") from e

        logger.debug(f"Loaded {len(records)} directory records from {self.path}")
        return records

    def save(self, records: Sequence[CanonicalRecord]) -> None:
        """Overwrite the directory and refresh the cache."""
        write_json_atomic(self.path, [record.to_dict() for record in records])
        with self._lock:
            self._cached = list(records)
            self._loaded_at = self._clock()
        logger.info(f"Saved {len(records)} directory records to {self.path}")

    # =========================================================================
    # Cached reads
    # =========================================================================

    def _fresh(self) -> Optional[List[CanonicalRecord]]:
        with self._lock:
            if self._cached is not None and self._clock() - self._loaded_at < self.ttl_seconds:
                return self._cached
            return None

    def get_records(self) -> List[CanonicalRecord]:
        """Directory contents, reloaded from disk at most once per TTL window per reader."""
        cached = self._fresh()
        if cached is not None:
            return cached

        records = self.load()
        with self._lock:
            self._cached = records
            self._loaded_at = self._clock()
        return records

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None
            self._loaded_at = 0.0

    def get(self, unit_id: str) -> Optional[CanonicalRecord]:
        for record in self.get_records():
            if record.unit_id == unit_id:
                return record
        return None

    def search(
        self,
        term: Optional[str] = None,
        limit: int = DEFAULT_SEARCH_LIMIT,
        with_email_only: bool = True,
    ) -> List[CanonicalRecord]:
        """
        Case-insensitive search over unit and parent names/abbreviations.

        Args:
            term: Search text; empty returns the first `limit` records
            limit: Maximum results
            with_email_only: Skip units without a known address

        Returns:
            Matching records in stored order.
        """
        records = self.get_records()
        if with_email_only:
            records = [r for r in records if r.has_email]

        needle = (term or "").strip().lower()
        if needle:
            records = [
                r for r in records
                if any(
                    needle in value.lower()
                    for value in (
                        r.name,
                        r.parent_agency_name,
                        r.abbreviation,
                        r.parent_abbreviation,
                    )
                    if value
                )
            ]
        return records[:limit]

    def stats(self) -> Dict[str, Any]:
        records = self.get_records()
        with_email = sum(1 for r in records if r.has_email)
        return {
            "path": str(self.path),
            "total": len(records),
            "with_email": with_email,
            "without_email": len(records) - with_email,
        }


# =============================================================================
# Module-level convenience functions
# =============================================================================

_store: Optional[DirectoryStore] = None


def get_directory_store() -> DirectoryStore:
    """Get global directory store instance (lazy initialization)."""
    global _store
    if _store is None:
        _store = DirectoryStore()
    return _store
