"""
Directory Pipeline - Coordinates registry fetch, scraping, reconciliation
and the final directory write.

Run sequence:
1. Fetch the registry once (ids in registry order + registry records)
2. Scrape every unit page through the scraper pool
3. Save the scraped snapshot (so a merge can be redone without re-scraping)
4. Reconcile scraped vs registry
5. Diff against the stored directory
6. Overwrite the stored directory (skipped on dry run, and when the run
   produced no records while the stored directory has some)

Nothing is written before step 3, and the directory only at step 6: a crash
mid-run leaves the previous directory in place and the run must start over.
"""
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from config import Config
from services.directory_store import DirectoryStore, get_directory_store, write_json_atomic

from .models import PipelineRun, RegistryRecord, ScrapedRecord
from .reconciliation import reconcile, summarize
from .registry_client import RegistryAPIClient
from .scraper_pool import ScraperPool
from .utils.diff import compute_directory_diff

logger = logging.getLogger(__name__)


def save_scraped_snapshot(path: Union[str, Path], records: Sequence[ScrapedRecord]) -> None:
    write_json_atomic(path, [record.to_dict() for record in records])
    logger.info(f"Saved {len(records)} scraped records to {path}")


def load_scraped_snapshot(path: Union[str, Path]) -> List[ScrapedRecord]:
    """Read a scraped snapshot written by save_scraped_snapshot()."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return [ScrapedRecord.from_dict(item) for item in raw]


class DirectoryPipeline:
    """
    Main orchestrator for directory builds.

    Args:
        registry_client: RegistryAPIClient (built from Config if omitted)
        store: DirectoryStore to overwrite (global store if omitted)
        scraper_pool: ScraperPool (built from Config if omitted)
        page_size: Registry page size
        snapshot_path: Where the scraped snapshot is written/read
    """

    def __init__(
        self,
        registry_client: Optional[RegistryAPIClient] = None,
        store: Optional[DirectoryStore] = None,
        scraper_pool: Optional[ScraperPool] = None,
        page_size: Optional[int] = None,
        snapshot_path: Optional[Union[str, Path]] = None,
    ):
        self._registry_client = registry_client
        self.store = store or get_directory_store()
        self.scraper_pool = scraper_pool or ScraperPool()
        self.page_size = page_size or Config.REGISTRY_PAGE_SIZE
        self.snapshot_path = Path(snapshot_path or Config.SCRAPED_SNAPSHOT_PATH)

    @property
    def registry_client(self) -> RegistryAPIClient:
        # Deferred so commands that never touch the registry need no API key
        if self._registry_client is None:
            self._registry_client = RegistryAPIClient()
        return self._registry_client

    def _config_snapshot(self, limit: Optional[int] = None) -> dict:
        return {
            "page_size": self.page_size,
            "concurrency": self.scraper_pool.concurrency,
            "limit": limit,
            "directory_path": str(self.store.path),
            "snapshot_path": str(self.snapshot_path),
        }

    # =========================================================================
    # Full run
    # =========================================================================

    def run(self, limit: Optional[int] = None, dry_run: bool = False) -> PipelineRun:
        """
        Fetch, scrape, reconcile and store the directory.

        Args:
            limit: Only scrape the first N registry units
            dry_run: Do everything except writing files

        Returns:
            PipelineRun with stats and diff summary (status FAILED on error)
        """
        run = PipelineRun(mode="full", dry_run=dry_run, config_snapshot=self._config_snapshot(limit))
        run.start()
        logger.info(f"Starting directory run {run.run_id}")

        try:
            registry = self.registry_client.fetch_all(self.page_size)
            run.stats["registry_records"] = len(registry)

            unit_ids = [r.unit_id for r in registry if r.unit_id]
            if limit is not None:
                unit_ids = unit_ids[:limit]

            scraped = self.scraper_pool.scrape(unit_ids)
            run.stats["units_scraped"] = len(scraped)
            run.stats["placeholders"] = sum(1 for r in scraped if r.is_placeholder)

            if not dry_run:
                save_scraped_snapshot(self.snapshot_path, scraped)

            self._reconcile_and_store(run, scraped, registry)

        except Exception as e:
            logger.error(f"Directory run failed: {e}")
            run.fail(e)
            return run

        logger.info(f"Directory run {run.run_id} completed in {run.duration_seconds:.1f}s")
        return run

    # =========================================================================
    # Merge only
    # =========================================================================

    def merge(
        self,
        scraped: Optional[Sequence[ScrapedRecord]] = None,
        dry_run: bool = False,
    ) -> PipelineRun:
        """
        Re-reconcile a scraped snapshot against a fresh registry fetch.

        Args:
            scraped: Records to merge; read from snapshot_path when omitted
            dry_run: Skip the directory write
        """
        run = PipelineRun(mode="merge", dry_run=dry_run, config_snapshot=self._config_snapshot())
        run.start()

        try:
            if scraped is None:
                scraped = load_scraped_snapshot(self.snapshot_path)
                logger.info(f"Loaded {len(scraped)} scraped records from {self.snapshot_path}")
            run.stats["units_scraped"] = len(scraped)

            registry = self.registry_client.fetch_all(self.page_size)
            run.stats["registry_records"] = len(registry)

            self._reconcile_and_store(run, scraped, registry)

        except Exception as e:
            logger.error(f"Directory merge failed: {e}")
            run.fail(e)
            return run

        return run

    def _reconcile_and_store(
        self,
        run: PipelineRun,
        scraped: Sequence[ScrapedRecord],
        registry: Sequence[RegistryRecord],
    ) -> None:
        canonical = reconcile(scraped, registry)
        summary = summarize(canonical)
        run.stats["canonical_records"] = summary["total"]
        run.stats["with_email"] = summary["with_email"]
        run.stats["without_email"] = summary["without_email"]

        previous = self.store.load()
        diff = compute_directory_diff(previous, canonical)
        run.diff_summary = diff.summary()
        logger.info(f"Diff vs stored directory: {run.diff_summary}")

        if run.dry_run:
            logger.info("Dry run: directory not written")
        elif not canonical and previous:
            # Empty result usually means the registry or scraper came back empty
            logger.warning(
                f"Reconciliation produced no records; keeping the stored directory "
                f"({len(previous)} records)"
            )
            run.stats["directory_write_skipped"] = 1
        else:
            self.store.save(canonical)

        run.complete()
