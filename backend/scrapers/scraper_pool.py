"""
Concurrent scraper pool for unit request pages.

One Chromium process, one browser context, and a fixed set of long-lived
pages (workers) reused across batches. Unit ids are processed in consecutive
batches of `concurrency`; a batch is fully awaited before the next starts, so
no more than `concurrency` pages are ever navigating at once.

Each task:
    acquire worker -> goto -> settle -> reveal tab (if present) -> capture
    -> release worker -> extract

A task that raises or overruns its timeout yields a placeholder record; the
batch continues. Result i always corresponds to input i.

Usage:
    pool = ScraperPool(concurrency=10)
    records = pool.scrape(unit_ids)
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from config import Config
from constants import (
    HEADING_SELECTOR,
    MAILTO_SELECTOR,
    REVEAL_TAB_SELECTOR,
    SCRAPER_USER_AGENT,
    unit_page_url,
)
from scrapers.extraction import PageSnapshot, extract_snapshot
from scrapers.models import ParseStatus, ScrapedRecord

logger = logging.getLogger(__name__)


class WorkerQueue:
    """Fixed set of reusable pages; a task holds one worker at a time."""

    def __init__(self, workers: Sequence[Any]):
        self._queue: asyncio.Queue = asyncio.Queue()
        for worker in workers:
            self._queue.put_nowait(worker)
        self.size = len(workers)

    async def acquire(self):
        return await self._queue.get()

    def release(self, worker) -> None:
        self._queue.put_nowait(worker)


class ScraperPool:
    """
    Batch scraper over a fixed pool of browser pages.

    Args:
        concurrency: Worker pages and batch size
        navigation_timeout_ms: goto() timeout
        settle_ms: Wait after DOMContentLoaded
        reveal_settle_ms: Wait after clicking the reveal tab
        task_timeout_seconds: Hard ceiling for one unit
        headless: Launch Chromium headless
        user_agent: Browser context user agent
    """

    def __init__(
        self,
        concurrency: Optional[int] = None,
        navigation_timeout_ms: Optional[int] = None,
        settle_ms: Optional[int] = None,
        reveal_settle_ms: Optional[int] = None,
        task_timeout_seconds: Optional[float] = None,
        headless: Optional[bool] = None,
        user_agent: str = SCRAPER_USER_AGENT,
    ):
        self.concurrency = concurrency or Config.SCRAPER_CONCURRENCY
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        self.navigation_timeout_ms = (
            Config.SCRAPER_NAVIGATION_TIMEOUT_MS if navigation_timeout_ms is None
            else navigation_timeout_ms
        )
        self.settle_ms = Config.SCRAPER_SETTLE_MS if settle_ms is None else settle_ms
        self.reveal_settle_ms = (
            Config.SCRAPER_REVEAL_SETTLE_MS if reveal_settle_ms is None else reveal_settle_ms
        )
        self.task_timeout_seconds = (
            Config.SCRAPER_TASK_TIMEOUT_SECONDS if task_timeout_seconds is None
            else task_timeout_seconds
        )
        self.headless = Config.SCRAPER_HEADLESS if headless is None else headless
        self.user_agent = user_agent

    # =========================================================================
    # Entry points
    # =========================================================================

    def scrape(self, unit_ids: Sequence[str]) -> List[ScrapedRecord]:
        """Synchronous wrapper around scrape_async()."""
        return asyncio.run(self.scrape_async(unit_ids))

    async def scrape_async(self, unit_ids: Sequence[str]) -> List[ScrapedRecord]:
        """Launch the browser, scrape every unit, close the browser."""
        unit_ids = list(unit_ids)
        if not unit_ids:
            return []

        worker_count = min(self.concurrency, len(unit_ids))
        logger.info(
            f"Scraping {len(unit_ids)} unit pages with {worker_count} workers"
        )

        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=self.headless)
            try:
                context = await browser.new_context(user_agent=self.user_agent)
                workers = [await context.new_page() for _ in range(worker_count)]
                return await self.scrape_with_workers(workers, unit_ids)
            finally:
                await browser.close()

    async def scrape_with_workers(
        self,
        workers: Sequence[Any],
        unit_ids: Sequence[str],
    ) -> List[ScrapedRecord]:
        """
        Scrape unit_ids using already-open pages.

        Batches are len(workers) wide; the browser lifecycle belongs to the
        caller.
        """
        if not workers:
            raise ValueError("At least one worker page is required")

        queue = WorkerQueue(workers)
        batch_size = queue.size
        results: List[ScrapedRecord] = []
        total = len(unit_ids)

        for start in range(0, total, batch_size):
            batch = unit_ids[start:start + batch_size]
            logger.info(f"Batch {start + 1}-{start + len(batch)} of {total}")

            batch_results = await asyncio.gather(
                *(self._scrape_unit(queue, unit_id) for unit_id in batch)
            )
            results.extend(batch_results)

        failed = sum(1 for r in results if r.parse_status == ParseStatus.FAILED)
        with_email = sum(1 for r in results if r.extracted_email)
        logger.info(
            f"Scraped {len(results)} units: {with_email} with email, {failed} failed"
        )
        return results

    # =========================================================================
    # Per-unit task
    # =========================================================================

    async def _scrape_unit(self, queue: WorkerQueue, unit_id: str) -> ScrapedRecord:
        url = unit_page_url(unit_id)
        worker = await queue.acquire()
        try:
            snapshot = await asyncio.wait_for(
                self._visit(worker, url), timeout=self.task_timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(f"Timed out scraping {unit_id} after {self.task_timeout_seconds}s")
            return ScrapedRecord.placeholder(unit_id, url)
        except Exception as e:
            logger.warning(f"Failed to scrape {unit_id}: {e}")
            return ScrapedRecord.placeholder(unit_id, url)
        finally:
            queue.release(worker)

        try:
            result = extract_snapshot(snapshot)
        except Exception as e:
            logger.warning(f"Extraction failed for {unit_id}: {e}")
            return ScrapedRecord.placeholder(unit_id, url)

        return ScrapedRecord(
            unit_id=unit_id,
            display_name=result.name,
            extracted_email=result.email,
            phone=result.phone,
            postal_address_text=result.address,
            source_url=url,
            foia_officer=result.foia_officer,
        )

    async def _visit(self, page, url: str) -> PageSnapshot:
        await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
        await page.wait_for_timeout(self.settle_ms)
        await self._reveal(page)
        return await self._capture(page, url)

    async def _reveal(self, page) -> None:
        """Click the contact-info tab when the page has one."""
        try:
            tab = await page.query_selector(REVEAL_TAB_SELECTOR)
            if tab is None:
                return
            await tab.click()
            await page.wait_for_timeout(self.reveal_settle_ms)
        except PlaywrightError as e:
            # Tab present but not clickable; capture what is visible
            logger.debug(f"Reveal tab not usable on {page.url}: {e}")

    async def _capture(self, page, url: str) -> PageSnapshot:
        text = await page.inner_text("body")
        hrefs = await page.eval_on_selector_all(
            MAILTO_SELECTOR, "els => els.map(e => e.getAttribute('href'))"
        )
        heading_el = await page.query_selector(HEADING_SELECTOR)
        heading = (await heading_el.text_content() or "") if heading_el else ""

        return PageSnapshot(
            url=url,
            text=text or "",
            mailto_hrefs=[h for h in (hrefs or []) if h],
            heading=heading,
        )
