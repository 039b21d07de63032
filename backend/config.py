import os
from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    # Upstream registry (api.foia.gov) - key is sent as X-API-Key
    FOIA_API_KEY = os.getenv('FOIA_API_KEY', '')
    FOIA_API_BASE = os.getenv('FOIA_API_BASE', 'https://api.foia.gov/api')

    # Pagination. MAX_PAGES only guards against a registry that never
    # returns a short page.
    REGISTRY_PAGE_SIZE = int(os.getenv('REGISTRY_PAGE_SIZE', '50'))
    REGISTRY_MAX_PAGES = int(os.getenv('REGISTRY_MAX_PAGES', '50'))

    # Browser scraping
    SCRAPER_CONCURRENCY = int(os.getenv('SCRAPER_CONCURRENCY', '10'))
    SCRAPER_NAVIGATION_TIMEOUT_MS = int(os.getenv('SCRAPER_NAVIGATION_TIMEOUT_MS', '15000'))
    SCRAPER_SETTLE_MS = int(os.getenv('SCRAPER_SETTLE_MS', '500'))
    SCRAPER_REVEAL_SETTLE_MS = int(os.getenv('SCRAPER_REVEAL_SETTLE_MS', '800'))
    SCRAPER_TASK_TIMEOUT_SECONDS = float(os.getenv('SCRAPER_TASK_TIMEOUT_SECONDS', '30'))
    SCRAPER_HEADLESS = _get_bool('SCRAPER_HEADLESS', 'true')
    SCRAPER_RATE_LIMIT_CONFIG = os.getenv('SCRAPER_RATE_LIMIT_CONFIG')

    # Directory persistence
    DIRECTORY_PATH = os.getenv('DIRECTORY_PATH', 'data/agency-directory.json')
    SCRAPED_SNAPSHOT_PATH = os.getenv('SCRAPED_SNAPSHOT_PATH', 'data/scraped-units.json')
    DIRECTORY_CACHE_TTL_SECONDS = int(os.getenv('DIRECTORY_CACHE_TTL_SECONDS', str(24 * 60 * 60)))
