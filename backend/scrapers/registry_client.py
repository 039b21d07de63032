"""
FOIA Registry API Client - Agency component enumeration

API Documentation: https://www.foia.gov/developer/

Authentication:
- API key sent as the X-API-Key header on every request

Endpoints:
- Components: GET /agency_components?include=agency&page[limit]=N&page[offset]=M
- Component:  GET /agency_components/{id}

Each page carries an `included` side-table with the parent agencies
referenced from `relationships.agency` of each component.

Failure policy:
- Transport errors are retried with backoff, then the page is failed
- A failed page stops enumeration; pages already yielded stand
  (partial enumeration is a valid outcome, not an error)

Usage:
    from scrapers.registry_client import RegistryAPIClient

    with RegistryAPIClient() as client:
        for record in client.fetch(page_size=50):
            print(record.unit_id, record.title)
"""

import time
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import requests

from config import Config
from constants import REGISTRY_COMPONENTS_PATH, REGISTRY_DOMAIN
from scrapers.models import RegistryRecord
from scrapers.rate_limiter import get_scraper_rate_limiter

logger = logging.getLogger(__name__)


# Retry configuration
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
BACKOFF_MULTIPLIER = 2.0

REQUEST_TIMEOUT_SECONDS = 30


@dataclass
class RegistryPageResponse:
    """Wrapper for one page of the components listing."""
    success: bool
    offset: int = 0
    records: List[RegistryRecord] = field(default_factory=list)
    raw_count: int = 0
    error: Optional[str] = None
    status_code: Optional[int] = None
    duration_seconds: Optional[float] = None
    retry_count: int = 0


class RegistryAPIError(Exception):
    """Registry client configuration errors."""
    pass


def _section(data: Any, key: str) -> Dict[str, Any]:
    """data[key] when it is an object, else {}."""
    value = data.get(key) if isinstance(data, dict) else None
    return value if isinstance(value, dict) else {}


def format_address(address: Optional[Dict[str, Any]]) -> str:
    """Flatten a submission_address block to 'line1, line2, City, ST 12345'."""
    if not isinstance(address, dict):
        return ""
    lines = [line for line in (address.get("address_lines") or []) if isinstance(line, str) and line]
    city = address.get("city") or ""
    state = address.get("state") or ""
    zip_code = address.get("zip") or ""

    locality = f"{city}, {state} {zip_code}".strip()
    if locality.strip(", ") == "":
        locality = ""
    return ", ".join(part for part in lines + [locality] if part)


def _collect_emails(attrs: Dict[str, Any]) -> List[str]:
    """All structured addresses, de-duplicated, first occurrence first."""
    listed = attrs.get("emails")
    if isinstance(listed, str):
        listed = [listed]
    candidates = list(listed) if isinstance(listed, list) else []
    for block in ("submission_address", "foia_officer", "request_form"):
        value = _section(attrs, block).get("email")
        if value:
            candidates.append(value)

    emails: List[str] = []
    for email in candidates:
        if not isinstance(email, str):
            continue
        email = email.strip()
        if email and email not in emails:
            emails.append(email)
    return emails


def _index_parents(included: Any) -> Dict[str, Dict[str, Any]]:
    """Parent agency resources from `included`, keyed by id."""
    if not isinstance(included, list):
        return {}
    return {
        item["id"]: item
        for item in included
        if isinstance(item, dict) and item.get("id")
    }


def parse_registry_record(
    component: Dict[str, Any],
    parents: Optional[Dict[str, Dict[str, Any]]] = None,
) -> RegistryRecord:
    """
    Convert one JSON:API component resource into a RegistryRecord.

    Args:
        component: Item from the response `data` array
        parents: Parent agency resources from `included`, keyed by id

    Returns:
        RegistryRecord (missing attributes become empty strings)
    """
    attrs = _section(component, "attributes")
    relationship = _section(_section(component, "relationships"), "agency")
    parent_id = str(_section(relationship, "data").get("id") or "")
    parent_attrs = _section((parents or {}).get(parent_id), "attributes")

    officer = _section(attrs, "foia_officer")
    liaison = _section(attrs, "public_liaison")

    return RegistryRecord(
        unit_id=str(component.get("id") or ""),
        title=attrs.get("title") or "",
        abbreviation=attrs.get("abbreviation") or "",
        parent_agency_id=parent_id,
        parent_agency_name=parent_attrs.get("name") or "",
        parent_abbreviation=parent_attrs.get("abbreviation") or "",
        structured_emails=_collect_emails(attrs),
        website=_section(attrs, "website").get("uri")
        or _section(attrs, "request_form").get("uri")
        or "",
        postal_address=format_address(attrs.get("submission_address")),
        foia_officer=officer.get("name") or "",
        phone=officer.get("phone") or liaison.get("phone") or "",
    )


class RegistryAPIClient:
    """
    Registry API client for enumerating agency components.

    Features:
    - Offset pagination with short-page termination
    - Hard page ceiling as a loop guard
    - Retry with exponential backoff on transport errors
    - Rate limiting integration

    Example:
        client = RegistryAPIClient()

        ids = client.fetch_unit_ids()
        records = client.fetch_all(page_size=50)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        max_pages: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize registry client.

        Args:
            api_key: Registry API key. Defaults to FOIA_API_KEY env var.
            base_url: API root. Defaults to FOIA_API_BASE.
            max_pages: Page ceiling per enumeration (0 disables the guard).
            session: Pre-built requests session (headers are added to it).
        """
        self.api_key = api_key or Config.FOIA_API_KEY
        if not self.api_key:
            raise RegistryAPIError(
                "FOIA_API_KEY not found. Set FOIA_API_KEY environment variable "
                "or pass api_key to constructor."
            )

        self.base_url = (base_url or Config.FOIA_API_BASE).rstrip("/")
        self.max_pages = Config.REGISTRY_MAX_PAGES if max_pages is None else max_pages

        self._session = session or requests.Session()
        self._session.headers.update({
            "X-API-Key": self.api_key,
            "Accept": "application/json",
        })
        self._rate_limiter = get_scraper_rate_limiter()

        logger.info("Registry API client initialized")

    # =========================================================================
    # Page Fetching
    # =========================================================================

    def fetch_page(self, page_size: int, offset: int) -> RegistryPageResponse:
        """
        Fetch one page of components.

        Args:
            page_size: page[limit]
            offset: page[offset]

        Returns:
            RegistryPageResponse; success=False on a non-success status,
            a malformed body, or transport errors after retries.
        """
        start_time = time.time()
        retry_count = 0
        url = f"{self.base_url}{REGISTRY_COMPONENTS_PATH}"
        params = {
            "include": "agency",
            "page[limit]": page_size,
            "page[offset]": offset,
        }

        for attempt in range(MAX_RETRIES):
            try:
                self._rate_limiter.wait(REGISTRY_DOMAIN, "components")

                response = self._session.get(
                    url, params=params, timeout=REQUEST_TIMEOUT_SECONDS
                )

                if not response.ok:
                    duration = time.time() - start_time
                    logger.warning(
                        f"Registry returned {response.status_code} for offset {offset}"
                    )
                    return RegistryPageResponse(
                        success=False,
                        offset=offset,
                        error=f"Registry API error: {response.status_code}",
                        status_code=response.status_code,
                        duration_seconds=duration,
                        retry_count=retry_count,
                    )

                payload = response.json()
                if not isinstance(payload, dict):
                    raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
                data = payload.get("data") or []
                if not isinstance(data, list):
                    raise ValueError(f"expected a data list, got {type(data).__name__}")
                parents = _index_parents(payload.get("included"))

                records = [
                    parse_registry_record(item, parents) for item in data if isinstance(item, dict)
                ]

                duration = time.time() - start_time
                logger.info(
                    f"Offset {offset}: {len(records)} components, "
                    f"{duration:.2f}s, retries={retry_count}"
                )
                return RegistryPageResponse(
                    success=True,
                    offset=offset,
                    records=records,
                    raw_count=len(data),
                    status_code=response.status_code,
                    duration_seconds=duration,
                    retry_count=retry_count,
                )

            except ValueError as e:
                duration = time.time() - start_time
                logger.warning(f"Registry returned malformed JSON at offset {offset}: {e}")
                return RegistryPageResponse(
                    success=False,
                    offset=offset,
                    error=f"Malformed registry response: {e}",
                    duration_seconds=duration,
                    retry_count=retry_count,
                )

            except requests.exceptions.RequestException as e:
                retry_count += 1
                backoff = INITIAL_BACKOFF_SECONDS * (BACKOFF_MULTIPLIER ** attempt)
                logger.warning(
                    f"Offset {offset} attempt {attempt + 1}/{MAX_RETRIES} failed: {e}. "
                    f"Retrying in {backoff:.1f}s"
                )
                if attempt < MAX_RETRIES - 1:
                    time.sleep(backoff)
                else:
                    duration = time.time() - start_time
                    return RegistryPageResponse(
                        success=False,
                        offset=offset,
                        error=f"Failed after {MAX_RETRIES} attempts: {e}",
                        duration_seconds=duration,
                        retry_count=retry_count,
                    )

        # Should not reach here
        return RegistryPageResponse(
            success=False,
            offset=offset,
            error="Unexpected error",
            duration_seconds=time.time() - start_time,
            retry_count=retry_count,
        )

    def fetch(self, page_size: Optional[int] = None) -> Iterator[RegistryRecord]:
        """
        Lazily enumerate every component.

        Stops after a page shorter than page_size, after a failed page, or
        at the page ceiling. Records from pages already fetched are kept.

        Args:
            page_size: Components per request. Defaults to REGISTRY_PAGE_SIZE.

        Yields:
            RegistryRecord in registry order.
        """
        page_size = page_size or Config.REGISTRY_PAGE_SIZE
        if page_size <= 0:
            raise ValueError(f"page_size must be positive, got {page_size}")

        page_num = 0
        while True:
            if self.max_pages and page_num >= self.max_pages:
                logger.warning(
                    f"Stopping at page ceiling ({self.max_pages} pages); "
                    f"registry may have more components"
                )
                return

            response = self.fetch_page(page_size, offset=page_num * page_size)

            if not response.success:
                logger.warning(
                    f"Registry enumeration stopped after {page_num} page(s): "
                    f"{response.error}"
                )
                return

            yield from response.records

            if response.raw_count < page_size:
                return
            page_num += 1

    def fetch_all(self, page_size: Optional[int] = None) -> List[RegistryRecord]:
        """
        Enumerate every component into a list.

        Returns:
            All records fetched before enumeration stopped.
        """
        records = list(self.fetch(page_size))
        logger.info(f"Fetched {len(records)} registry records")
        return records

    def fetch_unit_ids(self, page_size: Optional[int] = None) -> List[str]:
        """Unit ids in registry order (the scrape enumeration)."""
        return [record.unit_id for record in self.fetch(page_size) if record.unit_id]

    def fetch_unit(self, unit_id: str) -> Optional[RegistryRecord]:
        """
        Fetch a single component by id.

        Returns:
            RegistryRecord, or None when the registry cannot supply it.
        """
        url = f"{self.base_url}{REGISTRY_COMPONENTS_PATH}/{unit_id}"
        try:
            self._rate_limiter.wait(REGISTRY_DOMAIN, "component")
            response = self._session.get(
                url, params={"include": "agency"}, timeout=REQUEST_TIMEOUT_SECONDS
            )
            if not response.ok:
                logger.warning(f"Registry returned {response.status_code} for unit {unit_id}")
                return None
            payload = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f"Could not fetch unit {unit_id}: {e}")
            return None

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            return None
        return parse_registry_record(data, _index_parents(payload.get("included")))

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# =============================================================================
# Module-level convenience functions
# =============================================================================

_client: Optional[RegistryAPIClient] = None


def get_registry_client() -> RegistryAPIClient:
    """
    Get global registry client instance (lazy initialization).

    Returns:
        Shared RegistryAPIClient instance.
    """
    global _client
    if _client is None:
        _client = RegistryAPIClient()
    return _client
