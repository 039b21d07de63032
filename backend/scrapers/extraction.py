"""
Contact extraction for unit request pages.

Pure functions over a captured page state (rendered text, mailto hrefs,
heading). Nothing here touches a browser, so the same heuristics run on a
live Playwright page or on a saved HTML fixture.

Email selection order:
1. First mailto: target that is not the portal's shared intake address
2. Otherwise .gov/.mil/.us tokens from the rendered text (shared address
   excluded), preferring ones containing "foia" or "request"
3. Otherwise empty (unknown, not an error)
"""

import re
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from urllib.parse import unquote

from bs4 import BeautifulSoup

from constants import GENERIC_PAGE_HEADINGS, SHARED_INTAKE_MAILBOX

logger = logging.getLogger(__name__)


EMAIL_PATTERN = re.compile(r'[\w.-]+@[\w.-]+\.(?:gov|mil|us)\b', re.I)
OFFICER_PATTERN = re.compile(
    r'(?:FOIA (?:Officer|Contact|Public Liaison)|Service Center)[:\s]+([A-Za-z .-]+?)[ \t]*(?:\n|$)',
    re.I,
)
PHONE_PATTERN = re.compile(r'\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}')
ADDRESS_PATTERN = re.compile(r'(?:\d+[^,\n]+,\s*)?[A-Za-z ]+,\s*[A-Z]{2}\s+\d{5}')

PREFERRED_EMAIL_HINTS = ('foia', 'request')


@dataclass
class PageSnapshot:
    """Page state captured after navigation and the optional reveal."""
    url: str
    text: str = ""
    mailto_hrefs: List[str] = field(default_factory=list)
    heading: str = ""


@dataclass
class ExtractionResult:
    """Best-effort contact fields; every field is empty on a miss."""
    email: str = ""
    name: str = ""
    foia_officer: str = ""
    phone: str = ""
    address: str = ""


def is_shared_intake_address(address: Optional[str]) -> bool:
    """True for the portal-wide intake mailbox shown on every unit page."""
    return bool(address) and SHARED_INTAKE_MAILBOX in address.lower()


def _mailto_address(href: str) -> str:
    """'mailto:a@b.gov?subject=x' -> 'a@b.gov'; '' if not an address."""
    if not href:
        return ""
    target = href.strip()
    if target.lower().startswith("mailto:"):
        target = target[len("mailto:"):]
    target = unquote(target.split("?", 1)[0]).strip()
    # Multiple recipients: take the first
    target = target.split(",", 1)[0].strip()
    return target if "@" in target else ""


def extract_email(rendered_text: str, mailto_hrefs: Iterable[str] = ()) -> str:
    """
    Pick the unit's contact address.

    Args:
        rendered_text: Visible page text
        mailto_hrefs: href attributes of mailto: anchors, in document order

    Returns:
        Chosen address, or '' when no candidate survives.
    """
    for href in mailto_hrefs or ():
        address = _mailto_address(href)
        if address and not is_shared_intake_address(address):
            return address

    candidates = [
        match.group(0)
        for match in EMAIL_PATTERN.finditer(rendered_text or "")
        if not is_shared_intake_address(match.group(0))
    ]
    if not candidates:
        return ""

    for candidate in candidates:
        lowered = candidate.lower()
        if any(hint in lowered for hint in PREFERRED_EMAIL_HINTS):
            return candidate
    return candidates[0]


def extract_name(heading: Optional[str]) -> str:
    """Trimmed heading text; the site's own banner heading counts as no name."""
    name = " ".join((heading or "").split())
    if name.lower() in GENERIC_PAGE_HEADINGS:
        return ""
    return name


def _first_match(pattern: re.Pattern, text: str, group: int = 0) -> str:
    match = pattern.search(text or "")
    return match.group(group).strip() if match else ""


def extract(
    rendered_text: str,
    mailto_hrefs: Iterable[str] = (),
    heading: str = "",
) -> ExtractionResult:
    """
    Run every heuristic over one page state.

    Never raises on odd input; anything not found comes back empty.
    """
    text = rendered_text or ""
    return ExtractionResult(
        email=extract_email(text, mailto_hrefs),
        name=extract_name(heading),
        foia_officer=_first_match(OFFICER_PATTERN, text, group=1),
        phone=_first_match(PHONE_PATTERN, text),
        address=_first_match(ADDRESS_PATTERN, text),
    )


def extract_snapshot(snapshot: PageSnapshot) -> ExtractionResult:
    return extract(snapshot.text, snapshot.mailto_hrefs, snapshot.heading)


def snapshot_from_html(html: str, url: str = "") -> PageSnapshot:
    """
    Build a PageSnapshot from static HTML.

    Used for saved pages and fixtures; the live scraper captures the same
    three pieces from the browser instead.
    """
    soup = BeautifulSoup(html or "", 'html.parser')

    heading_tag = soup.find('h1')
    heading = heading_tag.get_text(" ", strip=True) if heading_tag else ""

    mailto_hrefs = [
        anchor['href']
        for anchor in soup.find_all('a', href=True)
        if anchor['href'].lower().startswith('mailto:')
    ]

    for tag in soup(['script', 'style', 'noscript']):
        tag.decompose()
    text = soup.get_text("\n")

    return PageSnapshot(url=url, text=text, mailto_hrefs=mailto_hrefs, heading=heading)
