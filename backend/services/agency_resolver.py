"""
Agency Resolver - Maps a user's agency choice to a delivery channel.

Match tiers, evaluated strictly in order (first hit wins):
1. UNIT_ID: exact unit id
2. EXACT_NAME: case-insensitive name equality
3. SUBSTRING: case-insensitive containment either way; the first record in
   stored directory order wins

A matched record with at least one email resolves to EMAIL; a matched record
without one, or no match at all, resolves to PORTAL. A tier hit is final
even without an email; later tiers are not searched for a record that has
one.

Usage:
    from services.agency_resolver import resolve_agency

    result = resolve_agency(unit_id="abc-123", name="Office of Information Policy")
    if result.channel == Channel.EMAIL:
        send_to(result.email_address)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from scrapers.models import CanonicalRecord
from services.directory_store import get_directory_store

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    EMAIL = "email"
    PORTAL = "portal"


class MatchTier(str, Enum):
    UNIT_ID = "unit_id"
    EXACT_NAME = "exact_name"
    SUBSTRING = "substring"


class ResolverQueryError(ValueError):
    """Neither a unit id nor a name was supplied."""
    pass


@dataclass
class ResolutionResult:
    """Outcome of resolving one agency query."""
    channel: Channel
    record: Optional[CanonicalRecord] = None
    email_address: Optional[str] = None
    matched_by: Optional[MatchTier] = None

    def to_dict(self) -> dict:
        return {
            "channel": self.channel.value,
            "record": self.record.to_dict() if self.record else None,
            "email_address": self.email_address,
            "matched_by": self.matched_by.value if self.matched_by else None,
        }


# =============================================================================
# Matchers
# =============================================================================

def _match_unit_id(
    records: Sequence[CanonicalRecord], unit_id: Optional[str], name: Optional[str]
) -> Optional[CanonicalRecord]:
    if not unit_id:
        return None
    return next((r for r in records if r.unit_id == unit_id), None)


def _match_exact_name(
    records: Sequence[CanonicalRecord], unit_id: Optional[str], name: Optional[str]
) -> Optional[CanonicalRecord]:
    if not name:
        return None
    needle = name.lower()
    return next((r for r in records if r.name and r.name.lower() == needle), None)


def _match_substring(
    records: Sequence[CanonicalRecord], unit_id: Optional[str], name: Optional[str]
) -> Optional[CanonicalRecord]:
    if not name:
        return None
    needle = name.lower()
    for record in records:
        # An empty name is a substring of everything
        if not record.name:
            continue
        candidate = record.name.lower()
        if needle in candidate or candidate in needle:
            return record
    return None


Matcher = Callable[
    [Sequence[CanonicalRecord], Optional[str], Optional[str]],
    Optional[CanonicalRecord],
]

MATCHERS: Tuple[Tuple[MatchTier, Matcher], ...] = (
    (MatchTier.UNIT_ID, _match_unit_id),
    (MatchTier.EXACT_NAME, _match_exact_name),
    (MatchTier.SUBSTRING, _match_substring),
)


class AgencyResolver:
    """
    Resolves queries against the canonical directory.

    Args:
        load_records: Returns the current directory in stored order
            (normally DirectoryStore.get_records)
    """

    def __init__(self, load_records: Callable[[], List[CanonicalRecord]]):
        self._load_records = load_records

    def resolve(
        self,
        unit_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ResolutionResult:
        """
        Resolve a unit id and/or agency name to a delivery channel.

        Raises:
            ResolverQueryError: Both unit_id and name are absent or blank.
        """
        unit_id = (unit_id or "").strip() or None
        name = (name or "").strip() or None
        if unit_id is None and name is None:
            raise ResolverQueryError("Either unit_id or name is required")

        records = self._load_records()

        for tier, matcher in MATCHERS:
            record = matcher(records, unit_id, name)
            if record is None:
                continue

            if record.has_email:
                logger.debug(f"Resolved {unit_id or name!r} by {tier.value} -> email")
                return ResolutionResult(
                    channel=Channel.EMAIL,
                    record=record,
                    email_address=record.primary_email,
                    matched_by=tier,
                )

            logger.debug(f"Resolved {unit_id or name!r} by {tier.value} -> portal (no email)")
            return ResolutionResult(channel=Channel.PORTAL, record=record, matched_by=tier)

        logger.debug(f"No directory match for {unit_id or name!r}; falling back to portal")
        return ResolutionResult(channel=Channel.PORTAL)


# =============================================================================
# Module-level convenience functions
# =============================================================================

def resolve_agency(unit_id: Optional[str] = None, name: Optional[str] = None) -> ResolutionResult:
    """Resolve against the global directory store."""
    return AgencyResolver(get_directory_store().get_records).resolve(unit_id=unit_id, name=name)
