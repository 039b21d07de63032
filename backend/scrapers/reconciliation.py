"""
Reconciliation - Merge scraped and registry records into canonical records.

The scraped set drives the output: every scraped unit id yields exactly one
canonical record (first occurrence wins on duplicates), and registry-only
units are dropped. Per-field precedence comes from the field authority
matrix.

Deterministic for a fixed reconciled_at.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from .extraction import is_shared_intake_address
from .field_authority import resolve_field
from .models import CanonicalRecord, RegistryRecord, ScrapedRecord

logger = logging.getLogger(__name__)

CANONICAL_TEXT_FIELDS = (
    "name",
    "abbreviation",
    "parent_agency_name",
    "parent_abbreviation",
    "website",
    "postal_address",
    "phone",
    "foia_officer",
)


def utc_timestamp() -> str:
    """Current UTC time, ISO-8601 to the second."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def reconcile_one(
    scraped: ScrapedRecord,
    registry: Optional[RegistryRecord],
    reconciled_at: str,
) -> CanonicalRecord:
    """Canonical record for a single unit."""
    values = {name: resolve_field(name, registry, scraped) for name in CANONICAL_TEXT_FIELDS}

    email = resolve_field("email", registry, scraped)
    emails = [email] if email and not is_shared_intake_address(email) else []

    return CanonicalRecord(
        unit_id=scraped.unit_id,
        emails=emails,
        last_reconciled_at=reconciled_at,
        **values,
    )


def reconcile(
    scraped: Sequence[ScrapedRecord],
    registry: Sequence[RegistryRecord],
    reconciled_at: Optional[str] = None,
) -> List[CanonicalRecord]:
    """
    Build the canonical directory.

    Args:
        scraped: Scrape output (defines the output set and order)
        registry: Registry records, joined on unit_id
        reconciled_at: Stamp for every record; defaults to now (UTC)

    Returns:
        One CanonicalRecord per distinct scraped unit id, in scraped order.
    """
    stamp = reconciled_at or utc_timestamp()

    registry_by_id: Dict[str, RegistryRecord] = {}
    for record in registry:
        registry_by_id.setdefault(record.unit_id, record)

    results: List[CanonicalRecord] = []
    seen = set()
    duplicates = 0
    unmatched = 0

    for record in scraped:
        if record.unit_id in seen:
            duplicates += 1
            continue
        seen.add(record.unit_id)

        match = registry_by_id.get(record.unit_id)
        if match is None:
            unmatched += 1
        results.append(reconcile_one(record, match, stamp))

    if duplicates:
        logger.warning(f"Ignored {duplicates} duplicate scraped unit id(s)")
    if unmatched:
        logger.info(f"{unmatched} scraped unit(s) had no registry record")

    logger.info(f"Reconciled {len(results)} units")
    return results


def summarize(records: Sequence[CanonicalRecord]) -> Dict[str, Any]:
    """Totals for a reconciled directory."""
    total = len(records)
    with_email = sum(1 for r in records if r.has_email)
    return {
        "total": total,
        "with_email": with_email,
        "without_email": total - with_email,
        "email_coverage": round(with_email / total, 4) if total else 0.0,
    }
