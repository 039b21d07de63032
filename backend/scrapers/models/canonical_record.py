"""
Canonical Record - Reconciled truth for one unit.

The only structure the resolver reads. The whole set is overwritten on each
pipeline run and is read-only in between.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class CanonicalRecord:
    """Merged directory entry - the app's source of truth for a unit."""
    unit_id: str
    name: str = ""
    abbreviation: str = ""
    parent_agency_name: str = ""
    parent_abbreviation: str = ""
    emails: List[str] = field(default_factory=list)  # Priority order
    website: str = ""
    postal_address: str = ""
    phone: str = ""
    foia_officer: str = ""
    last_reconciled_at: str = ""  # ISO-8601 UTC

    @property
    def primary_email(self) -> str:
        return self.emails[0] if self.emails else ""

    @property
    def has_email(self) -> bool:
        return bool(self.emails)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (persisted form)."""
        return {
            "unit_id": self.unit_id,
            "name": self.name,
            "abbreviation": self.abbreviation,
            "parent_agency_name": self.parent_agency_name,
            "parent_abbreviation": self.parent_abbreviation,
            "emails": list(self.emails),
            "website": self.website,
            "postal_address": self.postal_address,
            "phone": self.phone,
            "foia_officer": self.foia_officer,
            "last_reconciled_at": self.last_reconciled_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CanonicalRecord":
        return cls(
            unit_id=data["unit_id"],
            name=data.get("name") or "",
            abbreviation=data.get("abbreviation") or "",
            parent_agency_name=data.get("parent_agency_name") or "",
            parent_abbreviation=data.get("parent_abbreviation") or "",
            emails=[e for e in (data.get("emails") or []) if e],
            website=data.get("website") or "",
            postal_address=data.get("postal_address") or "",
            phone=data.get("phone") or "",
            foia_officer=data.get("foia_officer") or "",
            last_reconciled_at=data.get("last_reconciled_at") or "",
        )

    def __repr__(self):
        return f"<CanonicalRecord {self.unit_id} {self.name!r} emails={len(self.emails)}>"
