"""
Registry Record - One agency component as described by the registry API.

Transient: re-fetched on every pipeline run and never persisted.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass
class RegistryRecord:
    """Structured attributes of a unit from api.foia.gov."""
    unit_id: str
    title: str = ""
    abbreviation: str = ""
    parent_agency_id: str = ""
    parent_agency_name: str = ""
    parent_abbreviation: str = ""
    structured_emails: List[str] = field(default_factory=list)
    website: str = ""
    postal_address: str = ""
    foia_officer: str = ""
    phone: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RegistryRecord":
        return cls(
            unit_id=data["unit_id"],
            title=data.get("title") or "",
            abbreviation=data.get("abbreviation") or "",
            parent_agency_id=data.get("parent_agency_id") or "",
            parent_agency_name=data.get("parent_agency_name") or "",
            parent_abbreviation=data.get("parent_abbreviation") or "",
            structured_emails=list(data.get("structured_emails") or []),
            website=data.get("website") or "",
            postal_address=data.get("postal_address") or "",
            foia_officer=data.get("foia_officer") or "",
            phone=data.get("phone") or "",
        )

    def __repr__(self):
        return f"<RegistryRecord {self.unit_id} {self.title!r}>"
