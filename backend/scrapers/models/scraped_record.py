"""
Scraped Record - What one visit to a unit's public page produced.

One record per unit per scrape run. A failed visit still yields a record
(a placeholder with every optional field empty) so the enumeration stays
complete.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class ParseStatus(str, Enum):
    """Outcome of a single page visit."""
    SUCCESS = "success"
    FAILED = "failed"  # Navigation/extraction failed; placeholder record


@dataclass
class ScrapedRecord:
    """Contact details extracted from a unit's request page."""
    unit_id: str
    display_name: str = ""
    extracted_email: str = ""  # Empty means unknown, not an error
    phone: str = ""
    postal_address_text: str = ""
    source_url: str = ""
    foia_officer: str = ""
    parse_status: ParseStatus = ParseStatus.SUCCESS

    @classmethod
    def placeholder(cls, unit_id: str, source_url: str = "") -> "ScrapedRecord":
        """Empty-field record for a visit that failed or timed out."""
        return cls(
            unit_id=unit_id,
            source_url=source_url,
            parse_status=ParseStatus.FAILED,
        )

    @property
    def is_placeholder(self) -> bool:
        return self.parse_status == ParseStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "unit_id": self.unit_id,
            "display_name": self.display_name,
            "extracted_email": self.extracted_email,
            "phone": self.phone,
            "postal_address_text": self.postal_address_text,
            "source_url": self.source_url,
            "foia_officer": self.foia_officer,
            "parse_status": self.parse_status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScrapedRecord":
        return cls(
            unit_id=data["unit_id"],
            display_name=data.get("display_name") or "",
            extracted_email=data.get("extracted_email") or "",
            phone=data.get("phone") or "",
            postal_address_text=data.get("postal_address_text") or "",
            source_url=data.get("source_url") or "",
            foia_officer=data.get("foia_officer") or "",
            parse_status=ParseStatus(data.get("parse_status") or ParseStatus.SUCCESS.value),
        )

    def __repr__(self):
        return f"<ScrapedRecord {self.unit_id} email={self.extracted_email or '-'} status={self.parse_status.value}>"
