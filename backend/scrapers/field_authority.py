"""
Field Authority Matrix - Controls which source supplies each canonical field.

Two sources feed a canonical record:
- REGISTRY: the structured agency-components API
- SCRAPED: the unit's public request page

Most fields prefer the registry and fall back to the page. Email is the
exception: the page is authoritative because the registry rarely exposes a
directly usable intake address.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .models import RegistryRecord, ScrapedRecord


class SourceKind(Enum):
    """Where a canonical field value can come from."""
    REGISTRY = "registry"
    SCRAPED = "scraped"


@dataclass(frozen=True)
class FieldAuthority:
    """Configuration for a single field's authority rules."""
    field_name: str
    precedence: Tuple[SourceKind, ...]  # First non-empty value wins
    registry_attr: Optional[str]  # Attribute on RegistryRecord
    scraped_attr: Optional[str]  # Attribute on ScrapedRecord
    description: str

    def attr_for(self, source: SourceKind) -> Optional[str]:
        if source == SourceKind.REGISTRY:
            return self.registry_attr
        return self.scraped_attr


def _registry_first(field_name: str, scraped_attr: Optional[str], description: str) -> FieldAuthority:
    return FieldAuthority(
        field_name=field_name,
        precedence=(SourceKind.REGISTRY, SourceKind.SCRAPED),
        registry_attr="title" if field_name == "name" else field_name,
        scraped_attr=scraped_attr,
        description=description,
    )


FIELD_AUTHORITY_RULES: Dict[str, FieldAuthority] = {
    "name": _registry_first("name", "display_name", "Unit title, else page heading"),
    "abbreviation": _registry_first("abbreviation", None, "Registry only in practice"),
    "parent_agency_name": _registry_first("parent_agency_name", None, "From the included side-table"),
    "parent_abbreviation": _registry_first("parent_abbreviation", None, "From the included side-table"),
    "website": _registry_first("website", "source_url", "Registry website, else the unit page"),
    "postal_address": _registry_first("postal_address", "postal_address_text", "Formatted submission address"),
    "phone": _registry_first("phone", "phone", "Officer/liaison phone"),
    "foia_officer": _registry_first("foia_officer", "foia_officer", "Officer name"),
    "email": FieldAuthority(
        field_name="email",
        precedence=(SourceKind.SCRAPED,),
        registry_attr=None,
        scraped_attr="extracted_email",
        description="Page-extracted address is authoritative",
    ),
}


def get_rule(field_name: str) -> FieldAuthority:
    """Authority rule for a canonical field (KeyError if unknown)."""
    return FIELD_AUTHORITY_RULES[field_name]


def resolve_field(
    field_name: str,
    registry: Optional[RegistryRecord],
    scraped: Optional[ScrapedRecord],
) -> Any:
    """
    Value for one canonical field.

    Args:
        field_name: Canonical field name (see FIELD_AUTHORITY_RULES)
        registry: Matching registry record, if any
        scraped: Scraped record, if any

    Returns:
        First non-empty value in precedence order, else ''.
    """
    rule = get_rule(field_name)
    records = {SourceKind.REGISTRY: registry, SourceKind.SCRAPED: scraped}

    for source in rule.precedence:
        record = records[source]
        attr = rule.attr_for(source)
        if record is None or attr is None:
            continue
        value = getattr(record, attr, "")
        if isinstance(value, str):
            value = value.strip()
        if value:
            return value
    return ""
