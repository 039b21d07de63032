"""
Agency Directory Acquisition Package

Builds the canonical FOIA agency directory from two sources:
- Registry API (structured agency components)
- Unit request pages (browser-rendered contact details)

and reconciles them with a field authority matrix.

The pipeline lives in scrapers.orchestrator and is imported from there; it
depends on services.directory_store, which itself imports scrapers.models.
"""

from .models import CanonicalRecord, RegistryRecord, ScrapedRecord
from .extraction import extract, is_shared_intake_address
from .reconciliation import reconcile

__all__ = [
    "CanonicalRecord",
    "RegistryRecord",
    "ScrapedRecord",
    "extract",
    "is_shared_intake_address",
    "reconcile",
]
