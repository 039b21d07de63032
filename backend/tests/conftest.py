"""
Pytest configuration for backend tests.

Provides:
- backend/ on sys.path (imports like `from scrapers.models import ...`)
- Shared record factories and a temporary directory store
"""

import sys
from pathlib import Path

# Add backend directory to Python path so imports like
# `from scrapers.extraction import ...` and `from services.directory_store import ...` work
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest

from scrapers.models import CanonicalRecord, RegistryRecord, ScrapedRecord


RECONCILED_AT = "2024-01-15T12:00:00+00:00"


@pytest.fixture
def make_registry():
    def _make(unit_id, title="", **kwargs):
        return RegistryRecord(unit_id=unit_id, title=title, **kwargs)
    return _make


@pytest.fixture
def make_scraped():
    def _make(unit_id, email="", name="", **kwargs):
        return ScrapedRecord(unit_id=unit_id, extracted_email=email, display_name=name, **kwargs)
    return _make


@pytest.fixture
def make_canonical():
    def _make(unit_id, name="", emails=None, **kwargs):
        kwargs.setdefault("last_reconciled_at", RECONCILED_AT)
        return CanonicalRecord(unit_id=unit_id, name=name, emails=list(emails or []), **kwargs)
    return _make


@pytest.fixture
def directory_store(tmp_path):
    """Empty DirectoryStore writing to a temp file."""
    from services.directory_store import DirectoryStore

    return DirectoryStore(tmp_path / "agency-directory.json", ttl_seconds=60)
