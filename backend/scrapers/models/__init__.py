"""Directory record models."""

from .registry_record import RegistryRecord
from .scraped_record import ScrapedRecord, ParseStatus
from .canonical_record import CanonicalRecord
from .pipeline_run import PipelineRun, RunStatus

__all__ = [
    "RegistryRecord",
    "ScrapedRecord",
    "ParseStatus",
    "CanonicalRecord",
    "PipelineRun",
    "RunStatus",
]
