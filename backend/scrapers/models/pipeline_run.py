"""
Pipeline Run - Job tracking for one directory pipeline execution.

Tracks:
- Run lifecycle (pending -> running -> completed/failed)
- Statistics (registry records, units scraped, placeholders, emails found)
- Diff against the previously stored directory
- Configuration snapshot for reproducibility

There is no checkpoint: a run that fails before the final write leaves the
stored directory untouched and must be re-run from scratch.
"""
import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PipelineRun:
    """Tracks a single acquisition/reconciliation run."""
    mode: str = "full"  # full, merge
    run_id: str = field(default_factory=lambda: str(uuid4()))
    status: RunStatus = RunStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    stats: Dict[str, int] = field(default_factory=dict)
    diff_summary: Dict[str, int] = field(default_factory=dict)
    config_snapshot: Dict[str, Any] = field(default_factory=dict)
    dry_run: bool = False
    error_message: Optional[str] = None
    error_traceback: Optional[str] = None

    def start(self):
        """Mark run as started."""
        self.status = RunStatus.RUNNING
        self.started_at = _utcnow()

    def complete(self, stats: Optional[Dict[str, int]] = None):
        """Mark run as completed with stats."""
        self.status = RunStatus.COMPLETED
        self.completed_at = _utcnow()
        if stats:
            self.stats.update(stats)

    def fail(self, error: Exception):
        """Mark run as failed with error."""
        self.status = RunStatus.FAILED
        self.completed_at = _utcnow()
        self.error_message = str(error)
        self.error_traceback = traceback.format_exc()

    def increment_stat(self, stat_name: str, amount: int = 1):
        self.stats[stat_name] = self.stats.get(stat_name, 0) + amount

    @property
    def duration_seconds(self) -> float:
        """Calculate run duration in seconds."""
        if not self.started_at:
            return 0
        end = self.completed_at or _utcnow()
        return (end - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "run_id": self.run_id,
            "mode": self.mode,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "stats": dict(self.stats),
            "diff_summary": dict(self.diff_summary),
            "config_snapshot": dict(self.config_snapshot),
            "dry_run": self.dry_run,
            "error_message": self.error_message,
        }

    def __repr__(self):
        return f"<PipelineRun {self.run_id[:8]} {self.mode} {self.status.value}>"
