"""Result types produced by an ingestion run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RecordStatus(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REJECTED = "rejected"  # failed validation
    FAILED = "failed"  # failed while persisting


@dataclass(slots=True)
class RecordOutcome:
    """What happened to a single record of a batch."""

    status: RecordStatus
    label: str
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def is_error(self) -> bool:
        return self.status in (RecordStatus.REJECTED, RecordStatus.FAILED)

    @classmethod
    def failed(cls, label: str, cause: str, warnings: Optional[List[str]] = None) -> "RecordOutcome":
        return cls(RecordStatus.FAILED, label, error=f"{label}: {cause}", warnings=list(warnings or []))

    @classmethod
    def rejected(cls, label: str, cause: str, warnings: Optional[List[str]] = None) -> "RecordOutcome":
        return cls(RecordStatus.REJECTED, label, error=f"{label}: {cause}", warnings=list(warnings or []))


@dataclass(slots=True)
class BatchResult:
    timestamp: datetime
    batch_size: int = 0
    processed: int = 0
    added: int = 0
    updated: int = 0
    rejected: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        # Strictly below half the batch; a cancelled run left records unattempted.
        if self.cancelled:
            return False
        return len(self.errors) < self.batch_size / 2

    @property
    def validation_failure_rate(self) -> float:
        if not self.batch_size:
            return 0.0
        return self.rejected / self.batch_size

    def absorb(self, outcome: RecordOutcome) -> "BatchResult":
        self.warnings.extend(outcome.warnings)
        if outcome.is_error:
            self.errors.append(outcome.error or outcome.label)
            if outcome.status is RecordStatus.REJECTED:
                self.rejected += 1
            return self
        self.processed += 1
        if outcome.status is RecordStatus.ADDED:
            self.added += 1
        else:
            self.updated += 1
        return self

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "processed": self.processed,
            "added": self.added,
            "updated": self.updated,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "timestamp": self.timestamp.isoformat(),
            "cancelled": self.cancelled,
        }
