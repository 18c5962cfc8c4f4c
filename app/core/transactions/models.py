"""Queue job model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class JobState(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


class JobPriority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class QueuedJob:
    """Status of one queued deployment, as persisted under its job id."""

    job_id: str
    priority: JobPriority = JobPriority.NORMAL
    state: JobState = JobState.QUEUED
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    metadata: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    error: Optional[Dict[str, Any]] = None

    def transition(self, state: JobState) -> None:
        self.state = state
        self.updated_at = _now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transactionId": self.job_id,
            "status": self.state.value,
            "priority": self.priority.value,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "metadata": self.metadata,
            "result": self.result,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueuedJob":
        return cls(
            job_id=data["transactionId"],
            priority=JobPriority(data.get("priority", JobPriority.NORMAL.value)),
            state=JobState(data.get("status", JobState.QUEUED.value)),
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data.get("updatedAt") or data["createdAt"]),
            metadata=dict(data.get("metadata") or {}),
            result=data.get("result"),
            error=data.get("error"),
        )


__all__ = ["JobState", "JobPriority", "QueuedJob"]
