"""
Transaction tracking and queued deployments.
"""

from .models import JobPriority, JobState, QueuedJob
from .queue import DeploymentQueue, job_key
from .tracker import TransactionTracker

__all__ = [
    "JobPriority",
    "JobState",
    "QueuedJob",
    "DeploymentQueue",
    "job_key",
    "TransactionTracker",
]
