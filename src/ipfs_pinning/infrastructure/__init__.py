"""Infrastructure adapters."""

from .job_queue import JobSnapshot, PinningJobQueue, QueueJobStatus

__all__ = ["JobSnapshot", "PinningJobQueue", "QueueJobStatus"]
