"""Background workers for the ticket inventory service."""

from .hold_expiry_worker import HoldExpiryWorker
from .manager import WorkerManager, worker_manager

__all__ = ["HoldExpiryWorker", "WorkerManager", "worker_manager"]
