"""Exceptions raised by the sync pipeline"""
from typing import Optional


class SyncError(Exception):
    """Base class for sync failures"""


class SyncInProgressError(SyncError):
    """A sync was triggered while another one is still running"""

    def __init__(self, message: str = "A sync is already in progress. Please wait."):
        super().__init__(message)


class UnknownSyncTypeError(SyncError):
    def __init__(self, sync_type: str):
        super().__init__(f"Unknown sync type: {sync_type}")
        self.sync_type = sync_type


class RemoteAPIError(SyncError):
    """The remote commerce API answered with a non-retryable error"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(f"{message}: {status_code} - {body}" if status_code else message)
        self.status_code = status_code
        self.body = body


class BatchWriteError(SyncError):
    """One chunk of a multi-chunk write failed. Earlier chunks stay committed."""

    def __init__(self, table: str, batch_number: int, total_batches: int, cause: Exception):
        super().__init__(f"Failed writing {table} batch {batch_number}/{total_batches}: {cause}")
        self.table = table
        self.batch_number = batch_number
        self.total_batches = total_batches
        self.cause = cause


class IdentityResolutionError(SyncError):
    """Fallback products could not be inserted nor found afterwards"""
