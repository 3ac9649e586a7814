"""
Excepciones de la aplicación.
"""
from billing_sync.shared.exceptions.base import AppException
from billing_sync.shared.exceptions.sync import (
    LinkedFetchError,
    PassAbortedError,
    RecordNormalizationError,
    RecordSyncError,
    RecordWriteError,
    RemoteApiError,
    StoreUnavailableError,
    SyncConfigError,
)

__all__ = [
    "AppException",
    "LinkedFetchError",
    "PassAbortedError",
    "RecordNormalizationError",
    "RecordSyncError",
    "RecordWriteError",
    "RemoteApiError",
    "StoreUnavailableError",
    "SyncConfigError",
]
