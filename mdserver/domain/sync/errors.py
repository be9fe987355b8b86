class SyncError(Exception):
    """Base error of the synchronization engine."""


class ScanError(SyncError):
    """Sync root is missing or cannot be listed. The cycle is skipped."""


class TransformError(SyncError):
    """Text transform failed. The raw body is stored instead."""


class StoreError(SyncError):
    """A store call failed (connection, timeout, query)."""
