"""
Exceptions for built data sync operations.
"""


class SyncError(Exception):
    """Base exception for sync operations."""

    pass


class ConfigurationError(SyncError):
    """Run parameters are missing or malformed."""

    pass


class InvalidRootError(ConfigurationError):
    """Sync root was not given or does not exist."""

    pass


class PreconditionError(SyncError):
    """Working copy is not in a state that allows syncing."""

    pass


class TrackingError(PreconditionError):
    """Large-file tracking is unavailable or a tracking command failed."""

    pass


class TransferError(SyncError):
    """Failed to copy an artifact between the working copy and the sync root."""

    pass


class RetentionError(SyncError):
    """Failed to delete a superseded remote artifact."""

    pass
