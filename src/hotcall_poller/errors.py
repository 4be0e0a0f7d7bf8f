"""
Custom exceptions and error handling for the Hot Calls poller.

Provides:
- Typed exception hierarchy for data-store and pipeline failures
- Error context preservation for the error log and operator alerts
- Classification of SQLAlchemy exceptions into the hierarchy
"""

from typing import Any

from sqlalchemy import exc as sa_exc


class HotCallPollerError(Exception):
    """Base exception for all poller errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} | context={self.context}"
        return self.message


class ConfigurationError(HotCallPollerError):
    """Required configuration is missing or invalid."""

    pass


# =============================================================================
# Data Store Errors
# =============================================================================


class DataStoreError(HotCallPollerError):
    """Base class for data-store failures."""

    pass


class DataStoreConnectionError(DataStoreError):
    """Failed to connect to, or lost the connection to, the data store."""

    pass


class DataStoreTimeoutError(DataStoreError):
    """A statement or connection checkout exceeded its time limit."""

    pass


class DataStoreConstraintError(DataStoreError):
    """Constraint violation (e.g., duplicate evaluation key)."""

    pass


class DataStoreQueryError(DataStoreError):
    """Error executing a statement."""

    pass


# =============================================================================
# Pipeline Errors
# =============================================================================


class PipelineError(HotCallPollerError):
    """Base class for pipeline stage errors."""

    pass


class ExtractionError(PipelineError):
    """Error while staging archive rows."""

    pass


class MergeError(PipelineError):
    """Error while merging staged rows into the evaluation table."""

    pass


class CleanupError(PipelineError):
    """Error while emptying a staging table."""

    pass


class RetentionError(PipelineError):
    """Error while retiring evaluation rows."""

    pass


class NotificationError(HotCallPollerError):
    """The error log or the alert sink could not be written."""

    pass


# =============================================================================
# Error Handling Utilities
# =============================================================================

_TIMEOUT_MARKERS = ('timeout', 'timed out', 'canceling statement', 'ora-01013', 'dpi-1067')
_CONNECTION_MARKERS = ('connect', 'connection', 'ora-03113', 'ora-03114', 'ora-12541')


def wrap_datastore_error(exc: Exception, context: dict[str, Any] | None = None) -> DataStoreError:
    """
    Wrap a SQLAlchemy / DBAPI exception in our typed error hierarchy.

    Args:
        exc: The original exception
        context: Additional context for debugging

    Returns:
        Typed DataStoreError subclass
    """
    error_str = str(exc).lower()
    ctx = context or {}
    ctx['original_error'] = str(exc)
    ctx['error_type'] = type(exc).__name__

    if isinstance(exc, sa_exc.IntegrityError):
        return DataStoreConstraintError(
            f"Data store constraint violation: {exc}",
            context=ctx,
        )
    elif isinstance(exc, sa_exc.TimeoutError) or any(m in error_str for m in _TIMEOUT_MARKERS):
        return DataStoreTimeoutError(
            f"Data store timed out: {exc}",
            context=ctx,
        )
    elif (
        isinstance(exc, sa_exc.DisconnectionError)
        or (isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated)
        or any(m in error_str for m in _CONNECTION_MARKERS)
    ):
        return DataStoreConnectionError(
            f"Data store connection failed: {exc}",
            context=ctx,
        )
    else:
        return DataStoreQueryError(
            f"Data store query error: {exc}",
            context=ctx,
        )
