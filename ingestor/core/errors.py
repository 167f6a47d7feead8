"""
Ingestor error hierarchy for clear classification in logs and run reports.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class IngestorError(Exception):
    """Base class for all ingestion errors."""

    def __init__(
        self,
        message: str,
        *,
        fund_id: Optional[str] = None,
        phase: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.fund_id = fund_id
        self.phase = phase
        self.details = details or {}

    def as_dict(self) -> Dict[str, Any]:
        """Serializable representation for logs/run reports."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "fund_id": self.fund_id,
            "phase": self.phase,
            "details": self.details,
        }


class ConfigurationError(IngestorError):
    """Raised on missing/invalid configuration values (e.g. source credentials)."""

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        section: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.key = key
        self.section = section
        if key is not None:
            self.details["key"] = key
        if section is not None:
            self.details["section"] = section


class SourceError(IngestorError):
    """Raised when the external data provider cannot deliver a batch."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
        **kwargs,
    ) -> None:
        kwargs.setdefault("phase", "fetch")
        super().__init__(message, **kwargs)
        self.source = source
        self.status_code = status_code
        self.cause = cause
        if source is not None:
            self.details["source"] = source
        if status_code is not None:
            self.details["status_code"] = status_code
        if cause is not None:
            self.details["cause"] = repr(cause)


class SourceUnavailableError(SourceError):
    """Network, timeout or server-side failure that outlived the retry budget."""


class SourceRejectedError(SourceError):
    """Client-side (4xx) rejection. Never retried."""


class ValidationError(IngestorError):
    """Raised when a record violates a structural or range constraint."""

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        expected: Optional[Any] = None,
        **kwargs,
    ) -> None:
        kwargs.setdefault("phase", "validate")
        super().__init__(message, **kwargs)
        self.field = field
        self.expected = expected
        if field is not None:
            self.details["field"] = field
        if expected is not None:
            self.details["expected"] = expected


class PersistenceError(IngestorError):
    """Raised when a store operation fails for a single record."""

    def __init__(
        self,
        message: str,
        *,
        collection: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ) -> None:
        kwargs.setdefault("phase", "persist")
        super().__init__(message, **kwargs)
        self.collection = collection
        self.operation = operation
        if collection is not None:
            self.details["collection"] = collection
        if operation is not None:
            self.details["operation"] = operation


class StoreUnavailableError(PersistenceError):
    """The store as a whole is unreachable; fatal for the run."""


__all__ = [
    "IngestorError",
    "ConfigurationError",
    "SourceError",
    "SourceUnavailableError",
    "SourceRejectedError",
    "ValidationError",
    "PersistenceError",
    "StoreUnavailableError",
]
