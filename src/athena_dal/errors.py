"""Exception taxonomy for Athena query execution and result decoding.

The classes follow the PEP 249 hierarchy so DB-API callers can catch
``DatabaseError``/``OperationalError`` as usual, while the query pipeline raises
the narrower subclasses below:

- ``SubmissionError``      : the service rejected or could not receive the query
- ``PollError``            : transport failure while polling execution state
- ``ExecutionFailedError`` : the service reported FAILED (reason kept verbatim)
- ``QueryCancelledError``  : cancelled by the caller, the service, or a deadline
- ``PageFetchError``       : transport failure fetching a result page
- ``ConversionError``      : a cell could not be decoded for its declared type
- ``UnsupportedTypeError`` : a declared type has no decoding rule
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

PROVIDER = "athena"


class ErrorCategory(str, Enum):
    """Provider-agnostic error categories."""

    INVALID_REQUEST = "invalid_request"
    UNSUPPORTED_CAPABILITY = "unsupported_capability"
    CONNECTIVITY = "connectivity"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    EXECUTION_FAILED = "execution_failed"
    DATA_CONVERSION = "data_conversion"
    INTERNAL = "internal"


class ErrorMetadata(BaseModel):
    """Structured, log-safe description of a raised error."""

    model_config = ConfigDict(extra="forbid")

    category: ErrorCategory = Field(..., description="Provider-agnostic error category")
    code: str = Field(..., description="Stable machine-readable error code (class name)")
    message: str = Field(..., max_length=2048, description="Bounded error message")
    provider: str = Field(PROVIDER, description="Originating provider")
    execution_id: Optional[str] = Field(None, description="Remote query execution id")
    details_safe: Optional[dict[str, Any]] = Field(
        None, description="Extra diagnostic fields safe to surface"
    )

    def to_dict(self) -> dict:
        """Convert to a dictionary for logs and telemetry."""
        return self.model_dump(exclude_none=True)


class Error(Exception):
    """PEP 249 base class for all errors raised by this package."""

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(self, message: str, *, execution_id: Optional[str] = None) -> None:
        """Initialize with a message and the execution id when one exists."""
        super().__init__(message)
        self.execution_id = execution_id

    def _details(self) -> Optional[dict[str, Any]]:
        return None

    def to_metadata(self) -> ErrorMetadata:
        """Return structured metadata describing this error."""
        return ErrorMetadata(
            category=self.category,
            code=type(self).__name__,
            message=str(self)[:2048],
            execution_id=self.execution_id,
            details_safe=self._details(),
        )


class Warning(Exception):  # noqa: A001
    """PEP 249 warning class."""


class InterfaceError(Error):
    """Misuse of the connection or cursor interface (e.g. use after close)."""

    category = ErrorCategory.INVALID_REQUEST


class DatabaseError(Error):
    """Errors related to the remote query service."""


class OperationalError(DatabaseError):
    """Errors in the service's operation not under the caller's control."""

    category = ErrorCategory.CONNECTIVITY


class DataError(DatabaseError):
    """Errors caused by problems with processed data."""

    category = ErrorCategory.DATA_CONVERSION


class ProgrammingError(DatabaseError):
    """Errors in how the API was used."""

    category = ErrorCategory.INVALID_REQUEST


class IntegrityError(DatabaseError):
    """PEP 249 integrity error (never raised by Athena)."""


class InternalError(DatabaseError):
    """PEP 249 internal error."""


class NotSupportedError(DatabaseError):
    """A feature the service does not offer (parameters, transactions, types)."""

    category = ErrorCategory.UNSUPPORTED_CAPABILITY


class SubmissionError(OperationalError):
    """The query could not be submitted."""

    def __init__(self, cause: BaseException) -> None:
        """Wrap the transport/service error raised at submit time."""
        super().__init__(f"Athena query submission failed: {cause}")
        self.cause = cause


class PollError(OperationalError):
    """Transport failure while polling execution state."""

    def __init__(self, execution_id: str, cause: BaseException) -> None:
        """Wrap the transport error raised while polling."""
        super().__init__(
            f"Polling Athena query {execution_id} failed: {cause}", execution_id=execution_id
        )
        self.cause = cause


class ExecutionFailedError(DatabaseError):
    """The service reported the execution as FAILED."""

    category = ErrorCategory.EXECUTION_FAILED

    def __init__(self, execution_id: str, reason: Optional[str]) -> None:
        """Keep the service's failure explanation verbatim."""
        self.reason = reason or ""
        message = self.reason or f"Athena query {execution_id} failed."
        super().__init__(message, execution_id=execution_id)

    def _details(self) -> Optional[dict[str, Any]]:
        return {"reason": self.reason}


class QueryCancelledError(OperationalError):
    """The execution was cancelled by the caller or by the service."""

    category = ErrorCategory.CANCELLED

    def __init__(self, execution_id: Optional[str], reason: str = "cancelled") -> None:
        """Record who or what cancelled the execution."""
        super().__init__(f"Athena query {execution_id} was {reason}.", execution_id=execution_id)
        self.reason = reason


class QueryTimeoutError(QueryCancelledError, TimeoutError):
    """The execution exceeded the caller's deadline and was cancelled."""

    category = ErrorCategory.TIMEOUT

    def __init__(self, execution_id: Optional[str], timeout_seconds: float) -> None:
        """Record the deadline that was exceeded."""
        self.timeout_seconds = timeout_seconds
        super().__init__(
            execution_id, reason=f"cancelled after exceeding {float(timeout_seconds):g}s timeout"
        )

    def _details(self) -> Optional[dict[str, Any]]:
        return {"timeout_seconds": self.timeout_seconds}


class PageFetchError(OperationalError):
    """Transport failure while fetching a result page."""

    def __init__(self, execution_id: str, cause: BaseException) -> None:
        """Wrap the transport error raised while fetching results."""
        super().__init__(
            f"Fetching results for Athena query {execution_id} failed: {cause}",
            execution_id=execution_id,
        )
        self.cause = cause


class ConversionError(DataError):
    """A raw cell value could not be decoded for its declared type."""

    def __init__(
        self,
        declared_type: str,
        raw_value: Optional[str],
        column: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> None:
        """Describe the offending value; column is filled in by the cursor."""
        self.declared_type = declared_type
        self.raw_value = raw_value
        self.column = column
        self.detail = detail
        location = f" in column '{column}'" if column else ""
        message = f"cannot convert {raw_value!r} to {declared_type}{location}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def _details(self) -> Optional[dict[str, Any]]:
        return {
            "column": self.column,
            "declared_type": self.declared_type,
            "raw_value": self.raw_value,
        }


class UnsupportedTypeError(NotSupportedError):
    """A declared column type has no decoding rule."""

    def __init__(self, declared_type: str, column: Optional[str] = None) -> None:
        """Name the unsupported type and, when known, the column."""
        self.declared_type = declared_type
        self.column = column
        location = f" (column '{column}')" if column else ""
        super().__init__(f"unsupported Athena type '{declared_type}'{location}")

    def _details(self) -> Optional[dict[str, Any]]:
        return {"column": self.column, "declared_type": self.declared_type}
