"""Athena query execution with typed, paginated result cursors."""

from .boto_client import BotoAthenaClient
from .config import AthenaConfig
from .cursor import ResultCursor
from .dbapi import Connection, Cursor, apilevel, connect, paramstyle, threadsafety
from .errors import (
    ConversionError,
    DatabaseError,
    DataError,
    Error,
    ErrorCategory,
    ErrorMetadata,
    ExecutionFailedError,
    IntegrityError,
    InterfaceError,
    InternalError,
    NotSupportedError,
    OperationalError,
    PageFetchError,
    PollError,
    ProgrammingError,
    QueryCancelledError,
    QueryTimeoutError,
    SubmissionError,
    UnsupportedTypeError,
    Warning,
)
from .executor import QueryExecutor
from .query_service import (
    ColumnDescriptor,
    ExecutionStatus,
    QueryServiceClient,
    QueryState,
    ResultPage,
)
from .values import CompoundTypeHandling, ConversionPolicy, convert_value

__all__ = [
    "AthenaConfig",
    "BotoAthenaClient",
    "ColumnDescriptor",
    "CompoundTypeHandling",
    "Connection",
    "ConversionError",
    "ConversionPolicy",
    "Cursor",
    "DataError",
    "DatabaseError",
    "Error",
    "ErrorCategory",
    "ErrorMetadata",
    "ExecutionFailedError",
    "ExecutionStatus",
    "IntegrityError",
    "InterfaceError",
    "InternalError",
    "NotSupportedError",
    "OperationalError",
    "PageFetchError",
    "PollError",
    "ProgrammingError",
    "QueryCancelledError",
    "QueryExecutor",
    "QueryServiceClient",
    "QueryState",
    "QueryTimeoutError",
    "ResultCursor",
    "ResultPage",
    "SubmissionError",
    "UnsupportedTypeError",
    "Warning",
    "apilevel",
    "connect",
    "convert_value",
    "paramstyle",
    "threadsafety",
]
