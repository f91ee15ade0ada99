from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Tuple, runtime_checkable

RawRow = Tuple[Optional[str], ...]


class QueryState(str, Enum):
    """Athena query execution lifecycle states."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        """Return True when no further transition can happen."""
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset({QueryState.SUCCEEDED, QueryState.FAILED, QueryState.CANCELLED})


@dataclass(frozen=True)
class ExecutionStatus:
    """Observed state of one query execution."""

    execution_id: str
    state: QueryState
    failure_reason: Optional[str] = None


@dataclass(frozen=True)
class ColumnDescriptor:
    """Result column name and the service-reported type tag."""

    name: str
    declared_type: str


@dataclass
class ResultPage:
    """One page of a paginated result set.

    ``columns`` is only guaranteed on the first page of a result set.
    """

    rows: List[RawRow]
    next_token: Optional[str] = None
    columns: Optional[List[ColumnDescriptor]] = field(default=None)


@runtime_checkable
class QueryServiceClient(Protocol):
    """Protocol for the remote query service used by the executor and cursor."""

    async def start_execution(self, query: str, database: str, output_location: str) -> str:
        """Submit a query and return its execution id."""
        ...

    async def get_execution_status(self, execution_id: str) -> ExecutionStatus:
        """Return the current state of an execution."""
        ...

    async def stop_execution(self, execution_id: str) -> None:
        """Request that a running execution stop."""
        ...

    async def fetch_result_page(
        self, execution_id: str, next_token: Optional[str] = None
    ) -> ResultPage:
        """Fetch one page of results for a finished execution."""
        ...
