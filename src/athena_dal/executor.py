import asyncio
import logging
import time
from typing import Optional, Set

from athena_dal.config import DEFAULT_POLL_INTERVAL_SECONDS, AthenaConfig
from athena_dal.cursor import ResultCursor
from athena_dal.errors import (
    ExecutionFailedError,
    PollError,
    QueryCancelledError,
    QueryTimeoutError,
    SubmissionError,
)
from athena_dal.query_service import ExecutionStatus, QueryServiceClient, QueryState
from athena_dal.tracing import trace_query_operation
from athena_dal.values import DEFAULT_POLICY, ConversionPolicy

logger = logging.getLogger(__name__)


class QueryExecutor:
    """Runs one statement at a time: submit, poll to a terminal state, open a cursor."""

    def __init__(
        self,
        client: QueryServiceClient,
        database: str,
        output_location: str,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        policy: ConversionPolicy = DEFAULT_POLICY,
    ) -> None:
        """Initialize executor with a service client and execution context."""
        self._client = client
        self._database = database
        self._output_location = output_location
        self._poll_interval_seconds = poll_interval_seconds
        self._policy = policy
        self._pending_stops: Set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        config: AthenaConfig,
        client: QueryServiceClient,
        policy: ConversionPolicy = DEFAULT_POLICY,
    ) -> "QueryExecutor":
        """Build an executor from an ``AthenaConfig``."""
        return cls(
            client,
            database=config.database,
            output_location=config.output_location,
            poll_interval_seconds=config.poll_interval_seconds,
            policy=policy,
        )

    async def run(
        self,
        query: str,
        *,
        skip_header: bool = True,
        timeout_seconds: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ResultCursor:
        """Execute a query and return a cursor over its results.

        ``skip_header`` must be True for row-returning statements, whose first
        result row restates the column names. ``timeout_seconds`` and
        ``cancel_event`` abort the wait at the next poll boundary; the remote
        execution is then stopped on a best-effort basis.
        """
        execution_id = await self.submit(query)
        await self.wait(execution_id, timeout_seconds=timeout_seconds, cancel_event=cancel_event)
        return await ResultCursor.open(
            self._client, execution_id, skip_header=skip_header, policy=self._policy
        )

    async def submit(self, query: str) -> str:
        """Start a query execution and return its id."""
        try:
            execution_id = await trace_query_operation(
                "dal.query.submit",
                self._client.start_execution(query, self._database, self._output_location),
                sql=query,
            )
        except Exception as exc:
            raise SubmissionError(exc) from exc
        logger.debug("Submitted Athena query %s.", execution_id)
        return execution_id

    async def wait(
        self,
        execution_id: str,
        *,
        timeout_seconds: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        """Poll at a fixed interval until the execution reaches a terminal state."""
        deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        try:
            while True:
                status = await self._poll(execution_id)
                if status.state.is_terminal:
                    self._raise_for_terminal(status)
                    return

                if cancel_event is not None and cancel_event.is_set():
                    self._cancel(execution_id)
                    raise QueryCancelledError(execution_id, reason="cancelled by caller")
                if await self._sleep_interval(deadline, cancel_event):
                    self._cancel(execution_id)
                    if cancel_event is not None and cancel_event.is_set():
                        raise QueryCancelledError(execution_id, reason="cancelled by caller")
                    logger.warning(
                        "Athena query %s exceeded %.2fs timeout.", execution_id, timeout_seconds
                    )
                    raise QueryTimeoutError(execution_id, timeout_seconds)
        except asyncio.CancelledError:
            self._cancel(execution_id)
            raise

    async def aclose(self) -> None:
        """Wait for outstanding best-effort stop requests to finish."""
        if self._pending_stops:
            await asyncio.gather(*self._pending_stops, return_exceptions=True)

    async def _poll(self, execution_id: str) -> ExecutionStatus:
        try:
            status = await trace_query_operation(
                "dal.query.poll",
                self._client.get_execution_status(execution_id),
                execution_id=execution_id,
            )
        except Exception as exc:
            raise PollError(execution_id, exc) from exc
        logger.debug("Athena query %s is %s.", execution_id, status.state.value)
        return status

    def _raise_for_terminal(self, status: ExecutionStatus) -> None:
        if status.state == QueryState.SUCCEEDED:
            logger.info("Athena query %s succeeded.", status.execution_id)
            return
        if status.state == QueryState.CANCELLED:
            logger.info("Athena query %s was cancelled by the service.", status.execution_id)
            raise QueryCancelledError(status.execution_id, reason="cancelled by the service")
        logger.info("Athena query %s failed: %s", status.execution_id, status.failure_reason)
        raise ExecutionFailedError(status.execution_id, status.failure_reason)

    async def _sleep_interval(
        self, deadline: Optional[float], cancel_event: Optional[asyncio.Event]
    ) -> bool:
        """Sleep one poll interval; return True when cancelled or past the deadline."""
        interval = self._poll_interval_seconds
        if deadline is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return True
            interval = min(interval, remaining)

        if cancel_event is None:
            await asyncio.sleep(interval)
        else:
            try:
                await asyncio.wait_for(cancel_event.wait(), timeout=interval)
                return True
            except asyncio.TimeoutError:
                pass
        return deadline is not None and time.monotonic() >= deadline

    def _cancel(self, execution_id: str) -> None:
        """Dispatch a stop request without waiting for it."""
        logger.info("Stopping Athena query %s.", execution_id)
        task = asyncio.get_running_loop().create_task(self._stop(execution_id))
        self._pending_stops.add(task)
        task.add_done_callback(self._pending_stops.discard)

    async def _stop(self, execution_id: str) -> None:
        try:
            await self._client.stop_execution(execution_id)
        except Exception as exc:
            logger.warning("Stopping Athena query %s failed: %s", execution_id, exc)
