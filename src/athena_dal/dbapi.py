"""Blocking PEP 249 interface over the async query pipeline.

Each ``Connection`` owns a private event loop and drives the executor and
cursors on it, so blocking callers never see coroutines. Athena offers neither
bound parameters nor transactions; both are rejected with ``NotSupportedError``.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence, Tuple

from athena_dal.boto_client import BotoAthenaClient
from athena_dal.config import AthenaConfig
from athena_dal.cursor import ResultCursor, Row
from athena_dal.errors import InterfaceError, NotSupportedError
from athena_dal.executor import QueryExecutor
from athena_dal.query_service import QueryServiceClient
from athena_dal.util.statements import returns_header_row
from athena_dal.values import DEFAULT_POLICY, ConversionPolicy

logger = logging.getLogger(__name__)

apilevel = "2.0"
threadsafety = 1
paramstyle = "qmark"

Description = Tuple[str, str, None, None, None, None, None]


def connect(
    config: Optional[AthenaConfig] = None,
    *,
    client: Optional[QueryServiceClient] = None,
    policy: ConversionPolicy = DEFAULT_POLICY,
    connection_string: Optional[str] = None,
) -> "Connection":
    """Open a connection.

    Settings come from ``config``, else ``connection_string``, else the
    environment (``AthenaConfig.from_env``). A boto3-backed client is created
    when ``client`` is not supplied.
    """
    if config is None:
        if connection_string is not None:
            config = AthenaConfig.from_connection_string(connection_string)
        else:
            config = AthenaConfig.from_env()
    if client is None:
        client = BotoAthenaClient.from_config(config)
    return Connection(config, client, policy=policy)


class Connection:
    """DB-API connection; one statement runs at a time."""

    def __init__(
        self,
        config: AthenaConfig,
        client: QueryServiceClient,
        policy: ConversionPolicy = DEFAULT_POLICY,
    ) -> None:
        """Bind the connection to a config and service client."""
        self._config = config
        self._executor = QueryExecutor.from_config(config, client, policy=policy)
        self._loop: Optional[asyncio.AbstractEventLoop] = asyncio.new_event_loop()

    @property
    def closed(self) -> bool:
        """Return True after ``close``."""
        return self._loop is None

    @property
    def config(self) -> AthenaConfig:
        """Return the connection settings."""
        return self._config

    def cursor(self) -> "Cursor":
        """Return a new cursor bound to this connection."""
        self._check_open()
        return Cursor(self)

    def commit(self) -> None:
        """No-op: Athena statements are not transactional."""
        self._check_open()

    def rollback(self) -> None:
        """Transactions are unsupported by Athena."""
        self._check_open()
        raise NotSupportedError("transactions are unsupported by Athena")

    def close(self) -> None:
        """Release the private event loop. Safe to call repeatedly."""
        if self._loop is None:
            return
        loop, self._loop = self._loop, None
        try:
            loop.run_until_complete(self._executor.aclose())
        finally:
            loop.close()

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self._loop is None:
            raise InterfaceError("connection is closed")

    def _run(self, coro):
        self._check_open()
        try:
            return self._loop.run_until_complete(coro)
        finally:
            # Let detached stop requests start before control returns to the caller.
            self._loop.run_until_complete(asyncio.sleep(0))


class Cursor:
    """DB-API cursor yielding decoded Athena rows."""

    def __init__(self, connection: Connection) -> None:
        """Create a cursor on ``connection``."""
        self.connection = connection
        self.arraysize = 1
        self.rowcount = -1
        self._results: Optional[ResultCursor] = None
        self._closed = False

    @property
    def description(self) -> Optional[List[Description]]:
        """Return PEP 249 column descriptions for the current result set."""
        if self._results is None:
            return None
        return [
            (column.name, column.declared_type, None, None, None, None, None)
            for column in self._results.columns
        ]

    @property
    def execution_id(self) -> Optional[str]:
        """Return the Athena execution id of the last statement."""
        return self._results.execution_id if self._results is not None else None

    def execute(
        self,
        operation: str,
        parameters: Optional[Sequence[Any]] = None,
        *,
        skip_header: Optional[bool] = None,
        timeout_seconds: Optional[float] = None,
    ) -> "Cursor":
        """Run ``operation`` and position the cursor before its first row.

        ``skip_header`` defaults to whether the statement returns rows;
        ``timeout_seconds`` defaults to the connection's configured timeout.
        """
        self._check_open()
        if parameters:
            raise NotSupportedError("prepared statements are unsupported by Athena")
        if skip_header is None:
            skip_header = returns_header_row(operation)
        if timeout_seconds is None:
            timeout_seconds = self.connection.config.query_timeout_seconds

        self._reset()
        logger.debug("Executing Athena statement (skip_header=%s).", skip_header)
        self._results = self.connection._run(
            self.connection._executor.run(
                operation, skip_header=skip_header, timeout_seconds=timeout_seconds
            )
        )
        return self

    def executemany(self, operation: str, seq_of_parameters: Sequence[Sequence[Any]]) -> None:
        """Bound parameters are unsupported by Athena."""
        raise NotSupportedError("prepared statements are unsupported by Athena")

    def fetchone(self) -> Optional[Row]:
        """Return the next row, or None when the result set is exhausted."""
        results = self._require_results()
        return self.connection._run(results.next())

    def fetchmany(self, size: Optional[int] = None) -> List[Row]:
        """Return up to ``size`` rows (default ``arraysize``)."""
        limit = self.arraysize if size is None else size
        rows: List[Row] = []
        while len(rows) < limit:
            row = self.fetchone()
            if row is None:
                break
            rows.append(row)
        return rows

    def fetchall(self) -> List[Row]:
        """Return all remaining rows."""
        rows: List[Row] = []
        while True:
            row = self.fetchone()
            if row is None:
                return rows
            rows.append(row)

    def setinputsizes(self, sizes: Any) -> None:
        """No-op per PEP 249."""

    def setoutputsize(self, size: Any, column: Optional[int] = None) -> None:
        """No-op per PEP 249."""

    def close(self) -> None:
        """Close the cursor. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._reset()

    def __iter__(self) -> "Cursor":
        return self

    def __next__(self) -> Row:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def __enter__(self) -> "Cursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _reset(self) -> None:
        if self._results is not None:
            self._results.close()
        self._results = None

    def _check_open(self) -> None:
        if self._closed:
            raise InterfaceError("cursor is closed")
        self.connection._check_open()

    def _require_results(self) -> ResultCursor:
        self._check_open()
        if self._results is None:
            raise InterfaceError("no statement has been executed")
        return self._results
