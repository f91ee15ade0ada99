"""Forward-only cursor over a finished Athena execution's paged results.

Athena restates the column names as the first row of the first page for
row-returning statements. The cursor drops that row when ``skip_header`` is set;
later pages never carry it. Column metadata is taken from the first page and is
fixed for the cursor's lifetime.
"""

import logging
from collections import deque
from typing import Any, Deque, List, Optional, Tuple

from athena_dal.errors import ConversionError, DataError, PageFetchError, UnsupportedTypeError
from athena_dal.query_service import ColumnDescriptor, QueryServiceClient, RawRow, ResultPage
from athena_dal.tracing import trace_query_operation
from athena_dal.values import DEFAULT_POLICY, ConversionPolicy, convert_value

logger = logging.getLogger(__name__)

Row = Tuple[Any, ...]


class ResultCursor:
    """Stateful reader yielding decoded rows page by page."""

    def __init__(
        self,
        client: QueryServiceClient,
        execution_id: str,
        policy: ConversionPolicy = DEFAULT_POLICY,
    ) -> None:
        """Create an unopened cursor; use ``ResultCursor.open`` instead."""
        self._client = client
        self._execution_id = execution_id
        self._policy = policy
        self._columns: List[ColumnDescriptor] = []
        self._buffer: Deque[RawRow] = deque()
        self._next_token: Optional[str] = None
        self._exhausted = False
        self._closed = False

    @classmethod
    async def open(
        cls,
        client: QueryServiceClient,
        execution_id: str,
        skip_header: bool = True,
        policy: ConversionPolicy = DEFAULT_POLICY,
    ) -> "ResultCursor":
        """Fetch the first page and return a cursor positioned before the first row."""
        cursor = cls(client, execution_id, policy=policy)
        page = await cursor._fetch_page(None)
        cursor._columns = list(page.columns or [])

        rows = list(page.rows)
        if skip_header and rows:
            rows = rows[1:]
        if not rows:
            # Header-only or empty first page: nothing to read, regardless of token.
            cursor._exhausted = True
            logger.debug("Athena query %s returned no rows.", execution_id)
            return cursor

        cursor._buffer.extend(rows)
        cursor._next_token = page.next_token or None
        return cursor

    @property
    def execution_id(self) -> str:
        """Return the execution whose results this cursor reads."""
        return self._execution_id

    @property
    def columns(self) -> List[ColumnDescriptor]:
        """Return the result columns in order."""
        return list(self._columns)

    @property
    def exhausted(self) -> bool:
        """Return True once no further rows can be produced."""
        return self._exhausted

    async def next(self) -> Optional[Row]:
        """Return the next decoded row, or None at end of data."""
        if self._exhausted:
            return None

        if not self._buffer:
            if not self._next_token:
                self._exhausted = True
                return None
            page = await self._fetch_page(self._next_token)
            if not page.rows:
                self._exhausted = True
                return None
            self._buffer.extend(page.rows)
            self._next_token = page.next_token or None

        raw_row = self._buffer.popleft()
        try:
            return self._decode(raw_row)
        except (DataError, UnsupportedTypeError):
            self._exhausted = True
            self._buffer.clear()
            raise

    def close(self) -> None:
        """Stop iteration and drop buffered rows. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        self._exhausted = True
        self._buffer.clear()
        self._next_token = None

    def __aiter__(self) -> "ResultCursor":
        return self

    async def __anext__(self) -> Row:
        row = await self.next()
        if row is None:
            raise StopAsyncIteration
        return row

    async def _fetch_page(self, next_token: Optional[str]) -> ResultPage:
        logger.debug("Fetching results page for Athena query %s.", self._execution_id)
        try:
            return await trace_query_operation(
                "dal.query.fetch",
                self._client.fetch_result_page(self._execution_id, next_token),
                execution_id=self._execution_id,
            )
        except Exception as exc:
            self._exhausted = True
            self._buffer.clear()
            raise PageFetchError(self._execution_id, exc) from exc

    def _decode(self, raw_row: RawRow) -> Row:
        if len(raw_row) != len(self._columns):
            raise DataError(
                f"Athena query {self._execution_id} returned a row with {len(raw_row)} values "
                f"for {len(self._columns)} columns.",
                execution_id=self._execution_id,
            )
        values = []
        for column, raw in zip(self._columns, raw_row):
            try:
                values.append(convert_value(column.declared_type, raw, self._policy))
            except ConversionError as exc:
                raise ConversionError(
                    exc.declared_type, exc.raw_value, column=column.name, detail=exc.detail
                ) from exc
            except UnsupportedTypeError as exc:
                raise UnsupportedTypeError(exc.declared_type, column=column.name) from exc
        return tuple(values)
