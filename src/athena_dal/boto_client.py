import asyncio
from typing import Any, Dict, List, Optional

from athena_dal.query_service import ColumnDescriptor, ExecutionStatus, QueryState, ResultPage


class BotoAthenaClient:
    """QueryServiceClient backed by a boto3 ``athena`` client.

    boto3 is blocking, so each call runs in a worker thread.
    """

    def __init__(
        self,
        client: Any = None,
        *,
        region: Optional[str] = None,
        workgroup: Optional[str] = None,
        page_size: Optional[int] = None,
    ) -> None:
        """Wrap an existing boto3 client, or create one for ``region``."""
        if client is None:
            import boto3

            client = boto3.client("athena", region_name=region)
        self._client = client
        self._workgroup = workgroup
        self._page_size = page_size

    @classmethod
    def from_config(cls, config, client: Any = None) -> "BotoAthenaClient":
        """Build a client from an ``AthenaConfig``."""
        return cls(client, region=config.region, workgroup=config.workgroup)

    async def start_execution(self, query: str, database: str, output_location: str) -> str:
        """Submit a query for asynchronous execution."""
        return await asyncio.to_thread(
            _start_query_execution,
            self._client,
            query,
            database,
            output_location,
            self._workgroup,
        )

    async def get_execution_status(self, execution_id: str) -> ExecutionStatus:
        """Return the current execution state and failure reason."""
        return await asyncio.to_thread(_get_execution_status, self._client, execution_id)

    async def stop_execution(self, execution_id: str) -> None:
        """Ask Athena to stop a running query."""
        await asyncio.to_thread(self._client.stop_query_execution, QueryExecutionId=execution_id)

    async def fetch_result_page(
        self, execution_id: str, next_token: Optional[str] = None
    ) -> ResultPage:
        """Fetch one page of query results."""
        return await asyncio.to_thread(
            _get_result_page, self._client, execution_id, next_token, self._page_size
        )


def _start_query_execution(
    client,
    query: str,
    database: str,
    output_location: str,
    workgroup: Optional[str],
) -> str:
    kwargs: Dict[str, Any] = {
        "QueryString": query,
        "QueryExecutionContext": {"Database": database},
        "ResultConfiguration": {"OutputLocation": output_location},
    }
    if workgroup:
        kwargs["WorkGroup"] = workgroup
    response = client.start_query_execution(**kwargs)
    return response["QueryExecutionId"]


def _get_execution_status(client, execution_id: str) -> ExecutionStatus:
    response = client.get_query_execution(QueryExecutionId=execution_id)
    status = response["QueryExecution"]["Status"]
    return ExecutionStatus(
        execution_id=execution_id,
        state=_map_state(status["State"]),
        failure_reason=status.get("StateChangeReason"),
    )


def _get_result_page(
    client, execution_id: str, next_token: Optional[str], page_size: Optional[int]
) -> ResultPage:
    kwargs: Dict[str, Any] = {"QueryExecutionId": execution_id}
    if next_token:
        kwargs["NextToken"] = next_token
    if page_size:
        kwargs["MaxResults"] = page_size
    response = client.get_query_results(**kwargs)
    result_set = response["ResultSet"]
    metadata = result_set.get("ResultSetMetadata", {}).get("ColumnInfo")
    rows = [
        tuple(datum.get("VarCharValue") for datum in row.get("Data", []))
        for row in result_set.get("Rows", [])
    ]
    return ResultPage(
        rows=rows,
        next_token=response.get("NextToken"),
        columns=_columns_from_athena_metadata(metadata) if metadata is not None else None,
    )


def _columns_from_athena_metadata(metadata: list) -> List[ColumnDescriptor]:
    """Build column descriptors from Athena ColumnInfo payloads."""
    return [
        ColumnDescriptor(name=col.get("Name", ""), declared_type=col.get("Type", ""))
        for col in metadata
    ]


def _map_state(state: str) -> QueryState:
    try:
        return QueryState(state)
    except ValueError:
        return QueryState.RUNNING
