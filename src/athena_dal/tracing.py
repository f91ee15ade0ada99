import hashlib
from typing import Awaitable, Optional

from athena_dal.util.metrics import is_telemetry_enabled

TRACE_ENV_VAR = "ATHENA_DAL_TRACE_QUERIES"


def trace_enabled() -> bool:
    """Return True when query tracing is enabled or OTEL exporter defaults apply."""
    return is_telemetry_enabled(TRACE_ENV_VAR)


def _hash_sql(sql: str) -> str:
    return hashlib.sha256(sql.encode("utf-8")).hexdigest()


async def trace_query_operation(
    name: str,
    operation: Awaitable,
    sql: Optional[str] = None,
    execution_id: Optional[str] = None,
    provider: str = "athena",
    execution_model: str = "async",
):
    """Trace a query operation with OTEL when enabled."""
    if not trace_enabled():
        return await operation

    from opentelemetry import trace

    tracer = trace.get_tracer("athena_dal")
    with tracer.start_as_current_span(name) as span:
        span.set_attribute("db.provider", provider)
        span.set_attribute("db.execution_model", execution_model)
        if sql:
            span.set_attribute("db.statement_hash", _hash_sql(sql))
        if execution_id:
            span.set_attribute("db.execution_id", execution_id)
        try:
            result = await operation
            span.set_attribute("db.status", "ok")
            return result
        except Exception:
            span.set_attribute("db.status", "error")
            raise
