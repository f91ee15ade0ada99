"""Tests for the blocking PEP 249 connection and cursor."""

import pytest

import athena_dal
from athena_dal.config import AthenaConfig
from athena_dal.dbapi import connect
from athena_dal.errors import (
    ConversionError,
    ExecutionFailedError,
    InterfaceError,
    NotSupportedError,
    QueryTimeoutError,
)
from athena_dal.query_service import ColumnDescriptor, QueryState, ResultPage
from tests._support.fake_athena import FakeQueryService, data_rows, header_row, varchar_columns

COLUMNS = varchar_columns("first_name", "last_name")


def _config(**overrides) -> AthenaConfig:
    settings = {
        "database": "analytics",
        "output_location": "s3://bucket/results/",
        "poll_interval_seconds": 0.01,
    }
    settings.update(overrides)
    return AthenaConfig(**settings)


def _paged_service(**kwargs) -> FakeQueryService:
    return FakeQueryService(
        pages={
            None: ResultPage(
                rows=[header_row(COLUMNS), *data_rows(4, 2)], next_token="p1", columns=COLUMNS
            ),
            "p1": ResultPage(rows=data_rows(5, 2, start=4)),
        },
        **kwargs,
    )


def test_module_globals():
    assert athena_dal.apilevel == "2.0"
    assert athena_dal.threadsafety == 1
    assert athena_dal.paramstyle == "qmark"


def test_execute_and_fetchall_across_pages():
    service = _paged_service(states=[QueryState.QUEUED, QueryState.SUCCEEDED])

    with connect(_config(), client=service) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT first_name, last_name FROM people")
        rows = cursor.fetchall()

    assert rows == data_rows(9, 2)
    assert cursor.execution_id == "exec-1"
    assert cursor.description == [
        ("first_name", "varchar", None, None, None, None, None),
        ("last_name", "varchar", None, None, None, None, None),
    ]


def test_fetchone_fetchmany_and_iteration():
    service = _paged_service()

    with connect(_config(), client=service) as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM people")
        first = cursor.fetchone()
        cursor.arraysize = 3
        batch = cursor.fetchmany()
        explicit = cursor.fetchmany(2)
        rest = list(cursor)

    assert first == data_rows(1, 2)[0]
    assert batch == data_rows(3, 2, start=1)
    assert explicit == data_rows(2, 2, start=4)
    assert rest == data_rows(3, 2, start=6)


def test_fetch_after_exhaustion_returns_none():
    service = FakeQueryService(
        pages={None: ResultPage(rows=[header_row(COLUMNS)], columns=COLUMNS)}
    )

    with connect(_config(), client=service) as conn:
        cursor = conn.cursor().execute("SELECT * FROM empty_table")
        assert cursor.fetchone() is None
        assert cursor.fetchall() == []


def test_show_statement_keeps_first_row():
    columns = varchar_columns("tab_name")
    service = FakeQueryService(
        pages={None: ResultPage(rows=[("people",), ("orders",)], columns=columns)}
    )

    with connect(_config(), client=service) as conn:
        rows = conn.cursor().execute("SHOW TABLES").fetchall()

    assert rows == [("people",), ("orders",)]


def test_skip_header_can_be_forced():
    columns = varchar_columns("tab_name")
    service = FakeQueryService(
        pages={None: ResultPage(rows=[("tab_name",), ("people",)], columns=columns)}
    )

    with connect(_config(), client=service) as conn:
        rows = conn.cursor().execute("SHOW TABLES", skip_header=True).fetchall()

    assert rows == [("people",)]


def test_values_are_decoded():
    columns = [ColumnDescriptor("id", "bigint"), ColumnDescriptor("ok", "boolean")]
    service = FakeQueryService(
        pages={None: ResultPage(rows=[header_row(columns), ("12", "false")], columns=columns)}
    )

    with connect(_config(), client=service) as conn:
        assert conn.cursor().execute("SELECT id, ok FROM t").fetchall() == [(12, False)]


def test_conversion_error_surfaces_from_fetch():
    columns = [ColumnDescriptor("id", "integer")]
    service = FakeQueryService(
        pages={None: ResultPage(rows=[header_row(columns), ("x",)], columns=columns)}
    )

    with connect(_config(), client=service) as conn:
        cursor = conn.cursor().execute("SELECT id FROM t")
        with pytest.raises(ConversionError):
            cursor.fetchone()
        assert cursor.fetchone() is None


def test_failed_statement_raises_from_execute():
    service = FakeQueryService(states=[QueryState.FAILED], failure_reason="TABLE_NOT_FOUND")

    with connect(_config(), client=service) as conn:
        with pytest.raises(ExecutionFailedError, match="TABLE_NOT_FOUND"):
            conn.cursor().execute("SELECT * FROM missing")


def test_configured_timeout_stops_query():
    service = FakeQueryService(states=[QueryState.RUNNING])

    with connect(_config(query_timeout_seconds=0.05), client=service) as conn:
        with pytest.raises(QueryTimeoutError):
            conn.cursor().execute("SELECT * FROM slow")

    assert service.stop_calls == ["exec-1"]


def test_parameters_are_rejected():
    service = FakeQueryService()

    with connect(_config(), client=service) as conn:
        cursor = conn.cursor()
        with pytest.raises(NotSupportedError, match="prepared statements"):
            cursor.execute("SELECT * FROM t WHERE id = ?", (1,))
        with pytest.raises(NotSupportedError):
            cursor.executemany("INSERT INTO t VALUES (?)", [(1,), (2,)])

    assert service.submitted == []


def test_transactions():
    with connect(_config(), client=FakeQueryService()) as conn:
        conn.commit()
        with pytest.raises(NotSupportedError, match="transactions"):
            conn.rollback()


def test_fetch_before_execute_is_interface_error():
    with connect(_config(), client=FakeQueryService()) as conn:
        cursor = conn.cursor()
        assert cursor.description is None
        with pytest.raises(InterfaceError, match="no statement"):
            cursor.fetchone()


def test_closed_cursor_and_connection():
    conn = connect(_config(), client=FakeQueryService())
    cursor = conn.cursor()
    cursor.close()
    cursor.close()

    with pytest.raises(InterfaceError, match="cursor is closed"):
        cursor.execute("SELECT 1")

    conn.close()
    conn.close()

    assert conn.closed is True
    with pytest.raises(InterfaceError, match="connection is closed"):
        conn.cursor()
    with pytest.raises(InterfaceError, match="connection is closed"):
        conn.commit()
    with pytest.raises(InterfaceError, match="connection is closed"):
        conn.rollback()


def test_connect_from_connection_string():
    service = FakeQueryService()

    conn = connect(
        connection_string="db=sales&output_location=s3://out/&poll_frequency=10ms",
        client=service,
    )
    try:
        conn.cursor().execute("SHOW TABLES")
    finally:
        conn.close()

    assert conn.config.database == "sales"
    assert conn.config.poll_interval_seconds == pytest.approx(0.01)
    assert service.submitted == [("SHOW TABLES", "sales", "s3://out/")]


def test_connect_from_env(monkeypatch):
    monkeypatch.setenv("ATHENA_DATABASE", "env_db")
    monkeypatch.setenv("ATHENA_OUTPUT_LOCATION", "s3://env/")

    conn = connect(client=FakeQueryService())
    try:
        assert conn.config.database == "env_db"
        assert conn.config.output_location == "s3://env/"
    finally:
        conn.close()
