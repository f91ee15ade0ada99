"""Statement classification for Athena's synthetic header row.

Athena prefixes the first result page of row-returning (DML) statements with a
row that repeats the column names. Utility statements (SHOW, DESCRIBE, DDL) do
not get one.
"""

import logging
import re

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError, TokenError

logger = logging.getLogger(__name__)

SQLGLOT_DIALECT = "trino"

_SQL_COMMENT_RE = re.compile(r"(--[^\n]*|/\*.*?\*/)", flags=re.DOTALL)
_ROW_RETURNING_PREFIX = {"SELECT", "WITH", "VALUES", "TABLE"}


def returns_header_row(sql: str) -> bool:
    """Return True when Athena will prepend a header row to the statement's results."""
    stripped = _SQL_COMMENT_RE.sub(" ", sql or "").strip()
    if not stripped:
        return False

    try:
        expression = sqlglot.parse_one(stripped, read=SQLGLOT_DIALECT)
    except (ParseError, TokenError):
        logger.debug("Falling back to keyword check for unparsable statement.")
        expression = None

    if expression is not None and not isinstance(expression, exp.Command):
        return isinstance(expression, (exp.Query, exp.Values))

    first_token = stripped.split(maxsplit=1)[0].upper()
    return first_token in _ROW_RETURNING_PREFIX or first_token.startswith("(")
