"""Decoding of Athena wire strings into Python values.

Athena returns every cell as an optional string (``VarCharValue``). The declared
column type selects the decoder:

===========================  ===========================================
declared type                result
===========================  ===========================================
tinyint/smallint/integer     ``int`` (width-checked, see ``ConversionPolicy``)
bigint                       ``int`` in the signed 64-bit range
boolean                      ``bool`` from exactly ``true``/``false``
float / double               ``float`` (``float`` rounded to single precision)
decimal                      ``decimal.Decimal``
varchar / char / string      ``str`` unchanged
timestamp                    aware ``datetime`` in UTC
timestamp with time zone     aware ``datetime`` normalized to UTC (offsets,
                             abbreviations such as PST, or IANA names)
date                         ``datetime.date``
varbinary                    ``bytes`` from space separated hex pairs
array / map                  ``str`` unchanged (or rejected, per policy)
json                         parsed JSON value
row and anything else        ``UnsupportedTypeError``
===========================  ===========================================

A missing value (SQL NULL) always decodes to ``None``.
"""

from __future__ import annotations

import json
import math
import re
import struct
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from athena_dal.errors import ConversionError, UnsupportedTypeError

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

INTEGER_BITS = {"tinyint": 8, "smallint": 16, "integer": 32, "bigint": 64}
COMPOUND_TYPES = frozenset({"array", "map"})

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_NON_FINITE = {"NaN": float("nan"), "Infinity": float("inf"), "-Infinity": float("-inf")}
_TIMESTAMP_RE = re.compile(
    r"(?P<base>[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2})"
    r"(?:\.(?P<fraction>[0-9]{1,9}))?(?: (?P<zone>[^\s]+))?"
)
_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_OFFSET_RE = re.compile(r"(?P<sign>[+-])(?P<hours>[0-9]{2}):?(?P<minutes>[0-9]{2})")
_VARBINARY_RE = re.compile(r"[0-9a-fA-F]{2}(?: [0-9a-fA-F]{2})*")

# Fixed UTC offsets in hours. Checked before the tz database, where names such
# as CET follow daylight saving rules.
ZONE_ABBREVIATIONS = {
    "GMT": 0,
    "BST": 1,
    "CET": 1,
    "CEST": 2,
    "EET": 2,
    "EEST": 3,
    "JST": 9,
    "HST": -10,
    "AKST": -9,
    "AKDT": -8,
    "PST": -8,
    "PDT": -7,
    "MST": -7,
    "MDT": -6,
    "CST": -6,
    "CDT": -5,
    "EST": -5,
    "EDT": -4,
}


class CompoundTypeHandling(str, Enum):
    """How ``array`` and ``map`` cells are returned."""

    OPAQUE = "opaque"
    STRICT = "strict"


@dataclass(frozen=True)
class ConversionPolicy:
    """Tunable decoding behavior.

    ``enforce_integer_width`` bounds tinyint/smallint/integer to their declared
    widths; when disabled they only need to fit in 64 bits. ``compound_types``
    selects whether array/map cells pass through as strings or are rejected.
    """

    enforce_integer_width: bool = True
    compound_types: CompoundTypeHandling = CompoundTypeHandling.OPAQUE


DEFAULT_POLICY = ConversionPolicy()


def convert_value(
    declared_type: str, raw: Optional[str], policy: ConversionPolicy = DEFAULT_POLICY
) -> Any:
    """Decode one raw cell according to its declared Athena type."""
    if raw is None:
        return None

    if declared_type in INTEGER_BITS:
        return _to_int(declared_type, raw, policy)
    if declared_type in COMPOUND_TYPES:
        if policy.compound_types == CompoundTypeHandling.STRICT:
            raise UnsupportedTypeError(declared_type)
        return raw

    decoder = _DECODERS.get(declared_type)
    if decoder is None:
        raise UnsupportedTypeError(declared_type)
    return decoder(declared_type, raw)


def _to_int(declared_type: str, raw: str, policy: ConversionPolicy) -> int:
    if not _INTEGER_RE.fullmatch(raw):
        raise ConversionError(declared_type, raw, detail="not a base-10 integer")
    value = int(raw)
    bits = INTEGER_BITS[declared_type] if policy.enforce_integer_width else 64
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise ConversionError(declared_type, raw, detail=f"out of range for {bits}-bit integer")
    return value


def _to_bool(declared_type: str, raw: str) -> bool:
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise ConversionError(declared_type, raw, detail="expected 'true' or 'false'")


def _to_float(declared_type: str, raw: str) -> float:
    if raw in _NON_FINITE:
        return _NON_FINITE[raw]
    if not _FLOAT_RE.fullmatch(raw):
        raise ConversionError(declared_type, raw, detail="not a decimal number")
    value = float(raw)
    if declared_type == "float":
        try:
            value = struct.unpack("f", struct.pack("f", value))[0]
        except OverflowError as exc:
            raise ConversionError(
                declared_type, raw, detail="out of range for single precision"
            ) from exc
    # Finite input that rounds to infinity (struct.pack does not always raise).
    if math.isinf(value):
        raise ConversionError(declared_type, raw, detail=f"out of range for {declared_type}")
    return value


def _to_decimal(declared_type: str, raw: str) -> Decimal:
    if not _FLOAT_RE.fullmatch(raw):
        raise ConversionError(declared_type, raw, detail="not a decimal number")
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ConversionError(declared_type, raw) from exc


def _to_str(declared_type: str, raw: str) -> str:
    return raw


def _to_timestamp(declared_type: str, raw: str) -> datetime:
    match = _TIMESTAMP_RE.fullmatch(raw)
    if match is None:
        raise ConversionError(declared_type, raw, detail="expected 'YYYY-MM-DD HH:MM:SS[.fff]'")
    zone_name = match.group("zone")
    with_zone = declared_type == "timestamp with time zone"
    if zone_name and not with_zone:
        raise ConversionError(declared_type, raw, detail="unexpected time zone suffix")
    if with_zone and not zone_name:
        raise ConversionError(declared_type, raw, detail="missing time zone suffix")

    try:
        parsed = datetime.strptime(match.group("base"), TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise ConversionError(declared_type, raw, detail=str(exc)) from exc

    fraction = match.group("fraction")
    if fraction:
        # Athena may emit up to nanosecond precision; datetime stops at microseconds.
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))

    if not with_zone:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.replace(tzinfo=_resolve_zone(declared_type, raw, zone_name)).astimezone(
        timezone.utc
    )


def _resolve_zone(declared_type: str, raw: str, zone_name: str):
    if zone_name in {"UTC", "Z"}:
        return timezone.utc
    if zone_name in ZONE_ABBREVIATIONS:
        return timezone(timedelta(hours=ZONE_ABBREVIATIONS[zone_name]), zone_name)
    offset = _OFFSET_RE.fullmatch(zone_name)
    try:
        if offset is not None:
            delta = timedelta(
                hours=int(offset.group("hours")), minutes=int(offset.group("minutes"))
            )
            return timezone(-delta if offset.group("sign") == "-" else delta)
        return ZoneInfo(zone_name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ConversionError(
            declared_type, raw, detail=f"unknown time zone '{zone_name}'"
        ) from exc


def _to_date(declared_type: str, raw: str) -> date:
    if not _DATE_RE.fullmatch(raw):
        raise ConversionError(declared_type, raw, detail="expected 'YYYY-MM-DD'")
    try:
        return datetime.strptime(raw, DATE_FORMAT).date()
    except ValueError as exc:
        raise ConversionError(declared_type, raw, detail=str(exc)) from exc


def _to_bytes(declared_type: str, raw: str) -> bytes:
    if raw == "":
        return b""
    if not _VARBINARY_RE.fullmatch(raw):
        raise ConversionError(declared_type, raw, detail="expected space separated hex pairs")
    return bytes.fromhex(raw)


def _reject_json_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _to_json(declared_type: str, raw: str) -> Any:
    try:
        return json.loads(raw, parse_constant=_reject_json_constant)
    except ValueError as exc:
        detail = exc.msg if isinstance(exc, json.JSONDecodeError) else str(exc)
        raise ConversionError(declared_type, raw, detail=detail) from exc


_DECODERS: Dict[str, Callable[[str, str], Any]] = {
    "boolean": _to_bool,
    "float": _to_float,
    "double": _to_float,
    "decimal": _to_decimal,
    "varchar": _to_str,
    "char": _to_str,
    "string": _to_str,
    "timestamp": _to_timestamp,
    "timestamp with time zone": _to_timestamp,
    "date": _to_date,
    "varbinary": _to_bytes,
    "json": _to_json,
}
