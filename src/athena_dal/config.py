import re
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import parse_qs

from athena_dal.util.env import get_env_float, get_env_str

DEFAULT_POLL_INTERVAL_SECONDS = 1.0

_DURATION_PART_RE = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


@dataclass(frozen=True)
class AthenaConfig:
    """Configuration required to run queries against Athena."""

    database: str
    output_location: str
    region: Optional[str] = None
    workgroup: Optional[str] = None
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    query_timeout_seconds: Optional[float] = None

    @classmethod
    def from_env(cls) -> "AthenaConfig":
        """Load Athena config from environment variables."""
        database = get_env_str("ATHENA_DATABASE")
        output_location = get_env_str("ATHENA_OUTPUT_LOCATION")

        _require_settings(
            {"ATHENA_DATABASE": database, "ATHENA_OUTPUT_LOCATION": output_location}
        )

        return cls(
            database=database,
            output_location=output_location,
            region=get_env_str("AWS_REGION"),
            workgroup=get_env_str("ATHENA_WORKGROUP"),
            poll_interval_seconds=get_env_float(
                "ATHENA_POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS
            ),
            query_timeout_seconds=get_env_float("ATHENA_QUERY_TIMEOUT_SECONDS"),
        )

    @classmethod
    def from_connection_string(cls, conn_str: str) -> "AthenaConfig":
        """Parse ``db=...&output_location=...&poll_frequency=500ms`` style settings.

        Recognized keys: ``db``, ``output_location``, ``region``, ``workgroup``,
        ``poll_frequency`` (a duration such as ``250ms``, ``2s`` or ``1m30s``) and
        ``timeout`` (same syntax).
        """
        args = {key: values[-1] for key, values in parse_qs(conn_str or "").items()}

        poll_interval = DEFAULT_POLL_INTERVAL_SECONDS
        frequency = args.get("poll_frequency")
        if frequency:
            try:
                poll_interval = parse_duration(frequency)
            except ValueError as exc:
                raise ValueError(f"invalid poll_frequency parameter: {frequency}") from exc

        timeout = None
        raw_timeout = args.get("timeout")
        if raw_timeout:
            try:
                timeout = parse_duration(raw_timeout)
            except ValueError as exc:
                raise ValueError(f"invalid timeout parameter: {raw_timeout}") from exc

        database = args.get("db")
        output_location = args.get("output_location")
        _require_settings({"db": database, "output_location": output_location})

        return cls(
            database=database,
            output_location=output_location,
            region=args.get("region"),
            workgroup=args.get("workgroup"),
            poll_interval_seconds=poll_interval,
            query_timeout_seconds=timeout,
        )


def _require_settings(settings: Dict[str, Optional[str]]) -> None:
    missing = [name for name, value in settings.items() if not value]
    if missing:
        missing_list = ", ".join(missing)
        raise ValueError(
            f"Athena config missing required settings: {missing_list}. "
            f"Set {' and '.join(settings)}."
        )


def parse_duration(value: str) -> float:
    """Parse a duration such as ``1.5s``, ``300ms`` or ``1h2m`` into seconds."""
    text = value.strip()
    if text == "0":
        return 0.0

    position = 0
    total = 0.0
    for match in _DURATION_PART_RE.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if not text or position != len(text):
        raise ValueError(f"invalid duration: {value!r}")
    return total
