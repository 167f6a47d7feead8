"""
Morningstar payload parsing.

The provider answers either with a bare JSON array of fund objects or with an
envelope object that wraps such an array. Records are returned as received;
cleaning and validation happen in :mod:`ingestor.core.validators`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from ingestor.core.errors import SourceError
from ingestor.utils.logger import get_logger

log = get_logger(__name__)

ENVELOPE_KEYS = ("data", "funds", "results", "items", "records")

RawPayload = Union[str, bytes, List[Any], Dict[str, Any]]


def extract_records(payload: Any, *, source: str = "morningstar") -> List[Any]:
    """Pull the list of fund objects out of a decoded response body."""
    if isinstance(payload, list):
        return payload

    if isinstance(payload, dict):
        for key in ENVELOPE_KEYS:
            value = payload.get(key)
            if isinstance(value, list):
                return value
            # Nested envelopes such as {"data": {"funds": [...]}}
            if isinstance(value, dict):
                for inner_key in ENVELOPE_KEYS:
                    inner = value.get(inner_key)
                    if isinstance(inner, list):
                        return inner
        for value in payload.values():
            if isinstance(value, list):
                return value

    raise SourceError(
        "Expected a JSON array of funds or an envelope containing one",
        source=source,
        details={"payload_type": type(payload).__name__},
    )


def parse_payload(payload: RawPayload, *, source: str = "morningstar") -> List[Any]:
    """Decode a raw JSON document (or an already decoded one) into records."""
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            log.error(f"JSON parse error: {exc}")
            raise SourceError(f"JSON parse error: {exc}", source=source, cause=exc) from exc

    records = extract_records(payload, source=source)
    log.info(f"Parsed {len(records)} funds from payload")
    return records


def parse_file(path: Union[str, Path], *, source: str = "file") -> List[Any]:
    file_path = Path(path)
    log.info(f"Reading file: {file_path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        log.error(f"Failed to read file: {exc}")
        raise SourceError(f"File read error: {exc}", source=source, cause=exc) from exc
    return parse_payload(content, source=source)


__all__ = ["ENVELOPE_KEYS", "extract_records", "parse_payload", "parse_file"]
