from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..exceptions import ConfigError


def parse_connector_records(payload: str | bytes) -> list[dict[str, Any]]:
    """Parse a connectors document: a JSON array of connector records.

    Raises ConfigError on invalid JSON or on a document that is not a list of objects.
    """

    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8", errors="replace")
        raw = json.loads(payload)
    except ValueError as e:
        raise ConfigError(f"Invalid JSON: {e}") from e

    if not isinstance(raw, list):
        raise ConfigError("Connectors document must be a JSON array of objects")
    for i, rec in enumerate(raw):
        if not isinstance(rec, dict):
            raise ConfigError(f"Connector record #{i} is not a JSON object")
    return raw


def load_connector_records(path: str | Path) -> list[dict[str, Any]]:
    p = Path(path)
    try:
        payload = p.read_bytes()
    except OSError as e:
        raise ConfigError(f"{p}: unable to read connectors file: {e}") from e
    return parse_connector_records(payload)
