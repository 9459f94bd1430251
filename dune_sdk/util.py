"""Utility methods for package."""

from __future__ import annotations

import importlib.metadata
import json
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

DUNE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def postgres_date(date_str: str) -> datetime:
    """Parse a postgres compatible date string into datetime object"""
    return datetime.strptime(date_str, DUNE_DATE_FORMAT)


def get_package_version(package_name: str) -> str | None:
    """
    Returns the package version by `package_name` using the importlib.metadata module.
    None when the package is not installed.
    """
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        return None


def age_in_hours(timestamp: datetime) -> float:
    """
    Returns the time (in hours) between now and `timestamp`
    """
    result_age = datetime.now(UTC) - timestamp
    return result_age.total_seconds() / (60 * 60)


def _search_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def payload_search_params(payload: Mapping[str, Any]) -> list[tuple[str, str]]:
    """
    Flattens a request payload into (key, value) pairs for a GET query string.

    Sequence values repeat the key once per element, nested mappings are
    JSON-stringified and None values are dropped. Key order is preserved:
        {"a": 1, "b": [2, 3]} -> [("a", "1"), ("b", "2"), ("b", "3")]
    """
    pairs: list[tuple[str, str]] = []
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            pairs.extend((key, _search_value(item)) for item in value)
        else:
            pairs.append((key, _search_value(value)))
    return pairs


def payload_json(payload: Any) -> str | None:
    """JSON encoded request body, None when there is no payload"""
    if payload is None:
        return None
    return json.dumps(payload)
