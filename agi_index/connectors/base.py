from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from agi_index.connectors.http_client import SimpleHttpClient


class ConfigurationError(RuntimeError):
    """A source cannot be queried because required settings are missing."""


class SourceFetchError(RuntimeError):
    """A source returned no usable data."""


def parse_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        # Heuristic: milliseconds if very large.
        if value > 10_000_000_000:
            value = value / 1000.0
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, str):
        cleaned = value.strip().replace("Z", "+00:00")
        if not cleaned:
            return None
        try:
            parsed = datetime.fromisoformat(cleaned)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return None


class BaseConnector(ABC):
    source: str
    default_base_url: str

    def __init__(self, base_url: str | None = None, http: SimpleHttpClient | None = None) -> None:
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.http = http or SimpleHttpClient()

    @abstractmethod
    def fetch_history(self, source_id: str) -> Any:
        raise NotImplementedError
