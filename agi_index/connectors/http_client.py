from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any

import requests

from agi_index.core.utils import stable_hash

logger = logging.getLogger(__name__)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


class SimpleHttpClient:
    def __init__(
        self,
        timeout_seconds: int = 20,
        max_retries: int = 3,
        cache_ttl_seconds: int = 300,
        cache_dir: str = ".cache/agi_index_http",
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_retries = max(1, max_retries)
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache_path = Path(cache_dir)
        self.cache_path.mkdir(parents=True, exist_ok=True)

    def _cache_file(self, url: str, params: dict[str, Any] | None, suffix: str) -> Path:
        cache_key = stable_hash(url + "|" + json.dumps(params or {}, sort_keys=True))
        return self.cache_path / f"{cache_key}{suffix}"

    def _fresh(self, cache_file: Path) -> bool:
        if self.cache_ttl_seconds <= 0 or not cache_file.exists():
            return False
        age_seconds = time.time() - cache_file.stat().st_mtime
        return age_seconds <= self.cache_ttl_seconds

    def _request(
        self,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str] | None,
    ) -> requests.Response:
        delay = 1.0
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                response = requests.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout_seconds,
                )
                if response.status_code in RETRYABLE_STATUSES:
                    raise requests.HTTPError(
                        f"retryable status={response.status_code}", response=response
                    )
                response.raise_for_status()
                return response
            except requests.RequestException as exc:
                last_error = exc
                logger.warning(f"GET {url} failed (attempt {attempt}/{self.max_retries}): {exc}")
                if attempt < self.max_retries:
                    time.sleep(delay)
                    delay *= 2
        if last_error is None:
            raise RuntimeError("Unexpected HTTP client failure with no exception.")
        raise last_error

    def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any] | list[Any]:
        cache_file = self._cache_file(url, params, ".json")
        if self._fresh(cache_file):
            return json.loads(cache_file.read_text(encoding="utf-8"))

        payload = self._request(url, params, headers).json()
        cache_file.write_text(json.dumps(payload), encoding="utf-8")
        return payload

    def get_bytes(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> bytes:
        cache_file = self._cache_file(url, params, ".bin")
        if self._fresh(cache_file):
            return cache_file.read_bytes()

        content = self._request(url, params, headers).content
        cache_file.write_bytes(content)
        return content
