from __future__ import annotations

import csv
import io
import json
import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from agi_index.connectors.base import (
    BaseConnector,
    ConfigurationError,
    SourceFetchError,
    parse_datetime,
)
from agi_index.connectors.http_client import SimpleHttpClient
from agi_index.core.scaling import transform
from agi_index.core.schemas import CdfForecast, ChartDataPoint, ScalingSpec
from agi_index.core.utils import ONE_DAY, from_timestamp

logger = logging.getLogger(__name__)

FORECAST_DATA_FILE = "forecast_data.csv"


@dataclass
class MetaculusQuestion:
    question_id: int
    scaling: ScalingSpec
    scheduled_close_time: datetime | None


@dataclass
class MetaculusHistory:
    question: MetaculusQuestion
    forecasts: list[CdfForecast]


def parse_forecast_csv(text: str) -> list[CdfForecast]:
    forecasts: list[CdfForecast] = []
    for row in csv.DictReader(io.StringIO(text)):
        if not row.get("Question ID"):
            continue
        start_time = parse_datetime(row.get("Start Time"))
        raw_cdf = row.get("Continuous CDF")
        if start_time is None or not raw_cdf:
            logger.warning(f"Skipping forecast row without start time or CDF: {row.get('Forecaster ID')}")
            continue
        forecasts.append(CdfForecast(start_time=start_time, cdf=[float(x) for x in json.loads(raw_cdf)]))
    return forecasts


def read_forecast_archive(content: bytes) -> list[CdfForecast]:
    with zipfile.ZipFile(io.BytesIO(content)) as archive:
        names = [name for name in archive.namelist() if name.rsplit("/", 1)[-1] == FORECAST_DATA_FILE]
        if not names:
            raise SourceFetchError(f"{FORECAST_DATA_FILE} missing from Metaculus export")
        text = archive.read(names[0]).decode("utf-8")
    return parse_forecast_csv(text)


def community_series(question: dict[str, Any], scaling: ScalingSpec) -> list[ChartDataPoint]:
    """Daily chart points from the recency-weighted aggregation history."""
    history = (((question.get("aggregations") or {}).get("recency_weighted") or {}).get("history")) or []
    if not history:
        logger.warning("Metaculus question payload has no recency_weighted history")
        return []
    history = sorted(history, key=lambda item: item["start_time"])
    start = float(history[0]["start_time"])
    end = float(history[-1]["start_time"])
    step = ONE_DAY.total_seconds()

    points: list[ChartDataPoint] = []
    index = 0
    current = start
    while current <= end:
        while index + 1 < len(history) and float(history[index + 1]["start_time"]) <= current:
            index += 1
        sample = history[index]
        lower = (sample.get("interval_lower_bounds") or [0.0])[0]
        upper = (sample.get("interval_upper_bounds") or [0.0])[0]
        points.append(
            ChartDataPoint(
                date=from_timestamp(current),
                value=transform(scaling, float(sample["centers"][0])),
                range=(transform(scaling, float(lower)), transform(scaling, float(upper))),
            )
        )
        current += step
    return points


class MetaculusConnector(BaseConnector):
    source = "metaculus"
    default_base_url = "https://www.metaculus.com/api"

    def __init__(
        self,
        base_url: str | None = None,
        http: SimpleHttpClient | None = None,
        api_key: str | None = None,
    ) -> None:
        super().__init__(base_url=base_url, http=http)
        self.api_key = api_key

    def _auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("METACULUS_API_KEY not set")
        return {"Authorization": f"Token {self.api_key}", "Accept": "application/json"}

    def _post(self, question_id: int, headers: dict[str, str] | None = None) -> dict[str, Any]:
        payload = self.http.get_json(f"{self.base_url}/posts/{question_id}/", headers=headers)
        if not isinstance(payload, dict) or not isinstance(payload.get("question"), dict):
            raise SourceFetchError(f"Metaculus post {question_id} has no question payload")
        return payload["question"]

    def fetch_question(self, question_id: int) -> MetaculusQuestion:
        question = self._post(question_id, headers=self._auth_headers())
        return MetaculusQuestion(
            question_id=question_id,
            scaling=ScalingSpec.from_record(question.get("scaling") or {}),
            scheduled_close_time=parse_datetime(question.get("scheduled_close_time")),
        )

    def fetch_history(self, source_id: str) -> MetaculusHistory:
        question_id = int(source_id)
        headers = self._auth_headers()
        content = self.http.get_bytes(
            f"{self.base_url}/posts/{question_id}/download-data/",
            params={
                "aggregation_methods": "recency_weighted",
                "minimize": "true",
                "include_comments": "false",
            },
            headers=headers,
        )
        forecasts = read_forecast_archive(content)
        if not forecasts:
            raise SourceFetchError(f"No forecasts in Metaculus export for question {question_id}")
        question = self.fetch_question(question_id)
        logger.info(f"Metaculus {question_id}: {len(forecasts)} forecast rows")
        return MetaculusHistory(question=question, forecasts=forecasts)

    def fetch_community_series(self, question_id: int) -> list[ChartDataPoint]:
        question = self._post(question_id, headers={"Accept": "application/json"})
        scaling = ScalingSpec.from_record(question.get("scaling") or {})
        return community_series(question, scaling)
