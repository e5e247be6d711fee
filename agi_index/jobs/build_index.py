from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from agi_index.connectors import BaseConnector
from agi_index.connectors.base import ConfigurationError, SourceFetchError
from agi_index.connectors.metaculus import MetaculusHistory
from agi_index.core.binary import binary_market_points
from agi_index.core.config import AppConfig
from agi_index.core.continuous import daily_question_history, question_snapshots
from agi_index.core.discrete import manifold_series
from agi_index.core.index import compute_index
from agi_index.core.schemas import BinaryMarketPoint, ChartDataPoint, IndexResult, SourceSnapshot
from agi_index.core.smoothing import smooth_series
from agi_index.core.utils import utc_now
from agi_index.jobs.common import bootstrap, write_json

logger = logging.getLogger(__name__)

QUESTION_SOURCES = ("weak_agi", "full_agi", "turing_test")


@dataclass
class SourceSeries:
    snapshots: list[SourceSnapshot] = field(default_factory=list)
    datapoints: list[ChartDataPoint] = field(default_factory=list)


@dataclass
class LoadedSources:
    weak_agi: SourceSeries
    full_agi: SourceSeries
    turing_test: SourceSeries
    manifold: SourceSeries
    kalshi: list[BinaryMarketPoint]

    def distribution_sources(self) -> dict[str, SourceSeries]:
        return {
            "weak_agi": self.weak_agi,
            "full_agi": self.full_agi,
            "turing_test": self.turing_test,
            "manifold": self.manifold,
        }


def require_connector(connectors: dict[str, BaseConnector], name: str) -> BaseConnector:
    connector = connectors.get(name)
    if connector is None:
        raise ConfigurationError(f"Source '{name}' is disabled but the index needs it")
    return connector


async def fetch_all(config: AppConfig, connectors: dict[str, BaseConnector]) -> dict[str, Any]:
    """Fetch every raw source concurrently; fail with all errors if any fetch fails."""
    metaculus = require_connector(connectors, "metaculus")
    jobs: dict[str, Callable[[], Any]] = {
        "weak_agi": lambda: metaculus.fetch_history(str(config.questions.weak_agi)),
        "full_agi": lambda: metaculus.fetch_history(str(config.questions.full_agi)),
        "turing_test": lambda: metaculus.fetch_history(str(config.questions.turing_test)),
        "manifold": lambda: require_connector(connectors, "manifold").fetch_history(config.manifold.contract_slug),
        "kalshi": lambda: require_connector(connectors, "kalshi").fetch_history(config.kalshi.market_ticker),
    }
    names = list(jobs)
    results = await asyncio.gather(*(asyncio.to_thread(jobs[name]) for name in names), return_exceptions=True)

    failures = {name: repr(result) for name, result in zip(names, results) if isinstance(result, BaseException)}
    if failures:
        for name, reason in failures.items():
            logger.error(f"Fetching {name} failed: {reason}")
        raise SourceFetchError(f"Error fetching data: {failures}")
    return dict(zip(names, results))


def normalize_question(history: MetaculusHistory, config: AppConfig, now: datetime) -> SourceSeries:
    close = history.question.scheduled_close_time
    until = now if close is None or now < close else close
    expanded = daily_question_history(history.forecasts, history.question.scaling, until, config.index)
    return SourceSeries(
        snapshots=question_snapshots(expanded.snapshots, config.index),
        datapoints=expanded.datapoints,
    )


def normalize_sources(raw: dict[str, Any], config: AppConfig, now: datetime | None = None) -> LoadedSources:
    now = now or utc_now()
    questions = {name: normalize_question(raw[name], config, now) for name in QUESTION_SOURCES}
    manifold = manifold_series(raw["manifold"], config.index, until=now)
    return LoadedSources(
        weak_agi=questions["weak_agi"],
        full_agi=questions["full_agi"],
        turing_test=questions["turing_test"],
        manifold=SourceSeries(snapshots=manifold.snapshots, datapoints=manifold.datapoints),
        kalshi=binary_market_points(raw["kalshi"], config.kalshi.period_interval),
    )


def load_sources(config: AppConfig, connectors: dict[str, BaseConnector]) -> LoadedSources:
    raw = asyncio.run(fetch_all(config, connectors))
    return normalize_sources(raw, config)


def index_from_sources(sources: LoadedSources, config: AppConfig) -> IndexResult:
    return compute_index(
        sources.weak_agi.snapshots,
        sources.full_agi.snapshots,
        sources.turing_test.snapshots,
        sources.manifold.snapshots,
        sources.kalshi,
        config.index,
    )


def run_build_index(config_path: str = "agi_index.toml", smooth_window: int | None = None) -> dict[str, Any]:
    config, connectors = bootstrap(config_path)
    sources = load_sources(config, connectors)
    result = index_from_sources(sources, config)
    record = result.to_record()
    if smooth_window and smooth_window > 1:
        record["smoothed"] = [p.to_record() for p in smooth_series(result.data, smooth_window)]
    return record


def main() -> None:
    parser = argparse.ArgumentParser(description="Build the AGI timelines index.")
    parser.add_argument("--config", default="agi_index.toml", help="Path to agi_index.toml")
    parser.add_argument("--output", default=None, help="Write JSON here instead of stdout")
    parser.add_argument("--smooth", type=int, default=None, help="Moving-average window in days")
    args = parser.parse_args()
    write_json(run_build_index(config_path=args.config, smooth_window=args.smooth), args.output)


if __name__ == "__main__":
    main()
