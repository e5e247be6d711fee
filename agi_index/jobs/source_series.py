from __future__ import annotations

import argparse
from typing import Any

from agi_index.connectors.base import ConfigurationError
from agi_index.connectors.metaculus import MetaculusConnector
from agi_index.core.binary import binary_market_points
from agi_index.core.continuous import marker_years
from agi_index.core.discrete import manifold_series
from agi_index.core.utils import utc_now
from agi_index.jobs.build_index import QUESTION_SOURCES, require_connector, normalize_question
from agi_index.jobs.common import bootstrap, write_json

SOURCES = (*QUESTION_SOURCES, "manifold", "kalshi", "polymarket")


def run_source_series(
    source: str,
    config_path: str = "agi_index.toml",
    community: bool = False,
) -> list[dict[str, Any]]:
    """One source's own chart series, as it would be plotted on its own."""
    config, connectors = bootstrap(config_path)
    if source in QUESTION_SOURCES:
        metaculus = require_connector(connectors, "metaculus")
        question_id = getattr(config.questions, source)
        if community and isinstance(metaculus, MetaculusConnector):
            points = metaculus.fetch_community_series(question_id)
        else:
            history = metaculus.fetch_history(str(question_id))
            points = normalize_question(history, config, utc_now()).datapoints
        return [p.to_record() for p in marker_years(points)]
    if source == "manifold":
        bets = require_connector(connectors, "manifold").fetch_history(config.manifold.contract_slug)
        return [p.to_record() for p in manifold_series(bets, config.index, until=utc_now()).datapoints]
    if source == "kalshi":
        candles = require_connector(connectors, "kalshi").fetch_history(config.kalshi.market_ticker)
        return [p.to_record() for p in binary_market_points(candles, config.kalshi.period_interval)]
    if source == "polymarket":
        if not config.polymarket.event_slug:
            raise ConfigurationError("polymarket.event_slug not set")
        points = require_connector(connectors, "polymarket").fetch_history(config.polymarket.event_slug)
        return [p.to_record() for p in points]
    raise ValueError(f"Unknown source: {source}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Print one source's chart series.")
    parser.add_argument("source", choices=SOURCES)
    parser.add_argument("--config", default="agi_index.toml")
    parser.add_argument("--community", action="store_true", help="Use the public Metaculus aggregation history")
    parser.add_argument("--output", default=None)
    args = parser.parse_args()
    write_json(run_source_series(args.source, config_path=args.config, community=args.community), args.output)


if __name__ == "__main__":
    main()
