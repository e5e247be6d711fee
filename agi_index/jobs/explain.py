from __future__ import annotations

import argparse
from datetime import datetime
from typing import Any

from agi_index.core.alignment import nearest_snapshot, next_market_index
from agi_index.core.config import IndexSettings
from agi_index.core.distribution import (
    average_distributions,
    explain_reweighting,
    extract_percentiles,
    freeze,
)
from agi_index.core.utils import parse_day, to_iso
from agi_index.jobs.build_index import LoadedSources, load_sources
from agi_index.jobs.common import bootstrap, write_json


def explain_day(sources: LoadedSources, day: datetime, settings: IndexSettings) -> dict[str, Any]:
    """How one day's index value comes together: sources present, market split, result."""
    present = {
        name: nearest_snapshot(series.snapshots, day)
        for name, series in sources.distribution_sources().items()
    }
    samples = [s.distribution for s in present.values() if s is not None]
    result: dict[str, Any] = {
        "date": to_iso(day),
        "sources_present": sorted(name for name, s in present.items() if s is not None),
    }
    average = average_distributions(samples)
    if average is None:
        result["error"] = "no distribution source reported on this day"
        return result

    unweighted = extract_percentiles(average, settings)
    result["unweighted"] = None if unweighted is None else [unweighted.lower, unweighted.median, unweighted.upper]

    market_index = next_market_index(sources.kalshi, day)
    if market_index is None:
        result["market"] = None
        result["final"] = result["unweighted"]
        return result

    point = sources.kalshi[market_index]
    report = explain_reweighting(average, point.probability_percent, settings)
    final = extract_percentiles(freeze(report.blended), settings)
    result["market"] = {"index": market_index, "date": to_iso(point.date), "value": point.probability_percent}
    result["reweighting"] = report.to_record()
    result["final"] = None if final is None else [final.lower, final.median, final.upper]
    return result


def run_explain(day: str, config_path: str = "agi_index.toml") -> dict[str, Any]:
    config, connectors = bootstrap(config_path)
    sources = load_sources(config, connectors)
    return explain_day(sources, parse_day(day), config.index)


def main() -> None:
    parser = argparse.ArgumentParser(description="Explain the index calculation for one day.")
    parser.add_argument("--date", required=True, help="YYYY-MM-DD")
    parser.add_argument("--config", default="agi_index.toml")
    args = parser.parse_args()
    write_json(run_explain(args.date, config_path=args.config))


if __name__ == "__main__":
    main()
