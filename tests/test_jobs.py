from __future__ import annotations

import asyncio
import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

from agi_index.connectors.base import ConfigurationError, SourceFetchError
from agi_index.connectors.metaculus import MetaculusHistory, MetaculusQuestion
from agi_index.core.config import AppConfig
from agi_index.core.discrete import MANIFOLD_ANSWER_YEARS
from agi_index.core.schemas import Bet, Candlestick, CdfForecast, ScalingSpec
from agi_index.jobs.build_index import fetch_all, index_from_sources, normalize_sources, run_build_index
from agi_index.jobs.common import write_json
from agi_index.jobs.explain import explain_day
from agi_index.jobs.source_series import run_source_series

START = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOW = START + timedelta(days=4)
LINEAR_CDF = [i / 200 for i in range(201)]


def _ts(year: int) -> float:
    return datetime(year, 1, 1, tzinfo=timezone.utc).timestamp()


def _history(question_id: int) -> MetaculusHistory:
    question = MetaculusQuestion(
        question_id=question_id,
        scaling=ScalingSpec(range_min=_ts(2024), range_max=_ts(2124)),
        scheduled_close_time=START + timedelta(days=2),
    )
    return MetaculusHistory(question=question, forecasts=[CdfForecast(start_time=START, cdf=LINEAR_CDF)])


def _bets() -> list[Bet]:
    head = [0.4, 0.3, 0.25]
    return [
        Bet(
            answer_id=answer_id,
            prob_after=head[i] if i < len(head) else 0.002,
            created_time=START + timedelta(hours=1, minutes=i),
        )
        for i, answer_id in enumerate(MANIFOLD_ANSWER_YEARS)
    ]


def _candles() -> list[Candlestick]:
    return [
        Candlestick(end_period_ts=int(START.timestamp()) + 86_400 * d, mean_price=40.0, yes_bid_close=39, yes_ask_close=41)
        for d in range(3)
    ]


class _FakeMetaculus:
    def fetch_history(self, source_id: str) -> MetaculusHistory:
        return _history(int(source_id))


class _FakeManifold:
    def fetch_history(self, source_id: str) -> list[Bet]:
        return _bets()


class _FakeKalshi:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail

    def fetch_history(self, source_id: str) -> list[Candlestick]:
        if self.fail:
            raise RuntimeError("kalshi down")
        return _candles()


def _connectors(kalshi_fails: bool = False) -> dict:
    return {
        "metaculus": _FakeMetaculus(),
        "manifold": _FakeManifold(),
        "kalshi": _FakeKalshi(fail=kalshi_fails),
    }


def _raw() -> dict:
    return {
        "weak_agi": _history(3479),
        "full_agi": _history(5121),
        "turing_test": _history(11861),
        "manifold": _bets(),
        "kalshi": _candles(),
    }


class BuildIndexJobTests(unittest.TestCase):
    def test_fetch_all_collects_every_source(self) -> None:
        raw = asyncio.run(fetch_all(AppConfig(), _connectors()))
        self.assertEqual(sorted(raw), ["full_agi", "kalshi", "manifold", "turing_test", "weak_agi"])
        self.assertEqual(raw["weak_agi"].question.question_id, 3479)

    def test_fetch_all_fails_when_any_source_fails(self) -> None:
        with self.assertRaises(SourceFetchError) as ctx:
            asyncio.run(fetch_all(AppConfig(), _connectors(kalshi_fails=True)))
        self.assertIn("kalshi", str(ctx.exception))

    def test_questions_stop_at_scheduled_close(self) -> None:
        sources = normalize_sources(_raw(), AppConfig(), now=NOW)
        self.assertEqual(len(sources.weak_agi.snapshots), 3)
        self.assertEqual(len(sources.manifold.snapshots), 5)
        self.assertEqual([p.probability_percent for p in sources.kalshi], [40.0, 40.0, 40.0])

    def test_index_from_sources(self) -> None:
        config = AppConfig()
        result = index_from_sources(normalize_sources(_raw(), config, now=NOW), config)

        self.assertEqual(len(result.data), 5)
        self.assertEqual(result.skipped_days, [])
        self.assertEqual(result.start_dates.computed, START)
        for point in result.data:
            self.assertLessEqual(point.range[0], point.value)
            self.assertLessEqual(point.value, point.range[1])

    def test_run_build_index_writes_json(self) -> None:
        config = AppConfig()
        with (
            patch("agi_index.jobs.build_index.bootstrap", return_value=(config, _connectors())),
            patch("agi_index.jobs.build_index.utc_now", return_value=NOW),
        ):
            record = run_build_index(smooth_window=3)

        self.assertEqual(len(record["data"]), 5)
        self.assertEqual(len(record["smoothed"]), 5)
        self.assertEqual(record["start_dates"]["computed"], "2024-01-01T00:00:00+00:00")

        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "out" / "index.json"
            write_json(record, str(out))
            self.assertEqual(json.loads(out.read_text(encoding="utf-8")), record)


class SourceSeriesJobTests(unittest.TestCase):
    def _run(self, source: str) -> list[dict]:
        with (
            patch("agi_index.jobs.source_series.bootstrap", return_value=(AppConfig(), _connectors())),
            patch("agi_index.jobs.source_series.utc_now", return_value=NOW),
        ):
            return run_source_series(source)

    def test_question_markers_in_years(self) -> None:
        points = self._run("weak_agi")
        self.assertEqual(len(points), 3)
        self.assertAlmostEqual(points[0]["value"], 2074.0, delta=0.05)

    def test_manifold_and_kalshi_series(self) -> None:
        self.assertEqual(self._run("manifold")[0]["range"], [2024.0, 2026.0])
        self.assertEqual([p["value"] for p in self._run("kalshi")], [40.0, 40.0, 40.0])

    def test_polymarket_needs_an_event_slug(self) -> None:
        with self.assertRaises(ConfigurationError):
            self._run("polymarket")


class ExplainJobTests(unittest.TestCase):
    def test_explain_day_reports_market_and_result(self) -> None:
        config = AppConfig()
        sources = normalize_sources(_raw(), config, now=NOW)
        report = explain_day(sources, START + timedelta(days=1), config.index)

        self.assertEqual(report["sources_present"], ["full_agi", "manifold", "turing_test", "weak_agi"])
        self.assertEqual(report["market"]["value"], 40.0)
        self.assertEqual(report["market"]["index"], 1)
        self.assertAlmostEqual(report["reweighting"]["probability"], 0.4)
        self.assertAlmostEqual(report["reweighting"]["reweighted_before"], 0.4)
        self.assertEqual(len(report["final"]), 3)

    def test_explain_day_without_sources(self) -> None:
        config = AppConfig()
        sources = normalize_sources(_raw(), config, now=NOW)
        report = explain_day(sources, START + timedelta(days=30), config.index)
        self.assertIn("error", report)


if __name__ == "__main__":
    unittest.main()
