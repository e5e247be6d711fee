from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
import tomllib

from agi_index.core.utils import ensure_utc


@dataclass(frozen=True)
class IndexSettings:
    """Constants of the index calculation, passed explicitly into the core."""

    start_year: int = 2024
    end_year: int = 2199
    cutoff_year: int = 2030
    index_cutoff_date: datetime = datetime(2020, 2, 2, tzinfo=timezone.utc)
    other_weight: float = 0.8
    market_weight: float = 0.2
    cdf_buckets: int = 200
    lower_quantile: float = 0.1
    median_quantile: float = 0.5
    upper_quantile: float = 0.9
    max_answer_years_scanned: int = 10

    def __post_init__(self) -> None:
        if self.end_year < self.start_year:
            raise ValueError("end_year must not precede start_year")
        if not self.start_year <= self.cutoff_year <= self.end_year + 1:
            raise ValueError("cutoff_year must fall inside the year range")
        if abs(self.other_weight + self.market_weight - 1.0) > 1e-9:
            raise ValueError("other_weight and market_weight must sum to 1")

    @property
    def year_range(self) -> int:
        return self.end_year - self.start_year + 1

    @property
    def cutoff_offset(self) -> int:
        return self.cutoff_year - self.start_year

    @property
    def quantiles(self) -> tuple[float, float, float]:
        return (self.lower_quantile, self.median_quantile, self.upper_quantile)

    def year_at(self, offset: int) -> int:
        return self.start_year + offset


@dataclass
class SourceConfig:
    enabled: bool = True
    base_url: str | None = None
    timeout_seconds: int = 20
    max_retries: int = 3
    cache_ttl_seconds: int = 300


@dataclass
class MetaculusQuestions:
    weak_agi: int = 3479
    full_agi: int = 5121
    turing_test: int = 11861


@dataclass
class ManifoldMarket:
    contract_slug: str = "agi-when-resolves-to-the-year-in-wh-d5c5ad8e4708"


@dataclass
class KalshiMarket:
    series_ticker: str = "KXAITURING"
    market_ticker: str = "AITURING"
    market_id: str | None = "8a66420d-4b3c-446b-bd62-8386637ad844"
    period_interval: int = 24 * 60


@dataclass
class PolymarketMarket:
    event_slug: str | None = None


@dataclass
class AppConfig:
    cache_dir: str = ".cache/agi_index_http"
    metaculus_api_key_env: str = "METACULUS_API_KEY"
    sources: dict[str, SourceConfig] = field(default_factory=dict)
    index: IndexSettings = field(default_factory=IndexSettings)
    questions: MetaculusQuestions = field(default_factory=MetaculusQuestions)
    manifold: ManifoldMarket = field(default_factory=ManifoldMarket)
    kalshi: KalshiMarket = field(default_factory=KalshiMarket)
    polymarket: PolymarketMarket = field(default_factory=PolymarketMarket)

    def source(self, name: str) -> SourceConfig:
        return self.sources.get(name, SourceConfig())

    @property
    def metaculus_api_key(self) -> str | None:
        value = os.getenv(self.metaculus_api_key_env)
        return value.strip() if value and value.strip() else None


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key, {})
    if not isinstance(value, dict):
        return {}
    return value


def _index_settings(raw: dict[str, Any]) -> IndexSettings:
    values = dict(raw)
    cutoff = values.get("index_cutoff_date")
    if isinstance(cutoff, str):
        values["index_cutoff_date"] = ensure_utc(datetime.fromisoformat(cutoff))
    elif isinstance(cutoff, datetime):
        values["index_cutoff_date"] = ensure_utc(cutoff)
    elif cutoff is not None:
        # tomllib hands bare TOML dates back as datetime.date
        values["index_cutoff_date"] = datetime(cutoff.year, cutoff.month, cutoff.day, tzinfo=timezone.utc)
    return IndexSettings(**values)


def load_config(path: str = "agi_index.toml") -> AppConfig:
    cfg_path = Path(path)
    if not cfg_path.exists():
        return AppConfig()

    with cfg_path.open("rb") as f:
        raw = tomllib.load(f)

    sources_raw = _section(raw, "sources")
    sources = {
        name: SourceConfig(**values)
        for name, values in sources_raw.items()
        if isinstance(values, dict)
    }

    return AppConfig(
        cache_dir=str(raw.get("cache_dir", ".cache/agi_index_http")),
        metaculus_api_key_env=str(raw.get("metaculus_api_key_env", "METACULUS_API_KEY")),
        sources=sources,
        index=_index_settings(_section(raw, "index")),
        questions=MetaculusQuestions(**_section(raw, "questions")),
        manifold=ManifoldMarket(**_section(raw, "manifold")),
        kalshi=KalshiMarket(**_section(raw, "kalshi")),
        polymarket=PolymarketMarket(**_section(raw, "polymarket")),
    )
