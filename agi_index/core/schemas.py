from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import numpy as np

from agi_index.core.utils import from_timestamp, to_iso


JsonDict = dict[str, Any]


@dataclass(frozen=True)
class ScalingSpec:
    range_min: float | None
    range_max: float | None
    zero_point: float | None = None

    @property
    def is_bounded(self) -> bool:
        return self.range_min is not None and self.range_max is not None

    @staticmethod
    def from_record(record: JsonDict) -> "ScalingSpec":
        def _num(key: str) -> float | None:
            value = record.get(key)
            return None if value is None else float(value)

        return ScalingSpec(
            range_min=_num("range_min"),
            range_max=_num("range_max"),
            zero_point=_num("zero_point"),
        )


@dataclass(frozen=True)
class YearForecast:
    year: int
    cdf_value: float
    pdf_value: float


@dataclass(frozen=True)
class CdfForecast:
    start_time: datetime
    cdf: list[float]


@dataclass(frozen=True)
class QuestionSnapshot:
    date: datetime
    years: list[YearForecast]


@dataclass(frozen=True)
class SourceSnapshot:
    date: datetime
    distribution: np.ndarray


@dataclass(frozen=True)
class Bet:
    answer_id: str
    prob_after: float
    created_time: datetime
    is_cancelled: bool = False

    @staticmethod
    def from_record(record: JsonDict) -> "Bet | None":
        answer_id = record.get("answerId")
        prob_after = record.get("probAfter")
        created = record.get("createdTime")
        if answer_id is None or prob_after is None or created is None:
            return None
        return Bet(
            answer_id=str(answer_id),
            prob_after=float(prob_after),
            created_time=from_timestamp(float(created) / 1000.0),
            is_cancelled=bool(record.get("isCancelled", False)),
        )


@dataclass(frozen=True)
class Candlestick:
    end_period_ts: int
    mean_price: float | None
    yes_bid_close: float
    yes_ask_close: float

    @staticmethod
    def from_record(record: JsonDict) -> "Candlestick":
        price = record.get("price") or {}
        mean = price.get("mean")
        return Candlestick(
            end_period_ts=int(record["end_period_ts"]),
            mean_price=None if mean is None else float(mean),
            yes_bid_close=float((record.get("yes_bid") or {}).get("close") or 0.0),
            yes_ask_close=float((record.get("yes_ask") or {}).get("close") or 0.0),
        )


@dataclass(frozen=True)
class BinaryMarketPoint:
    date: datetime
    probability_percent: float

    def to_record(self) -> JsonDict:
        return {"date": to_iso(self.date), "value": self.probability_percent}


@dataclass(frozen=True)
class ChartDataPoint:
    date: datetime
    value: float
    range: tuple[float, float] | None = None

    def to_record(self) -> JsonDict:
        record: JsonDict = {"date": to_iso(self.date), "value": self.value}
        if self.range is not None:
            record["range"] = [self.range[0], self.range[1]]
        return record


@dataclass(frozen=True)
class Percentiles:
    lower: int
    median: int
    upper: int


@dataclass(frozen=True)
class IndexDataPoint:
    date: str
    value: int
    range: tuple[int, int]

    def to_record(self) -> JsonDict:
        return {"date": self.date, "value": self.value, "range": [self.range[0], self.range[1]]}


@dataclass(frozen=True)
class StartDates:
    computed: datetime | None
    weak_agi: datetime | None
    full_agi: datetime | None
    turing_test: datetime | None
    manifold: datetime | None
    kalshi: datetime | None

    def to_record(self) -> JsonDict:
        return {
            "computed": to_iso(self.computed),
            "weak_agi": to_iso(self.weak_agi),
            "full_agi": to_iso(self.full_agi),
            "turing_test": to_iso(self.turing_test),
            "manifold": to_iso(self.manifold),
            "kalshi": to_iso(self.kalshi),
        }


@dataclass
class IndexResult:
    data: list[IndexDataPoint]
    start_dates: StartDates
    skipped_days: list[str] = field(default_factory=list)

    def to_record(self) -> JsonDict:
        return {
            "data": [point.to_record() for point in self.data],
            "start_dates": self.start_dates.to_record(),
            "skipped_days": list(self.skipped_days),
        }
