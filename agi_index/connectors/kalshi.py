from __future__ import annotations

import logging

from agi_index.connectors.base import BaseConnector, SourceFetchError, parse_datetime
from agi_index.connectors.http_client import SimpleHttpClient
from agi_index.core.schemas import Candlestick

logger = logging.getLogger(__name__)


class KalshiConnector(BaseConnector):
    source = "kalshi"
    default_base_url = "https://api.elections.kalshi.com/trade-api/v2"

    def __init__(
        self,
        base_url: str | None = None,
        http: SimpleHttpClient | None = None,
        series_ticker: str | None = None,
        market_id: str | None = None,
        period_interval: int = 24 * 60,
    ) -> None:
        super().__init__(base_url=base_url, http=http)
        self.series_ticker = series_ticker
        self.market_id = market_id
        self.period_interval = period_interval

    def fetch_history(self, source_id: str) -> list[Candlestick]:
        """Candlesticks for market ``source_id`` between its open and close times."""
        payload = self.http.get_json(f"{self.base_url}/markets/{source_id}")
        market = payload.get("market", payload) if isinstance(payload, dict) else None
        if not isinstance(market, dict):
            raise SourceFetchError(f"Unexpected Kalshi market payload for {source_id}")
        open_time = parse_datetime(market.get("open_time"))
        close_time = parse_datetime(market.get("close_time"))
        if open_time is None or close_time is None:
            raise SourceFetchError(f"Kalshi market {source_id} has no open/close time")

        series = self.series_ticker or source_id
        market_path = self.market_id or source_id
        payload = self.http.get_json(
            f"{self.base_url}/series/{series}/markets/{market_path}/candlesticks",
            params={
                "start_ts": int(open_time.timestamp()),
                "end_ts": int(close_time.timestamp()),
                "period_interval": self.period_interval,
            },
        )
        rows = payload.get("candlesticks", []) if isinstance(payload, dict) else []
        candlesticks = [Candlestick.from_record(row) for row in rows if isinstance(row, dict) and "end_period_ts" in row]
        logger.info(f"Kalshi {source_id}: {len(candlesticks)} candlesticks")
        return candlesticks
