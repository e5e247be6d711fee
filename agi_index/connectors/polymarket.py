from __future__ import annotations

import json
import logging

from agi_index.connectors.base import BaseConnector, SourceFetchError
from agi_index.connectors.http_client import SimpleHttpClient
from agi_index.core.schemas import ChartDataPoint
from agi_index.core.utils import from_timestamp

logger = logging.getLogger(__name__)


class PolymarketConnector(BaseConnector):
    source = "polymarket"
    default_base_url = "https://gamma-api.polymarket.com"

    def __init__(
        self,
        base_url: str | None = None,
        http: SimpleHttpClient | None = None,
        clob_url: str = "https://clob.polymarket.com",
    ) -> None:
        super().__init__(base_url=base_url, http=http)
        self.clob_url = clob_url.rstrip("/")

    def _token_id(self, event_slug: str) -> str:
        events = self.http.get_json(f"{self.base_url}/events", params={"slug": event_slug})
        if not isinstance(events, list) or not events:
            raise SourceFetchError(f"No Polymarket events found for {event_slug}")
        markets = events[0].get("markets") or []
        if not markets:
            raise SourceFetchError(f"No markets found for Polymarket event {event_slug}")

        market = self.http.get_json(f"{self.base_url}/markets/{markets[0]['id']}")
        if not isinstance(market, dict):
            raise SourceFetchError(f"Unexpected Polymarket market payload for {event_slug}")
        token_ids = market.get("clobTokenIds")
        if isinstance(token_ids, str):
            token_ids = json.loads(token_ids)
        if not token_ids:
            raise SourceFetchError(f"Polymarket market for {event_slug} has no CLOB token")
        return str(token_ids[0])

    def fetch_history(self, source_id: str) -> list[ChartDataPoint]:
        """Yes-price history of the event's first market, in percent."""
        token_id = self._token_id(source_id)
        payload = self.http.get_json(
            f"{self.clob_url}/prices-history",
            params={"market": token_id, "interval": "1m", "fidelity": "60"},
        )
        history = payload.get("history", []) if isinstance(payload, dict) else []
        points = [
            ChartDataPoint(date=from_timestamp(row["t"]), value=float(row["p"]) * 100.0)
            for row in history
            if isinstance(row, dict) and "t" in row and "p" in row
        ]
        logger.info(f"Polymarket {source_id}: {len(points)} price points")
        return points
