from __future__ import annotations

import logging

from agi_index.connectors.base import BaseConnector, SourceFetchError
from agi_index.core.schemas import Bet

logger = logging.getLogger(__name__)


class ManifoldConnector(BaseConnector):
    source = "manifold"
    default_base_url = "https://api.manifold.markets/v0"
    page_size = 1000

    def fetch_history(self, source_id: str) -> list[Bet]:
        """All bets on the contract, oldest first. Pages backwards with ``before``."""
        raw_bets: list[dict] = []
        cursor: str | None = None
        while True:
            params: dict[str, str | int] = {"contractSlug": source_id, "limit": self.page_size}
            if cursor:
                params["before"] = cursor
            page = self.http.get_json(f"{self.base_url}/bets", params=params)
            if isinstance(page, dict):
                page = page.get("bets", [])
            if not isinstance(page, list):
                raise SourceFetchError(f"Unexpected Manifold bets payload for {source_id}")
            if not page:
                break
            raw_bets.extend(row for row in page if isinstance(row, dict))
            last_id = page[-1].get("id") if isinstance(page[-1], dict) else None
            if not last_id or last_id == cursor:
                break
            cursor = str(last_id)

        bets = [bet for bet in (Bet.from_record(row) for row in raw_bets) if bet is not None]
        bets.sort(key=lambda b: b.created_time)
        logger.info(f"Manifold {source_id}: {len(bets)} bets ({len(raw_bets) - len(bets)} unusable)")
        return bets
