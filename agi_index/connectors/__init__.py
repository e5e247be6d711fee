from __future__ import annotations

from agi_index.connectors.base import BaseConnector
from agi_index.connectors.http_client import SimpleHttpClient
from agi_index.connectors.kalshi import KalshiConnector
from agi_index.connectors.manifold import ManifoldConnector
from agi_index.connectors.metaculus import MetaculusConnector
from agi_index.connectors.polymarket import PolymarketConnector
from agi_index.core.config import AppConfig


def build_connectors(config: AppConfig) -> dict[str, BaseConnector]:
    connectors: dict[str, BaseConnector] = {}
    for source_name in ("metaculus", "manifold", "kalshi", "polymarket"):
        source_cfg = config.source(source_name)
        if not source_cfg.enabled:
            continue
        client = SimpleHttpClient(
            timeout_seconds=source_cfg.timeout_seconds,
            max_retries=source_cfg.max_retries,
            cache_ttl_seconds=source_cfg.cache_ttl_seconds,
            cache_dir=config.cache_dir,
        )
        if source_name == "metaculus":
            connectors[source_name] = MetaculusConnector(
                base_url=source_cfg.base_url,
                http=client,
                api_key=config.metaculus_api_key,
            )
        elif source_name == "manifold":
            connectors[source_name] = ManifoldConnector(base_url=source_cfg.base_url, http=client)
        elif source_name == "kalshi":
            connectors[source_name] = KalshiConnector(
                base_url=source_cfg.base_url,
                http=client,
                series_ticker=config.kalshi.series_ticker,
                market_id=config.kalshi.market_id,
                period_interval=config.kalshi.period_interval,
            )
        elif source_name == "polymarket":
            connectors[source_name] = PolymarketConnector(base_url=source_cfg.base_url, http=client)
    return connectors
