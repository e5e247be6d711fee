from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import dotenv

from agi_index.connectors import BaseConnector, build_connectors
from agi_index.core.config import AppConfig, load_config


def bootstrap(config_path: str) -> tuple[AppConfig, dict[str, BaseConnector]]:
    dotenv.load_dotenv()
    config = load_config(config_path)
    return config, build_connectors(config)


def write_json(payload: Any, output: str | None = None) -> None:
    text = json.dumps(payload, indent=2)
    if output is None:
        print(text)
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text + "\n", encoding="utf-8")
