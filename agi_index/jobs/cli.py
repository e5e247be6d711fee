from __future__ import annotations

import argparse
import logging

from agi_index.jobs.build_index import run_build_index
from agi_index.jobs.common import write_json
from agi_index.jobs.explain import run_explain
from agi_index.jobs.source_series import SOURCES, run_source_series


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    parser = argparse.ArgumentParser(description="AGI timelines index jobs")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_build = sub.add_parser("build")
    p_build.add_argument("--config", default="agi_index.toml")
    p_build.add_argument("--output", default=None)
    p_build.add_argument("--smooth", type=int, default=None)

    p_series = sub.add_parser("series")
    p_series.add_argument("source", choices=SOURCES)
    p_series.add_argument("--config", default="agi_index.toml")
    p_series.add_argument("--community", action="store_true")
    p_series.add_argument("--output", default=None)

    p_explain = sub.add_parser("explain")
    p_explain.add_argument("--date", required=True)
    p_explain.add_argument("--config", default="agi_index.toml")
    p_explain.add_argument("--output", default=None)

    args = parser.parse_args()
    cfg = args.config
    if args.cmd == "build":
        write_json(run_build_index(config_path=cfg, smooth_window=args.smooth), args.output)
    elif args.cmd == "series":
        write_json(run_source_series(args.source, config_path=cfg, community=args.community), args.output)
    elif args.cmd == "explain":
        write_json(run_explain(args.date, config_path=cfg), args.output)


if __name__ == "__main__":
    main()
