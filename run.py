#!/usr/bin/env python3
"""
Starklytics - Main runner script

Usage:
    python run.py                          # Run with defaults from config/config.yaml
    python run.py --port 9000              # Override the port
    python run.py --events data/raw.jsonl  # Read raw events from a JSONL file
"""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from starklytics.config import load_config
from starklytics.server import run_server


def main() -> None:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Run the Starklytics query and dashboard server"
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to config file"
    )
    parser.add_argument("--host", type=str, help="Override server host")
    parser.add_argument("--port", type=int, help="Override server port")
    parser.add_argument("--events", type=str, help="JSONL file of raw events")
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )
    args: argparse.Namespace = parser.parse_args()

    config = load_config(args.config)
    if args.events:
        spellbook = config.spellbook.model_copy(update={"events_file": args.events})
        config = config.model_copy(update={"spellbook": spellbook})

    logging.basicConfig(
        level=config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    run_server(config, host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
