"""CLI for running ingestion cycles."""

from __future__ import annotations

import argparse
import logging
from datetime import datetime, timezone

from dotenv import load_dotenv

from common.cli_helpers import save_jsonl_local, setup_logging
from common.config import load_config
from common.serialization import serialize_dataclass
from ingest_articles.ingest_articles import IngestionPipeline
from ingest_articles.services import build_services
from rds_postgres.connection import init_db

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch, dedupe, analyze and cluster news articles.")
    parser.add_argument(
        "--config",
        default=None,
        help="Config name under configs/ (default: $CONFIG_ENV or prod)",
    )
    parser.add_argument(
        "--cycles",
        type=int,
        default=None,
        help="Fetch cycles to run (default: fetch.cycles_per_run from config)",
    )
    parser.add_argument("--init-db", action="store_true", help="Create missing tables first")
    parser.add_argument("--load-local", action="store_true", help="Save processed records to a local file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    load_dotenv()
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(args.config)
    services = build_services(config)
    if args.init_db and services.engine is not None:
        init_db(services.engine)

    pipeline = IngestionPipeline(services)
    try:
        report = pipeline.run_cycle(args.cycles)
    finally:
        services.narrative_scheduler.shutdown(wait=True)

    if not report.records:
        logger.warning("No articles processed")
        return

    if args.load_local:
        now = datetime.now(timezone.utc)
        records = [serialize_dataclass(record) for record in report.records]
        filepath = save_jsonl_local(records, "ingested_articles", now)
        logger.info("Saved %d processed articles to %s", len(records), filepath)


if __name__ == "__main__":
    main()
