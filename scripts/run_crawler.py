#!/usr/bin/env python3
# scripts/run_crawler.py
"""
CLI script to run the job crawler
Usage:
    python scripts/run_crawler.py
    python scripts/run_crawler.py --source web3.career --source remoteok
    python scripts/run_crawler.py --list-sources
    python scripts/run_crawler.py --output data/last_run.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crawler import CrawlOrchestrator
from crawler.config import get_config
from crawler.notifier import DiscordNotifier
from crawler.sources import available_sources
from crawler.utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Run job crawler')
    parser.add_argument(
        '--source',
        action='append',
        choices=available_sources(),
        help='Source to run (repeatable, default: all enabled sources)'
    )
    parser.add_argument(
        '--list-sources',
        action='store_true',
        help='Print available sources and exit'
    )
    parser.add_argument(
        '--config',
        type=str,
        help='Path to crawler YAML config (default: $CRAWLER_CONFIG or config/crawler.yaml)'
    )
    parser.add_argument(
        '--output',
        type=str,
        help='Save run summary to JSON file'
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv(override=True)
    args = parse_args(argv)

    if args.list_sources:
        for name in available_sources():
            print(name)
        return 0

    config = get_config(args.config)
    setup_logging(config.log_dir, config.log_level)

    orchestrator = None
    try:
        orchestrator = CrawlOrchestrator(config=config, source_names=args.source)
        summary = orchestrator.run_all()
    except Exception as e:
        logger.exception("Crawl aborted")
        DiscordNotifier(config.discord_webhook_url).notify_fatal(e)
        return 1
    finally:
        if orchestrator is not None:
            orchestrator.cleanup()

    print(f"\n{'='*60}")
    print("Crawl completed!")
    print(f"{'='*60}")
    for result in summary.results:
        print(f"{result.source:<22} {result.status:<10} "
              f"found={result.jobs_found} saved={result.jobs_saved} new={result.jobs_new}")
    print(f"{'-'*60}")
    print(f"Processed: {summary.total_processed}")
    print(f"New: {summary.total_new}")
    print(f"Saved: {summary.total_saved}")
    print(f"Duration: {summary.duration_seconds:.2f}s")
    print(f"{'='*60}\n")

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(summary.to_dict(), f, indent=2, default=str)
        print(f"Results saved to: {args.output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
