#!/usr/bin/env python3
# scripts/verify_expired.py
"""
Deactivate stored jobs whose posting URL no longer exists
Usage:
    python scripts/verify_expired.py --limit 200 --days 3
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from crawler.config import get_config
from crawler.fetch import ResilientFetcher
from crawler.liveness import LivenessChecker
from crawler.utils import setup_logging
from database.db_manager import JobStore

logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    load_dotenv(override=True)
    parser = argparse.ArgumentParser(description='Check stored job URLs and deactivate dead ones')
    parser.add_argument('--limit', type=int, default=100, help='Max jobs to check')
    parser.add_argument('--days', type=int, default=3, help='Re-check jobs not validated for this many days')
    parser.add_argument('--config', type=str, help='Path to crawler YAML config')
    args = parser.parse_args(argv)

    config = get_config(args.config)
    setup_logging(config.log_dir, config.log_level)

    fetcher = ResilientFetcher(config)
    try:
        report = LivenessChecker(JobStore(config.db_path), fetcher).run(limit=args.limit, days_old=args.days)
    except Exception:
        logger.exception("Liveness sweep aborted")
        return 1
    finally:
        fetcher.close()

    print(f"Checked {report.checked}: {report.alive} alive, "
          f"{report.deactivated} deactivated, {report.unknown} inconclusive")
    return 0


if __name__ == '__main__':
    sys.exit(main())
