# crawler/utils.py
import logging
import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def setup_logging(log_dir: Path, log_level: str = "INFO"):
    """Configure logging for crawler runs"""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_file = log_dir / f"crawler_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the jobs table"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_domain(url: str) -> str:
    """Hostname of a URL, 'unknown' if it cannot be parsed"""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return "unknown"
    return host or "unknown"


def delay_with_jitter(base: float, jitter: float = 0.5,
                      sleep: Optional[Callable[[float], None]] = None) -> float:
    """Sleep base seconds plus a uniform random jitter, return the slept duration"""
    duration = base + random.uniform(0, jitter) if base > 0 or jitter > 0 else 0.0
    if duration > 0:
        (sleep or time.sleep)(duration)
    return duration
