# crawler/fetch/error_tracker.py
import logging
import threading
from collections import Counter
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

BATCH_SIZE = 10


@dataclass
class CrawlerErrorRecord:
    source: str
    domain: str
    error_kind: str
    message: str
    url: Optional[str] = None
    status_code: Optional[int] = None

    def to_dict(self) -> Dict:
        return asdict(self)


class ErrorTracker:
    """Buffer fetch/parse failures and flush them to the store in batches"""

    def __init__(self, store=None, batch_size: int = BATCH_SIZE):
        self.store = store
        self.batch_size = batch_size
        self._buffer: List[CrawlerErrorRecord] = []
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def track(self, record: CrawlerErrorRecord):
        with self._lock:
            self._buffer.append(record)
            self._counts[(record.source, record.domain, record.error_kind)] += 1
            should_flush = len(self._buffer) >= self.batch_size

        if should_flush:
            self.flush()

    def flush(self) -> int:
        with self._lock:
            batch, self._buffer = self._buffer, []

        if not batch:
            return 0
        if self.store is None:
            return 0

        try:
            self.store.insert_error_logs([r.to_dict() for r in batch])
        except Exception as e:
            logger.error(f"Failed to persist {len(batch)} crawler errors: {e}")
            return 0
        return len(batch)

    def summary(self) -> List[Dict]:
        """Error counts for this run grouped by (source, domain, kind), most frequent first"""
        with self._lock:
            return [
                {'source': s, 'domain': d, 'error_kind': k, 'count': n}
                for (s, d, k), n in self._counts.most_common()
            ]

    def total(self) -> int:
        with self._lock:
            return sum(self._counts.values())
