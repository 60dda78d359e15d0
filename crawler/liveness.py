# crawler/liveness.py
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from crawler.exceptions import CircuitOpenError, FetchTimeoutError, NetworkError
from crawler.fetch.resilient_fetch import ResilientFetcher
from crawler.utils import utcnow

logger = logging.getLogger(__name__)

DEAD_STATUSES = (404, 410)


@dataclass
class LivenessReport:
    checked: int = 0
    alive: int = 0
    deactivated: int = 0
    unknown: int = 0


class LivenessChecker:
    """
    Sweep stored jobs and deactivate those whose posting URL is gone

    404/410 and unresolvable hosts mark a job dead. Timeouts, open
    circuits and other statuses (403 from bot protection included) keep
    it active.
    """

    def __init__(self, store, fetcher: ResilientFetcher, delay: float = 0.5,
                 sleep: Callable[[float], None] = time.sleep):
        self.store = store
        self.fetcher = fetcher
        self.delay = delay
        self._sleep = sleep

    def is_alive(self, url: str) -> Optional[bool]:
        """True/False when known, None when the check was inconclusive"""
        result = self.fetcher.head_status(url)
        if result.error is not None:
            if isinstance(result.error, (FetchTimeoutError, CircuitOpenError)):
                return None
            if isinstance(result.error, NetworkError):
                return False
            return None
        if result.status_code in DEAD_STATUSES:
            return False
        return True

    def run(self, limit: int = 100, days_old: int = 3) -> LivenessReport:
        cutoff = utcnow() - timedelta(days=days_old)
        jobs = self.store.list_for_validation(cutoff, limit)
        report = LivenessReport()
        logger.info(f"Checking liveness of {len(jobs)} jobs")

        for i, job in enumerate(jobs):
            if i > 0 and self.delay:
                self._sleep(self.delay)

            alive = self.is_alive(job['url'])
            report.checked += 1
            if alive is False:
                self.store.mark_validated(job['id'], is_active=False)
                report.deactivated += 1
                logger.info(f"Deactivated dead job {job['id']}: {job['url']}")
            else:
                self.store.mark_validated(job['id'], is_active=True)
                if alive:
                    report.alive += 1
                else:
                    report.unknown += 1

        logger.info(
            f"Liveness: {report.checked} checked, {report.alive} alive, "
            f"{report.deactivated} deactivated, {report.unknown} inconclusive"
        )
        return report
