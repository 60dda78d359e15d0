# crawler/__init__.py
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Tuple

from crawler.config import CrawlerConfig, get_config
from crawler.fetch import ErrorTracker, ResilientFetcher
from crawler.models import CrawlSummary, SourceRunResult
from crawler.notifier import DiscordNotifier
from crawler.processor import BadgeEnricher, CompanyRegistry, JobNormalizer, JobValidator
from crawler.processor.deduplicator import dedupe_batch
from crawler.sources import BaseSource, build_sources
from crawler.utils import utcnow
from database.db_manager import JobStore

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


class CrawlOrchestrator:
    """
    Runs every source with bounded concurrency and per-source / overall
    time budgets, feeding extracted jobs through normalization and the
    validator. A failing or timed-out source never affects its siblings.
    """

    def __init__(self, config: Optional[CrawlerConfig] = None, store: Optional[JobStore] = None,
                 sources: Optional[List[BaseSource]] = None, source_names: Optional[List[str]] = None,
                 fetcher: Optional[ResilientFetcher] = None, notifier: Optional[DiscordNotifier] = None,
                 registry: Optional[CompanyRegistry] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or get_config()
        self.store = store or JobStore(self.config.db_path)
        self.fetcher = fetcher or ResilientFetcher(self.config, error_tracker=ErrorTracker(self.store))
        self.error_tracker = self.fetcher.error_tracker
        if self.error_tracker.store is None:
            self.error_tracker.store = self.store

        self.registry = registry or self._load_registry()
        self.sources = sources if sources is not None else build_sources(
            self.fetcher, self.config, names=source_names, registry=self.registry
        )
        self.normalizer = JobNormalizer()
        self.validator = JobValidator(
            self.store,
            source_priority=self.config.source_priority,
            enricher=BadgeEnricher(self.store, self.registry, self.config.verified_backers),
        )
        self.notifier = notifier or DiscordNotifier(self.config.discord_webhook_url)
        self._clock = clock
        self._status_lock = threading.Lock()

    def _load_registry(self) -> CompanyRegistry:
        if self.config.companies_file:
            return CompanyRegistry.from_yaml(self.config.companies_file)
        return CompanyRegistry()

    def _set_status(self, result: SourceRunResult, status: str, error: Optional[str] = None,
                    only_if_running: bool = False) -> bool:
        with self._status_lock:
            if only_if_running and result.status != 'running':
                return False
            result.status = status
            result.error_message = error
            result.completed_at = utcnow()
            return True

    def run_source(self, source: BaseSource, result: SourceRunResult) -> SourceRunResult:
        """Crawl one source and save its jobs; records failures on `result` instead of raising"""
        result.started_at = result.started_at or utcnow()
        if result.status == 'pending':
            result.status = 'running'
        try:
            crawl = source.crawl()
            result.jobs_found = len(crawl.jobs)
            if not crawl.success:
                self._set_status(result, 'failed', crawl.error, only_if_running=True)
                return result

            jobs = dedupe_batch(self.normalizer.normalize_batch(crawl.jobs))
            for job in jobs:
                if source.cancelled:
                    logger.warning(f"{source.name}: cancelled, {len(jobs) - result.jobs_processed} jobs not saved")
                    break
                result.jobs_processed += 1
                saved = self.validator.validate_and_save(job, source.name)
                if saved.saved:
                    result.jobs_saved += 1
                if saved.is_new:
                    result.jobs_new += 1

            status = 'cancelled' if source.cancelled else 'success'
            self._set_status(result, status, only_if_running=True)
        except Exception as e:
            logger.exception(f"{source.name}: unexpected failure")
            self._set_status(result, 'failed', f"{type(e).__name__}: {e}", only_if_running=True)
        return result

    def run_all(self) -> CrawlSummary:
        """
        Run all sources and return aggregated results

        At most `max_concurrency` sources run at once. A source past its
        own timeout is cancelled and marked 'timeout'; once the overall
        budget is spent no further source is started.
        """
        summary = CrawlSummary(started_at=utcnow())
        results = [SourceRunResult(source=s.name) for s in self.sources]
        queue: List[Tuple[BaseSource, SourceRunResult]] = list(zip(self.sources, results))
        summary.results = results

        self.notifier.notify_start([s.name for s in self.sources])
        logger.info(f"Starting crawl of {len(self.sources)} sources "
                    f"(concurrency={self.config.max_concurrency})")

        deadline = self._clock() + self.config.total_timeout
        running: Dict[Future, Tuple[BaseSource, SourceRunResult, float]] = {}
        # timed-out workers keep their thread until the blocking call returns,
        # so size the pool by source count and bound concurrency by `running`
        executor = ThreadPoolExecutor(max_workers=max(1, len(self.sources)), thread_name_prefix='crawl')

        try:
            while queue or running:
                while queue and len(running) < max(1, self.config.max_concurrency):
                    source, result = queue.pop(0)
                    if self._clock() >= deadline:
                        logger.warning(f"Overall timeout reached, skipping {source.name}")
                        self._set_status(result, 'skipped', 'overall crawl timeout reached')
                        continue
                    source.cancel_event = threading.Event()
                    result.status = 'running'
                    result.started_at = utcnow()
                    future = executor.submit(self.run_source, source, result)
                    running[future] = (source, result, self._clock())

                if not running:
                    continue

                done, _ = wait(list(running), timeout=POLL_INTERVAL, return_when=FIRST_COMPLETED)
                for future in done:
                    source, result, _ = running.pop(future)
                    logger.info(f"{source.name}: {result.status} "
                                f"({result.jobs_saved} saved, {result.jobs_new} new)")

                now = self._clock()
                for future, (source, result, started) in list(running.items()):
                    budget = self.config.timeout_for(source.name)
                    if now - started >= budget:
                        source.cancel_event.set()
                        self._set_status(result, 'timeout', f"timed out after {budget:.0f}s", only_if_running=True)
                        logger.error(f"{source.name}: timed out after {budget:.0f}s")
                        running.pop(future)
        finally:
            executor.shutdown(wait=False)

        summary.completed_at = utcnow()
        self._finish(summary)
        return summary

    def _finish(self, summary: CrawlSummary):
        for result in summary.results:
            try:
                self.store.insert_crawl_log(result.to_dict())
            except Exception as e:
                logger.error(f"Failed to record crawl log for {result.source}: {e}")

        self.error_tracker.flush()
        summary.error_summary = self.error_tracker.summary()

        logger.info(
            f"Crawl finished in {summary.duration_seconds:.1f}s: "
            f"{summary.total_processed} processed, {summary.total_new} new, "
            f"{summary.total_saved} saved, failed={summary.failed}, skipped={summary.skipped}"
        )
        self.notifier.notify_finish(summary)

    def cleanup(self):
        """Close the shared HTTP session"""
        self.fetcher.close()


__all__ = ['CrawlOrchestrator']
