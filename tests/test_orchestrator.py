import threading

import pytest

from conftest import FakeClock
from crawler import CrawlOrchestrator
from crawler.exceptions import CrawlerError
from crawler.models import RawJob
from crawler.notifier import DiscordNotifier
from crawler.sources.base import BaseSource


class RecordingNotifier(DiscordNotifier):
    def __init__(self):
        super().__init__(None)
        self.sent = []

    def send(self, title, description='', color=0, fields=None):
        self.sent.append(title)
        return True


class StaticSource(BaseSource):
    def __init__(self, fetcher, name, jobs=None, error=None, on_fetch=None):
        super().__init__(fetcher)
        self.name = name
        self.jobs = jobs or []
        self.error = error
        self.on_fetch = on_fetch

    def fetch_jobs(self):
        if self.on_fetch:
            self.on_fetch(self)
        if self.error:
            raise self.error
        return list(self.jobs)


def make_jobs(company, *titles):
    slug = company.lower()
    return [
        RawJob(title=t, company=company, url=f"https://{slug}.example.com/jobs/{i}", source='static',
               description='Build protocol infrastructure in Rust and Go.')
        for i, t in enumerate(titles)
    ]


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def orchestrate(config, store, fetcher, notifier):
    def build(sources, **overrides):
        for key, value in overrides.items():
            setattr(config, key, value)
        return CrawlOrchestrator(config=config, store=store, sources=sources,
                                 fetcher=fetcher, notifier=notifier, clock=FakeClock())
    return build


class TestRunAll:
    def test_saves_jobs_and_writes_crawl_logs(self, orchestrate, fetcher, store, notifier):
        sources = [
            StaticSource(fetcher, 'alpha', make_jobs('Acme', 'Rust Engineer', 'Product Manager')),
            StaticSource(fetcher, 'beta', make_jobs('Globex', 'Solidity Developer')),
        ]
        summary = orchestrate(sources).run_all()

        assert summary.succeeded == ['alpha', 'beta']
        assert summary.total_saved == 3
        assert summary.total_new == 3
        assert store.count_jobs(active=True) == 3

        logs = store.list_crawl_logs()
        assert [(l['source'], l['status'], l['jobs_saved']) for l in logs] == [
            ('alpha', 'success', 2), ('beta', 'success', 1)
        ]
        assert notifier.sent == ['Crawl started', 'Crawl completed']

    def test_recrawl_is_not_new(self, orchestrate, fetcher):
        orchestrate([StaticSource(fetcher, 'alpha', make_jobs('Acme', 'Rust Engineer'))]).run_all()
        summary = orchestrate([StaticSource(fetcher, 'alpha', make_jobs('Acme', 'Rust Engineer'))]).run_all()

        assert summary.total_saved == 1
        assert summary.total_new == 0

    def test_failing_sources_are_isolated(self, orchestrate, fetcher, store, notifier):
        sources = [
            StaticSource(fetcher, 'broken', error=RuntimeError('boom')),
            StaticSource(fetcher, 'unreachable', error=CrawlerError('HTTP 503 for https://x')),
            StaticSource(fetcher, 'healthy', make_jobs('Acme', 'Rust Engineer')),
        ]
        summary = orchestrate(sources, max_concurrency=1).run_all()

        statuses = {r.source: (r.status, r.error_message) for r in summary.results}
        assert statuses['broken'] == ('failed', 'RuntimeError: boom')
        assert statuses['unreachable'] == ('failed', 'HTTP 503 for https://x')
        assert statuses['healthy'] == ('success', None)
        assert sorted(summary.failed) == ['broken', 'unreachable']
        assert store.count_jobs() == 1
        assert notifier.sent[-1] == 'Crawl completed with failures'

    def test_empty_source_is_success(self, orchestrate, fetcher):
        summary = orchestrate([StaticSource(fetcher, 'quiet')]).run_all()
        assert summary.results[0].status == 'success'
        assert summary.results[0].jobs_found == 0

    def test_all_failed(self, orchestrate, fetcher, notifier):
        orchestrate([StaticSource(fetcher, 'broken', error=CrawlerError('down'))]).run_all()
        assert notifier.sent[-1] == 'Crawl failed'


class TestTimeBudgets:
    def test_slow_source_times_out_without_blocking_others(self, config, store, fetcher, notifier):
        released = threading.Event()

        def hang(source):
            source.cancel_event.wait(5)
            released.set()

        config.source_timeout = 0.2
        config.source_timeouts = {}
        sources = [
            StaticSource(fetcher, 'slow', make_jobs('Initech', 'Data Engineer'), on_fetch=hang),
            StaticSource(fetcher, 'fast', make_jobs('Acme', 'Rust Engineer')),
        ]
        summary = CrawlOrchestrator(config=config, store=store, sources=sources,
                                    fetcher=fetcher, notifier=notifier).run_all()

        statuses = {r.source: r.status for r in summary.results}
        assert statuses == {'slow': 'timeout', 'fast': 'success'}
        assert 'timed out' in summary.results[0].error_message
        assert released.wait(2)
        assert 'slow' in summary.failed

    def test_sources_past_overall_deadline_are_skipped(self, config, store, fetcher, notifier):
        clock = FakeClock()
        config.total_timeout = 10
        config.max_concurrency = 1
        sources = [
            StaticSource(fetcher, 'first', make_jobs('Acme', 'Rust Engineer'),
                         on_fetch=lambda source: clock.advance(20)),
            StaticSource(fetcher, 'second', make_jobs('Globex', 'Go Engineer')),
        ]
        summary = CrawlOrchestrator(config=config, store=store, sources=sources,
                                    fetcher=fetcher, notifier=notifier, clock=clock).run_all()

        statuses = {r.source: r.status for r in summary.results}
        assert statuses == {'first': 'success', 'second': 'skipped'}
        assert summary.skipped == ['second']
        assert [l['status'] for l in store.list_crawl_logs()] == ['success', 'skipped']


def test_summary_to_dict(orchestrate, fetcher):
    summary = orchestrate([
        StaticSource(fetcher, 'alpha', make_jobs('Acme', 'Rust Engineer')),
        StaticSource(fetcher, 'broken', error=CrawlerError('down')),
    ]).run_all()
    data = summary.to_dict()

    assert data['stats']['total_saved'] == 1
    assert data['stats']['succeeded'] == ['alpha']
    assert data['stats']['failed'] == ['broken']
    assert [r['status'] for r in data['results']] == ['success', 'failed']
