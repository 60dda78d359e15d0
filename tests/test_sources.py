"""
Source adapter tests. Every adapter runs against the real ResilientFetcher
with a scripted session, so the fixtures below are the pages the sites
would serve.
"""
import json

import pytest
from bs4 import BeautifulSoup

from conftest import FakeResponse, no_sleep
from crawler.models import RawJob
from crawler.processor.company_registry import CompanyRegistry, PriorityCompany
from crawler.sources import (
    AshbySource,
    CryptoJobsListSource,
    CryptocurrencyJobsSource,
    GreenhouseSource,
    LeverSource,
    PriorityCompaniesSource,
    RemoteOKSource,
    Web3CareerSource,
    available_sources,
    build_sources,
)
from crawler.sources.base import BaseSource
from crawler.sources.cryptocurrencyjobs import split_title
from crawler.sources.html_source import HtmlListingSource
from crawler.sources.strategies import (
    AnchorHeuristicStrategy,
    CardSelectorStrategy,
    JsonLdStrategy,
    NextDataStrategy,
    dig,
    run_strategies,
)


def ok(body):
    return FakeResponse(200, body if isinstance(body, str) else json.dumps(body))


WEB3_ROW = """
<tr class="table_row" data-jobid="{id}">
  <td><a href="/{slug}/{id}" data-jobid="{id}"><h2>{title}</h2></a></td>
  <td><h3>{company}</h3></td>
  <td class="job-location-mobile">Remote</td>
  <td><span class="my-badge">rust</span><span class="my-badge">defi</span></td>
</tr>"""


def web3_page(*rows):
    body = ''.join(WEB3_ROW.format(id=i, slug=s, title=t, company=c) for i, s, t, c in rows)
    return f"<html><body><table>{body}</table></body></html>"


WEB3_DETAIL = """
<html><body>
<nav>Jobs</nav>
<div class="text-dark-grey-text">We are looking for a Rust engineer to design our settlement layer and audit pipeline.</div>
<div class="related-jobs">Other jobs</div>
</body></html>"""


class TestStrategies:
    def test_dig(self):
        assert dig({'a': {'b': [1]}}, 'a.b') == [1]
        assert dig({'a': 1}, 'a.b') is None

    def test_next_data(self):
        state = {'props': {'pageProps': {'initialJobs': [
            {'title': 'Rust Dev', 'company': 'Acme', 'url': 'https://x/1'},
            'not-a-dict',
            {'title': 'Broken'},
        ]}}}
        soup = BeautifulSoup(
            f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(state)}</script>', 'html.parser'
        )

        def mapper(item, page_url):
            return RawJob(title=item['title'], company=item['company'], url=item['url'], source='s')

        jobs = NextDataStrategy('s', ['props.pageProps.jobs', 'props.pageProps.initialJobs'], mapper).extract(soup, 'https://x')
        assert [j.title for j in jobs] == ['Rust Dev']

    def test_next_data_absent(self):
        soup = BeautifulSoup('<html></html>', 'html.parser')
        assert NextDataStrategy('s', ['a'], lambda i, u: None).extract(soup, 'https://x') is None

    def test_json_ld_graph(self):
        data = {'@graph': [{
            '@type': 'JobPosting', 'title': 'Solidity Engineer', 'url': '/jobs/1',
            'hiringOrganization': {'name': 'Acme'}, 'jobLocationType': 'TELECOMMUTE',
            'datePosted': '2024-05-01', 'description': '<p>Write contracts</p>',
        }]}
        soup = BeautifulSoup(
            f'<script type="application/ld+json">{json.dumps(data)}</script>', 'html.parser'
        )
        jobs = JsonLdStrategy('s').extract(soup, 'https://board.example.com/list')

        assert len(jobs) == 1
        assert jobs[0].url == 'https://board.example.com/jobs/1'
        assert jobs[0].company == 'Acme'
        assert jobs[0].location == 'Remote'
        assert jobs[0].posted_date == '2024-05-01'

    def test_first_non_empty_strategy_wins(self):
        soup = BeautifulSoup(web3_page((1, 'rust-dev', 'Rust Dev', 'Acme')), 'html.parser')
        strategies = [
            JsonLdStrategy('s'),
            CardSelectorStrategy('s', card='tr.table_row', title='h2', link='a', company_selector='h3'),
            AnchorHeuristicStrategy('s', r'^/', company='Fallback'),
        ]
        name, jobs = run_strategies(strategies, soup, 'https://web3.career/web3-jobs')
        assert name == 'card_selectors'
        assert jobs[0].company == 'Acme'

    def test_anchor_heuristic_fallback(self):
        soup = BeautifulSoup(
            '<ul><li><a href="/jobs/rust-dev">Rust Dev</a><span class="company-name">Acme</span></li>'
            '<li><a href="/about">About</a></li></ul>', 'html.parser'
        )
        strategy = AnchorHeuristicStrategy('s', r'^/jobs/', company_selector='[class*="company"]', container='li')
        jobs = strategy.extract(soup, 'https://cryptojobslist.com')
        assert [(j.title, j.company, j.url) for j in jobs] == [
            ('Rust Dev', 'Acme', 'https://cryptojobslist.com/jobs/rust-dev')
        ]

    def test_no_strategy_matches(self):
        soup = BeautifulSoup('<p>redesigned site</p>', 'html.parser')
        assert run_strategies([JsonLdStrategy('s')], soup, 'https://x') == (None, [])


class TestPagination:
    class Paged(BaseSource):
        name = 'paged'

        def __init__(self, fetcher, pages, **kwargs):
            super().__init__(fetcher, **kwargs)
            self.pages = pages
            self.requested = []

        def fetch_page(self, page):
            self.requested.append(page)
            return self.pages[page - 1]

        def fetch_jobs(self):
            return self.paginate(self.fetch_page, max_pages=5)

    @staticmethod
    def jobs(*urls):
        return [RawJob(title='T' + u, company='C', url=u, source='paged') for u in urls]

    def test_stops_on_empty_page(self, fetcher):
        source = self.Paged(fetcher, [self.jobs('a'), [], self.jobs('b')], sleep=no_sleep)
        assert [j.url for j in source.fetch_jobs()] == ['a']
        assert source.requested == [1, 2]

    def test_stops_when_nothing_new(self, fetcher):
        source = self.Paged(fetcher, [self.jobs('a', 'b'), self.jobs('a', 'b'), self.jobs('c')], sleep=no_sleep)
        assert [j.url for j in source.fetch_jobs()] == ['a', 'b']

    def test_page_cap(self, fetcher):
        pages = [self.jobs(str(i)) for i in range(10)]
        source = self.Paged(fetcher, pages, sleep=no_sleep)
        assert len(source.fetch_jobs()) == 5
        assert source.pages_fetched == 5

    def test_cancel_stops_pagination(self, fetcher):
        source = self.Paged(fetcher, [self.jobs('a'), self.jobs('b')], sleep=no_sleep)
        source.cancel_event.set()
        assert source.fetch_jobs() == []


class TestWeb3Career:
    URL = 'https://web3.career/web3-jobs'

    def test_paginates_and_fetches_details(self, fetcher, session, config):
        session.routes.update({
            self.URL: ok(web3_page((1, 'rust-dev', 'Rust Dev', 'Acme'), (2, 'go-dev', 'Go Dev', 'Beta'))),
            self.URL + '?page=2': ok(web3_page((3, 'qa', 'QA Engineer', 'Gamma'))),
            self.URL + '?page=3': ok(web3_page((3, 'qa', 'QA Engineer', 'Gamma'))),
            'https://web3.career/rust-dev/1': ok(WEB3_DETAIL),
            'https://web3.career/go-dev/2': FakeResponse(404),
            'https://web3.career/qa/3': ok(WEB3_DETAIL),
        })
        result = Web3CareerSource(fetcher, config=config, sleep=no_sleep).crawl()

        assert result.success
        assert result.pages_fetched == 3
        assert [j.title for j in result.jobs] == ['Rust Dev', 'Go Dev', 'QA Engineer']
        first = result.jobs[0]
        assert first.company == 'Acme'
        assert first.location == 'Remote'
        assert first.tags == ['rust', 'defi']
        assert 'settlement layer' in first.description
        assert 'Other jobs' not in first.description
        assert result.jobs[1].description is None

    def test_first_page_failure_fails_source(self, fetcher, session, config):
        session.routes[self.URL] = FakeResponse(403)
        result = Web3CareerSource(fetcher, config=config, sleep=no_sleep).crawl()

        assert not result.success
        assert '403' in result.error
        assert result.jobs == []

    def test_zero_jobs_is_success(self, fetcher, session, config):
        session.routes[self.URL] = ok('<html><body>No jobs today</body></html>')
        result = Web3CareerSource(fetcher, config=config, sleep=no_sleep).crawl()
        assert result.success
        assert result.jobs == []


class TestCryptoJobsList:
    def test_reads_embedded_state(self, fetcher, session, config):
        state = {'props': {'pageProps': {'jobs': [
            {'jobTitle': 'Smart Contract Engineer', 'companyName': 'Acme', 'seoSlug': 'sce-acme',
             'remote': True, 'tags': ['solidity', {'name': 'evm'}], 'publishedAt': '2024-05-01'},
            {'jobTitle': 'No company'},
        ]}}}
        session.routes['https://cryptojobslist.com'] = ok(
            f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(state)}</script>'
        )
        result = CryptoJobsListSource(fetcher, config=config, sleep=no_sleep).crawl()

        assert len(result.jobs) == 1
        job = result.jobs[0]
        assert job.url == 'https://cryptojobslist.com/jobs/sce-acme'
        assert job.location == 'Remote'
        assert job.tags == ['solidity', 'evm']


class TestRemoteOK:
    def test_job_rows(self, fetcher, session, config):
        session.routes['https://remoteok.com/remote-web3-jobs'] = ok("""
            <table>
              <tr class="job" data-id="7">
                <td><a class="preventLink" href="/remote-jobs/7"><h2 itemprop="title">Protocol Engineer</h2></a>
                    <h3 itemprop="name">Acme</h3><div class="location">Worldwide</div>
                    <div class="salary">$120k - $160k</div></td>
              </tr>
            </table>""")
        result = RemoteOKSource(fetcher, config=config, sleep=no_sleep).crawl()

        job = result.jobs[0]
        assert (job.title, job.company, job.url) == ('Protocol Engineer', 'Acme', 'https://remoteok.com/remote-jobs/7')
        assert job.salary == '$120k - $160k'


class TestCryptocurrencyJobs:
    FEED = 'https://cryptocurrencyjobs.co/index.xml'

    def test_split_title(self):
        assert split_title("Rust Engineer at Acme") == ("Rust Engineer", "Acme")
        assert split_title("Head of Data") == ("Head of Data", None)

    def test_feed_with_detail_backfill(self, fetcher, session, config):
        long_summary = "Full description " * 20
        session.routes.update({
            self.FEED: ok(f"""<?xml version="1.0"?>
                <rss version="2.0"><channel><title>Jobs</title>
                <item><title>Rust Engineer at Acme</title><link>https://cryptocurrencyjobs.co/engineering/acme-rust-engineer/</link>
                  <description>Short teaser</description><pubDate>Wed, 01 May 2024 10:00:00 GMT</pubDate></item>
                <item><title>Designer at Beta</title><link>https://cryptocurrencyjobs.co/design/beta-designer/</link>
                  <description>{long_summary}</description></item>
                <item><title>Writer at Gamma</title><link>https://cryptocurrencyjobs.co/marketing/gamma-writer/</link>
                  <description>Teaser kept</description></item>
                </channel></rss>"""),
            'https://cryptocurrencyjobs.co/engineering/acme-rust-engineer/': ok(
                '<article>Acme is hiring a Rust engineer to build its matching engine in Seoul.</article>'
            ),
            'https://cryptocurrencyjobs.co/marketing/gamma-writer/': FakeResponse(500),
        })
        result = CryptocurrencyJobsSource(fetcher, config=config, sleep=no_sleep).crawl()

        jobs = {j.company: j for j in result.jobs}
        assert set(jobs) == {'Acme', 'Beta', 'Gamma'}
        assert 'matching engine' in jobs['Acme'].description
        assert jobs['Beta'].description.startswith('Full description')
        assert jobs['Gamma'].description == 'Teaser kept'
        assert jobs['Acme'].posted_date == 'Wed, 01 May 2024 10:00:00 GMT'
        assert 'https://cryptocurrencyjobs.co/design/beta-designer/' not in session.urls()

    def test_feed_source_has_no_listing_strategies(self, fetcher, config):
        assert CryptocurrencyJobsSource(fetcher, config=config).strategies() == []


def test_listing_source_requires_strategies(fetcher):
    class NoStrategies(HtmlListingSource):
        name = 'bare'
        base_url = 'https://example.com/jobs'

    with pytest.raises(TypeError, match="strategies"):
        NoStrategies(fetcher)


class TestPlatformAdapters:
    def test_greenhouse_backfills_missing_content(self, fetcher, session):
        session.routes.update({
            'https://boards-api.greenhouse.io/v1/boards/acme/jobs?content=true': ok({'jobs': [
                {'id': 1, 'title': 'Rust Engineer', 'absolute_url': 'https://boards.greenhouse.io/acme/jobs/1',
                 'location': {'name': 'Seoul'}, 'content': '&lt;p&gt;Ship it&lt;/p&gt;',
                 'departments': [{'name': 'Engineering'}], 'first_published': '2024-05-01T00:00:00Z'},
                {'id': 2, 'title': 'Designer', 'absolute_url': 'https://boards.greenhouse.io/acme/jobs/2'},
                {'id': 3},
            ]}),
            'https://boards-api.greenhouse.io/v1/boards/acme/jobs/2': ok({'content': '<p>Design it</p>'}),
        })
        jobs = GreenhouseSource(fetcher, 'acme', 'Acme', sleep=no_sleep).fetch_jobs()

        assert [j.title for j in jobs] == ['Rust Engineer', 'Designer']
        assert jobs[0].category == 'Engineering'
        assert jobs[1].description == '<p>Design it</p>'

    def test_lever(self, fetcher, session):
        session.routes['https://api.lever.co/v0/postings/acme?mode=json'] = ok([{
            'id': 'abc', 'text': 'Backend Engineer', 'hostedUrl': 'https://jobs.lever.co/acme/abc',
            'categories': {'location': 'Seoul', 'commitment': 'Full-time', 'team': 'Core'},
            'description': '<p>Intro</p>', 'lists': [{'text': 'Requirements', 'content': '<li>Go</li>'}],
            'additional': '<p>Perks</p>', 'workplaceType': 'remote', 'createdAt': 1700000000000,
            'salaryRange': {'min': 100000, 'max': 150000, 'currency': 'USD'},
        }])
        job = LeverSource(fetcher, 'acme', 'Acme', sleep=no_sleep).fetch_jobs()[0]

        assert job.location == 'Remote - Seoul'
        assert '<h3>Requirements</h3><ul><li>Go</li></ul>' in job.description
        assert (job.salary_min, job.salary_max) == (100000, 150000)
        assert job.posted_date == 1700000000000

    def test_ashby_skips_unlisted(self, fetcher, session):
        session.routes['https://api.ashbyhq.com/posting-api/job-board/acme?includeCompensation=true'] = ok({'jobs': [
            {'title': 'Engineer', 'jobUrl': 'https://jobs.ashbyhq.com/acme/1', 'isRemote': True,
             'compensation': {'compensationTierSummary': '$150K – $200K'}},
            {'title': 'Secret', 'jobUrl': 'https://jobs.ashbyhq.com/acme/2', 'isListed': False},
        ]})
        jobs = AshbySource(fetcher, 'acme', 'Acme', sleep=no_sleep).fetch_jobs()

        assert [j.title for j in jobs] == ['Engineer']
        assert jobs[0].location == 'Remote'
        assert jobs[0].salary == '$150K – $200K'

    def test_unexpected_payload_fails_source(self, fetcher, session):
        session.routes['https://api.lever.co/v0/postings/acme?mode=json'] = ok({'error': 'not found'})
        result = LeverSource(fetcher, 'acme', 'Acme', sleep=no_sleep).crawl()
        assert not result.success


class TestPriorityCompanies:
    @staticmethod
    def registry():
        return CompanyRegistry([
            PriorityCompany(name='Acme', career_platform='lever', career_url='https://jobs.lever.co/acme'),
            PriorityCompany(name='Beta', career_platform='greenhouse', career_url='https://boards.greenhouse.io/beta'),
            PriorityCompany(name='NoBoard'),
        ])

    def test_one_failing_board_does_not_fail_the_rest(self, fetcher, session):
        session.routes['https://api.lever.co/v0/postings/acme?mode=json'] = ok([
            {'text': 'Engineer', 'hostedUrl': 'https://jobs.lever.co/acme/1'}
        ])
        source = PriorityCompaniesSource(fetcher, registry=self.registry(), sleep=no_sleep)
        result = source.crawl()

        assert result.success
        assert [(j.company, j.source) for j in result.jobs] == [('Acme', 'priority:lever')]

    def test_all_boards_failing_fails_source(self, fetcher):
        result = PriorityCompaniesSource(fetcher, registry=self.registry(), sleep=no_sleep).crawl()
        assert not result.success

    def test_configured_boards_are_added(self, fetcher):
        source = PriorityCompaniesSource(
            fetcher, registry=self.registry(),
            boards=[{'platform': 'ashby', 'slug': 'gamma', 'company': 'Gamma'},
                    {'platform': 'lever', 'slug': 'acme', 'company': 'Acme'}],
        )
        assert [b['slug'] for b in source.board_list()] == ['acme', 'beta', 'gamma']

    def test_no_boards_is_empty_success(self, fetcher):
        result = PriorityCompaniesSource(fetcher, registry=CompanyRegistry([])).crawl()
        assert result.success and result.jobs == []


def test_build_sources(fetcher, config):
    names = [s.name for s in build_sources(fetcher, config)]
    assert names == available_sources()
    assert [s.name for s in build_sources(fetcher, config, names=['remoteok'])] == ['remoteok']
    with pytest.raises(ValueError):
        build_sources(fetcher, config, names=['nope'])
