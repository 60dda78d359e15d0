# crawler/sources/web3career.py
from crawler.sources.html_source import HtmlListingSource
from crawler.sources.strategies import AnchorHeuristicStrategy, CardSelectorStrategy


class Web3CareerSource(HtmlListingSource):
    """web3.career table listing, three pages, descriptions from detail pages"""

    name = 'web3.career'
    base_url = 'https://web3.career/web3-jobs'
    paginated = True
    fetch_details = True
    detail_selectors = ('div.text-dark-grey-text', '.job_description', 'article', 'main')

    def page_url(self, page: int) -> str:
        return self.base_url if page == 1 else f"{self.base_url}?page={page}"

    def strategies(self):
        return [
            CardSelectorStrategy(
                self.name,
                card='tr.table_row[data-jobid]',
                title='h2',
                link='a[data-jobid], a[href]',
                company_selector='h3',
                location='td.job-location-mobile',
                tags='span.my-badge',
            ),
            AnchorHeuristicStrategy(
                self.name, r'^/[\w-]+/\d+$', company_selector='h3', container='tr'
            ),
        ]
