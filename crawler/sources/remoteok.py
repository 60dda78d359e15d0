# crawler/sources/remoteok.py
from crawler.sources.html_source import HtmlListingSource
from crawler.sources.strategies import CardSelectorStrategy, JsonLdStrategy


class RemoteOKSource(HtmlListingSource):
    """remoteok.com web3 listing (server-rendered job rows)"""

    name = 'remoteok'
    base_url = 'https://remoteok.com/remote-web3-jobs'

    def strategies(self):
        return [
            CardSelectorStrategy(
                self.name,
                card='tr.job',
                title='h2[itemprop="title"], h2',
                link='a.preventLink, a[itemprop="url"]',
                company_selector='h3[itemprop="name"], h3',
                location='div.location',
                tags='td.tags h3, .tag h3',
                salary='div.salary',
            ),
            JsonLdStrategy(self.name),
        ]
