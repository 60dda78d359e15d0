# crawler/sources/__init__.py
from typing import Dict, List, Optional, Type

from crawler.sources.base import BaseSource
from crawler.sources.ashby import AshbySource
from crawler.sources.cryptocurrencyjobs import CryptocurrencyJobsSource
from crawler.sources.cryptojobslist import CryptoJobsListSource
from crawler.sources.greenhouse import GreenhouseSource
from crawler.sources.lever import LeverSource
from crawler.sources.priority_companies import PriorityCompaniesSource
from crawler.sources.remoteok import RemoteOKSource
from crawler.sources.web3career import Web3CareerSource

# Sources that take no per-board arguments
SOURCE_REGISTRY: Dict[str, Type[BaseSource]] = {
    PriorityCompaniesSource.name: PriorityCompaniesSource,
    CryptoJobsListSource.name: CryptoJobsListSource,
    Web3CareerSource.name: Web3CareerSource,
    RemoteOKSource.name: RemoteOKSource,
    CryptocurrencyJobsSource.name: CryptocurrencyJobsSource,
}


def available_sources() -> List[str]:
    return list(SOURCE_REGISTRY)


def build_sources(fetcher, config, names: Optional[List[str]] = None,
                  registry=None) -> List[BaseSource]:
    """Instantiate the named sources (all registered ones by default)"""
    names = names or config.enabled_sources or available_sources()
    sources = []
    for name in names:
        source_cls = SOURCE_REGISTRY.get(name)
        if source_cls is None:
            raise ValueError(f"Unknown source: {name} (available: {', '.join(available_sources())})")
        if source_cls is PriorityCompaniesSource:
            sources.append(source_cls(fetcher, registry=registry, boards=config.company_boards, config=config))
        else:
            sources.append(source_cls(fetcher, config=config))
    return sources


__all__ = [
    'BaseSource', 'GreenhouseSource', 'LeverSource', 'AshbySource',
    'PriorityCompaniesSource', 'CryptoJobsListSource', 'Web3CareerSource',
    'RemoteOKSource', 'CryptocurrencyJobsSource',
    'SOURCE_REGISTRY', 'available_sources', 'build_sources',
]
