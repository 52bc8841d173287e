"""Service test fixtures — refresher wired to a scripted renderer.

Invariants:
    - make_refresher builds a fresh PayloadCache per call
"""

import pytest

from scrape_proxy.services.cache_refresher import CacheRefresher
from scrape_proxy.services.payload_fetcher import PayloadFetcher

from tests.services.mock_renderer import MockRenderer


@pytest.fixture
def make_refresher(settings):
    """Return factory: scripts → (CacheRefresher, MockRenderer)."""

    def _make(*scripts):
        renderer = MockRenderer(scripts)
        refresher = CacheRefresher(PayloadFetcher(renderer, settings))
        return refresher, renderer

    return _make
