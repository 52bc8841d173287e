"""Root conftest — shared test configuration."""

import os

import pytest

# Tests never render the real upstream page
os.environ.setdefault("TARGET_PAGE_URL", "https://www.example.com/feed")
os.environ.setdefault("API_URL_PREFIX", "https://api.example.com/data")
os.environ.setdefault("LOG_FORMAT", "text")

from scrape_proxy.config import Settings  # noqa: E402

from tests.services.mock_renderer import API_PREFIX, TARGET_PAGE  # noqa: E402


@pytest.fixture
def settings():
    """Settings with no settle delay so render cycles complete immediately."""
    return Settings(
        target_page_url=TARGET_PAGE,
        api_url_prefix=API_PREFIX,
        settle_delay_ms=0,
        refresh_interval_ms=30_000,
    )
