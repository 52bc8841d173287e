"""API test fixtures — the full app over ASGITransport with a scripted renderer.

Design Decisions:
    - ASGITransport does not run the lifespan: the scheduler stays stopped and
      every render the tests observe comes from the request path
"""

import pytest
from httpx import ASGITransport, AsyncClient

from scrape_proxy.main import create_app

from tests.services.mock_renderer import MockRenderer


@pytest.fixture
def make_client(settings):
    """Return factory: scripts → (AsyncClient context, app, MockRenderer)."""

    def _make(*scripts):
        renderer = MockRenderer(scripts)
        app = create_app(settings=settings, renderer=renderer)
        client = AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test",
        )
        return client, app, renderer

    return _make
