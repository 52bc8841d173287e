"""Route dependencies — component lookup on the running app."""

from fastapi import Request

from scrape_proxy.services.cache_refresher import CacheRefresher


def get_refresher(request: Request) -> CacheRefresher:
    return request.app.state.refresher
