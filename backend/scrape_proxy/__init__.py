"""Scrape Proxy — renders a dynamic page, caches its API payload, serves it on /data.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

__version__ = "1.0.0"
