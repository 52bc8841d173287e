"""Infrastructure Layer — headless browser adapter and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/
    - All Playwright failures mapped to the error taxonomy (core/errors.py)
"""
