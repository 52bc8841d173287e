"""Core Layer — error taxonomy, cache value types, and boundary protocols.

Invariants:
    - Core never imports from infrastructure/ or services/
    - No IO: everything here is testable without mocks
"""
