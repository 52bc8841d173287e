"""Services Layer — extraction, refresh orchestration, and scheduling."""
