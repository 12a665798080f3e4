"""Query and project caches."""
