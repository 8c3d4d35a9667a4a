"""News commands: fetch, sources, refresh, worker."""
