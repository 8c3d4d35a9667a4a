"""Cache commands: warm-cache, cache-stats, health."""
