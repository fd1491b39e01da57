"""Building blocks for a chunk-level deduplicating backup store: serialisation, queues, chunk traces, LRU caches, the rewrite buffer, container-id features and backup-version recipes."""

__version__ = "0.1.0"

__all__ = [
    "features",
    "lru_cache",
    "queues",
    "recipestore",
    "rewrite",
    "serial",
    "trace",
]