"""Application layer: the cache-aside engine and the load generator."""
