"""
Domain layer for the order ingestion service.

This layer contains the order aggregate shared by the queue consumer,
the persistent store, the cache and the read API.
"""
