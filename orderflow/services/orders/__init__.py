"""
Order services package for the ingestion and retrieval pipeline.

This package contains the orchestration layer, the queue consumer and the
order validator, wired together through the protocols in ``interfaces``.
"""
