"""
Chain-to-database indexer for the charity contract.

Layout:
- charity_indexer.indexer.core - event kinds, payloads and pass types
- charity_indexer.indexer.handlers - per-kind event transformers
- charity_indexer.indexer.checkpoint - durable high-water mark
- charity_indexer.indexer.sync - one synchronization pass
"""
