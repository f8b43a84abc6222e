"""
Charity Indexer.

Mirrors charity contract events from the Aptos indexer into a relational
database for fast querying.
"""

__version__ = "0.1.0"
