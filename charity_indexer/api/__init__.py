"""
HTTP surface of the indexer: the sync trigger plus status and health routes.
"""
