"""
External service clients.
"""

from .aptos_client import AptosEventClient, get_aptos_client, close_aptos_client

__all__ = [
    "AptosEventClient",
    "get_aptos_client",
    "close_aptos_client",
]
