"""
Chain backend implementations.

Available backends:
- BchnBackend: Bitcoin Cash Node via JSON-RPC (no wallet, uses scantxoutset)
"""

from vaultwallet.backends.base import ChainBackend
from vaultwallet.backends.bchn import BchnBackend

__all__ = [
    "BchnBackend",
    "ChainBackend",
]
