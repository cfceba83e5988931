"""
Ledger-facing collaborators: JSON-RPC client and registry name resolution.
"""

from ensbid.chain.resolver import RegistryNameResolver
from ensbid.chain.web3_ledger import Web3Ledger

__all__ = [
    "RegistryNameResolver",
    "Web3Ledger",
]
