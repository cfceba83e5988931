"""
Local wallet storage.
"""

from ensbid.wallet.keystore import (
    LocalKeystore,
    KeystoreWallet,
    decrypt_wallet_key,
)

__all__ = [
    "LocalKeystore",
    "KeystoreWallet",
    "decrypt_wallet_key",
]
