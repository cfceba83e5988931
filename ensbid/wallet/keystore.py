"""
Local keystore - encrypted wallet files under the data directory.

Each wallet is a JSON file `<wallet_dir>/<name>.json`:

    {
      "name": "default",
      "address": "0x...",
      "encrypted_private_key": "<Fernet token>",
      "public_key": "0x..."
    }

The Fernet key is PBKDF2-HMAC-SHA256(passphrase, salt=name). Unlocking checks
that the decrypted key really derives the stored address.
"""

import base64
import hashlib
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from eth_account import Account
from web3 import Web3

from ensbid.crypto import (
    bytes_to_hex,
    generate_keypair,
    hex_to_bytes,
    private_key_to_address,
)
from ensbid.core.errors import CredentialUnavailable, InvalidInput
from ensbid.utils.logger import get_logger

logger = get_logger("wallet")

PBKDF2_ITERATIONS = 100000


def _fernet(wallet_name: str, passphrase: str) -> Fernet:
    key = base64.urlsafe_b64encode(
        hashlib.pbkdf2_hmac("sha256", passphrase.encode(), wallet_name.encode(), PBKDF2_ITERATIONS)
    )
    return Fernet(key)


def decrypt_wallet_key(wallet_data: dict, passphrase: str) -> Optional[bytes]:
    """
    Decrypt a wallet's private key.

    Args:
        wallet_data: Loaded wallet JSON data
        passphrase: User's passphrase

    Returns:
        Decrypted private key bytes, or None if the passphrase is wrong
    """
    if "encrypted_private_key" not in wallet_data:
        return None
    try:
        fernet = _fernet(wallet_data["name"], passphrase)
        return fernet.decrypt(wallet_data["encrypted_private_key"].encode())
    except InvalidToken:
        return None


class KeystoreWallet:
    """Unlocked keys, able to sign transactions for their accounts."""

    def __init__(self, keys: Dict[bytes, bytes]):
        self._keys = dict(keys)

    @property
    def accounts(self) -> List[bytes]:
        return list(self._keys)

    def sign_transaction(self, account: bytes, transaction: Dict[str, Any]) -> bytes:
        """Sign a transaction dict, returning the raw signed transaction."""
        key = self._keys.get(account)
        if key is None:
            raise CredentialUnavailable(f"Wallet does not hold {bytes_to_hex(account)}")
        signed = Account.sign_transaction(transaction, key)
        return bytes(signed.raw_transaction)


class LocalKeystore:
    """
    Wallet/account collaborator backed by wallet files.

    Implements WalletService.
    """

    def __init__(self, wallet_dir: Path):
        self.wallet_dir = Path(wallet_dir)

    def _wallet_files(self) -> List[Path]:
        if not self.wallet_dir.exists():
            return []
        return sorted(self.wallet_dir.glob("*.json"))

    def _load(self, path: Path) -> Optional[dict]:
        try:
            return json.loads(path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping unreadable wallet {path}: {e}")
            return None

    def create(self, name: str, passphrase: str) -> Tuple[Path, bytes]:
        """
        Create a new encrypted wallet.

        Returns:
            (wallet path, account address)
        """
        if not name or "/" in name or "\\" in name:
            raise InvalidInput(f"Invalid wallet name {name!r}")
        path = self.wallet_dir / f"{name}.json"
        if path.exists():
            raise InvalidInput(f"Wallet {name!r} already exists")

        kp = generate_keypair()
        encrypted_private_key = _fernet(name, passphrase).encrypt(kp.private_key).decode("utf-8")

        wallet_data = {
            "name": name,
            "address": Web3.to_checksum_address(bytes_to_hex(kp.address)),
            "encrypted_private_key": encrypted_private_key,
            "public_key": bytes_to_hex(kp.public_key),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(wallet_data, indent=2))

        logger.info(f"Created wallet {name} for {bytes_to_hex(kp.address)}")
        return path, kp.address

    def list_wallets(self) -> List[Tuple[str, str]]:
        """(name, address) for every wallet file."""
        wallets = []
        for path in self._wallet_files():
            data = self._load(path)
            if data is not None:
                wallets.append((data.get("name", path.stem), data.get("address", "")))
        return wallets

    def resolve(self, address: bytes, passphrase: str) -> Tuple[KeystoreWallet, bytes]:
        """
        Find and unlock the wallet for an address.

        Raises:
            CredentialUnavailable: no wallet for the address, or none unlocks
                with the passphrase
        """
        candidates = []
        for path in self._wallet_files():
            data = self._load(path)
            if data is None or "address" not in data:
                continue
            try:
                if hex_to_bytes(data["address"]) == address:
                    candidates.append(data)
            except ValueError:
                continue

        if not candidates:
            raise CredentialUnavailable(f"No local keystore for {bytes_to_hex(address)}")

        for data in candidates:
            private_key = decrypt_wallet_key(data, passphrase)
            if private_key is None:
                continue
            if private_key_to_address(private_key) != address:
                logger.warning(f"Wallet {data.get('name')} does not hold the key for its address")
                continue
            logger.debug(f"Unlocked wallet {data.get('name')} for {bytes_to_hex(address)}")
            return KeystoreWallet({address: private_key}), address

        raise CredentialUnavailable(
            f"Failed to unlock the keystore for {bytes_to_hex(address)} with the supplied passphrase"
        )
