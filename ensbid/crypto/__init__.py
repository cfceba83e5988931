"""
Hashing, keys and addresses.

Keccak-256 here is the pre-standard Keccak padding the ledger uses, which is
not hashlib's sha3_256. Label hashes, name hashes and seals are all built on
it.

Inside the core an address is 20 raw bytes. It becomes 0x-hex only at the
edges (logs, CLI, JSON-RPC).
"""

import secrets
import string
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1

SECP256K1_ORDER = secp256k1.N

ADDRESS_SIZE = 20
HASH_SIZE = 32
PRIVATE_KEY_SIZE = 32

ZERO_ADDRESS = bytes(ADDRESS_SIZE)
ZERO_HASH = bytes(HASH_SIZE)


def keccak256(data: bytes) -> bytes:
    digest = keccak.new(digest_bits=256)
    digest.update(data)
    return digest.digest()


# =============================================================================
# Accounts
# =============================================================================


@dataclass(frozen=True)
class KeyPair:
    """secp256k1 private key with its 64-byte public point (x || y)."""
    private_key: bytes
    public_key: bytes

    @property
    def address(self) -> bytes:
        return address_from_public_key(self.public_key)


def generate_keypair() -> KeyPair:
    """Fresh account key from the OS CSPRNG."""
    secret = secrets.randbelow(SECP256K1_ORDER - 1) + 1
    private_key = secret.to_bytes(PRIVATE_KEY_SIZE, "big")
    return KeyPair(private_key=private_key, public_key=private_key_to_public_key(private_key))


def private_key_to_public_key(private_key: bytes) -> bytes:
    if len(private_key) != PRIVATE_KEY_SIZE:
        raise ValueError(f"Private key must be {PRIVATE_KEY_SIZE} bytes")
    x, y = secp256k1.privtopub(private_key)
    return x.to_bytes(32, "big") + y.to_bytes(32, "big")


def address_from_public_key(public_key: bytes) -> bytes:
    """An account address is the low 20 bytes of keccak256(public key)."""
    return keccak256(public_key)[-ADDRESS_SIZE:]


def private_key_to_address(private_key: bytes) -> bytes:
    return address_from_public_key(private_key_to_public_key(private_key))


# =============================================================================
# Hex
# =============================================================================


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def hex_to_bytes(hex_str: str) -> bytes:
    """Parse hex with or without a 0x prefix; ValueError if malformed."""
    if hex_str[:2] in ("0x", "0X"):
        hex_str = hex_str[2:]
    return bytes.fromhex(hex_str)


def is_valid_address(address: str) -> bool:
    """0x followed by exactly 40 hex digits (checksum not enforced)."""
    if address[:2] not in ("0x", "0X") or len(address) != 2 + 2 * ADDRESS_SIZE:
        return False
    return all(c in string.hexdigits for c in address[2:])


def is_null_address(address: bytes) -> bool:
    return address == ZERO_ADDRESS
