"""
Name-or-address resolution against the registry.
"""

from ensbid.crypto import hex_to_bytes, is_null_address, is_valid_address
from ensbid.core.contracts import ContractKind, ContractRef
from ensbid.core.errors import InvalidAddress, InvalidName
from ensbid.core.interfaces import LedgerClient
from ensbid.core.names import name_hash, normalize_name


class RegistryNameResolver:
    """
    Resolves hex addresses as-is and dotted names through their resolver's
    `addr` record.

    Implements NameResolver.
    """

    def __init__(self, ledger: LedgerClient, registry_address: bytes):
        self.ledger = ledger
        self.registry = ContractRef(ContractKind.REGISTRY, registry_address)

    def resolve(self, text: str) -> bytes:
        text = (text or "").strip()
        if not text:
            raise InvalidAddress("No address supplied")
        if is_valid_address(text):
            return hex_to_bytes(text)
        if "." not in text:
            raise InvalidAddress(f"{text!r} is neither an address nor a name")

        name = normalize_name(text)
        try:
            node = name_hash(name)
        except InvalidName as e:
            raise InvalidAddress(str(e))

        resolver = self.ledger.read(self.registry, "resolver", (node,))
        if is_null_address(resolver):
            raise InvalidAddress(f"No resolver for {name}")

        address = self.ledger.read(ContractRef(ContractKind.RESOLVER, resolver), "addr", (node,))
        if is_null_address(address):
            raise InvalidAddress(f"{name} does not resolve to an address")
        return address
