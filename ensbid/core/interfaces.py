"""
Collaborator interfaces.

The core depends only on these protocols; concrete implementations live in
ensbid.wallet (local keystore) and ensbid.chain (web3 ledger, registry
resolver). Tests substitute in-memory fakes.
"""

from typing import Any, Dict, Protocol, Sequence, Tuple, TYPE_CHECKING

from ensbid.core.contracts import ContractCall, ContractRef

if TYPE_CHECKING:
    from ensbid.core.session import TransactionSession


class Wallet(Protocol):
    """An unlocked signing handle for one or more accounts."""

    def sign_transaction(self, account: bytes, transaction: Dict[str, Any]) -> bytes:
        """Sign a transaction dict for `account`, returning the raw signed bytes."""
        ...


class WalletService(Protocol):
    """Finds and unlocks the local credential for an address."""

    def resolve(self, address: bytes, passphrase: str) -> Tuple[Wallet, bytes]:
        """
        Returns:
            (wallet, account) for the address

        Raises:
            CredentialUnavailable: no local keystore matches or unlocks
        """
        ...


class LedgerClient(Protocol):
    """Submits signed transactions and reads confirmed contract state."""

    def submit(self, session: "TransactionSession", call: ContractCall) -> bytes:
        """
        Sign `call` with the session's credential and broadcast it.

        Returns:
            32-byte transaction hash

        Raises:
            Rejected: the ledger refused the transaction
            NetworkError: the ledger could not be reached
        """
        ...

    def read(self, contract: ContractRef, method: str, args: Sequence[Any] = ()) -> Any:
        """
        Call a view method.

        Raises:
            NetworkError: the ledger could not be reached
        """
        ...


class NameResolver(Protocol):
    """Turns "name or address" text into a 20-byte address."""

    def resolve(self, text: str) -> bytes:
        """
        Raises:
            InvalidAddress: text is neither an address nor a resolvable name
        """
        ...
