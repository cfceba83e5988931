"""
Auction Orchestrator - drives a name through the registrar's auction.

    AVAILABLE --start--> AUCTION --(time)--> REVEAL --(time)--> OWNED
                          bid                 reveal             finalize
                                                                 set address

Every mutating operation follows the same order:

1. Validate and parse all local input (no network traffic yet).
2. Take the per-account lock for the signing address.
3. Re-read the name's state and check it permits the operation.
4. Build the session and, where needed, the commitment.
5. Submit once. Ledger rejections propagate unchanged; nothing is retried.

Attached value is only non-zero inside a single submission.
"""

import threading
from dataclasses import dataclass
from typing import Optional

from ensbid.crypto import bytes_to_hex, hex_to_bytes, is_null_address, HASH_SIZE
from ensbid.core.auction.commitment import (
    Bid,
    CommitmentEngine,
    SealedBid,
    effective_mask,
    salt_hash,
)
from ensbid.core.config import (
    NetworkConfig,
    OperationConfig,
    DEFAULT_BID,
    DEFAULT_DUMMIES,
)
from ensbid.core.contracts import ContractCall, ContractKind, ContractRef
from ensbid.core.errors import (
    InvalidAmount,
    InvalidInput,
    InvalidState,
    NoResolver,
    OwnerNotSet,
    RevealMismatch,
    SaltRequired,
)
from ensbid.core.interfaces import LedgerClient, NameResolver, WalletService
from ensbid.core.names import Name, validate_auction_name
from ensbid.core.session import AccountLocks, SessionBuilder, Submitter
from ensbid.core.state import AuctionEntry, LifecycleState, Operation, StateOracle
from ensbid.core.units import format_amount, parse_amount
from ensbid.utils.logger import get_logger

logger = get_logger("auction")


@dataclass(frozen=True)
class NameInfo:
    """Snapshot of a name for display."""
    name: Name
    state: LifecycleState
    entry: AuctionEntry
    owner: bytes
    resolver: bytes


class AuctionOrchestrator:
    """
    Top-level state machine for the name auction.

    Holds no per-operation state; all signing parameters arrive in an
    OperationConfig so concurrent operations do not interfere.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        wallets: WalletService,
        resolver: NameResolver,
        network: Optional[NetworkConfig] = None,
        engine: Optional[CommitmentEngine] = None,
        locks: Optional[AccountLocks] = None,
    ):
        """
        Args:
            ledger: Ledger client collaborator
            wallets: Wallet/account collaborator
            resolver: Name-or-address resolution collaborator
            network: Contract addresses and chain id
            engine: Commitment engine (inject a seeded one in tests)
            locks: Per-account locks, shareable between orchestrators
        """
        self.network = network or NetworkConfig()
        self.ledger = ledger
        self.resolver = resolver
        self.oracle = StateOracle(
            ledger,
            registry_address=self.network.registry,
            registrar_address=self.network.registrar,
            tld=self.network.tld,
        )
        self.engine = engine or CommitmentEngine()
        self.sessions = SessionBuilder(wallets, chain_id=self.network.chain_id)
        self.locks = locks or AccountLocks()
        self.submitter = Submitter(ledger, locks=self.locks)

    def close(self) -> None:
        self.submitter.shutdown()

    def __enter__(self) -> "AuctionOrchestrator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # =========================================================================
    # Auction phase
    # =========================================================================

    def start_auction(
        self,
        name: str,
        address: str,
        bid: str = DEFAULT_BID,
        mask: Optional[str] = None,
        salt: str = "",
        decoys: int = DEFAULT_DUMMIES,
        config: Optional[OperationConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Start the auction for a name, optionally placing a sealed bid.

        A zero bid only starts the auction. A non-zero bid starts it together
        with `decoys` dummy auctions and places the sealed bid, depositing
        max(mask, bid).

        Args:
            name: name to auction, e.g. "enstest.eth"
            address: bidding address (or a name resolving to it)
            bid: bid amount, e.g. "0.01 Ether"
            mask: amount to deposit, at least the bid
            salt: secret phrase needed to reveal the bid
            decoys: number of dummy auctions hiding the real name
            config: signing parameters
            cancel: set to abandon the operation before submission

        Returns:
            Transaction hash
        """
        config = config or OperationConfig()
        target = Name.parse(name)
        validate_auction_name(target)
        if not address:
            raise InvalidInput("Address from which to start the auction is required")
        if decoys < 0:
            raise InvalidInput("Number of dummies must not be negative")

        amount = self._parse_bid(bid)
        mask_amount = effective_mask(amount, mask)
        if amount > 0 and not salt:
            raise SaltRequired("Salt is required")

        bidder = self.resolver.resolve(address)
        sealed = Bid(bidder, target, amount, mask_amount, salt, decoys)

        with self.locks.hold(bidder):
            self.oracle.require_permitted(target, Operation.START_AUCTION)
            registrar = self.oracle.registrar()
            session = self.sessions.build(bidder, registrar, config)

            bundle = self.engine.build_bundle(sealed)
            if bundle is None:
                call = ContractCall(registrar, "startAuction", (target.label_hash,))
                tx_hash = self.submitter.submit(session, call, cancel)
            else:
                call = ContractCall(
                    registrar,
                    "startAuctionsAndBid",
                    (list(bundle.identifiers), bundle.real.seal),
                )
                with session.attached_value(sealed.mask):
                    tx_hash = self.submitter.submit(session, call, cancel)

        logger.info(
            f"Auction start: transactionid={tx_hash} name={target} "
            f"networkid={self.network.chain_id} address={bytes_to_hex(bidder)} "
            f"bid={format_amount(sealed.amount)} mask={format_amount(sealed.mask)}"
        )
        return tx_hash

    def place_bid(
        self,
        name: str,
        address: str,
        bid: str,
        mask: Optional[str] = None,
        salt: str = "",
        config: Optional[OperationConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Place a sealed bid on a name whose auction is running.

        Returns:
            Transaction hash
        """
        config = config or OperationConfig()
        target = Name.parse(name)
        validate_auction_name(target)
        if not address:
            raise InvalidInput("Address doing the bidding is required")

        amount = self._parse_bid(bid)
        if amount == 0:
            raise InvalidAmount("Bid must be greater than zero")
        mask_amount = effective_mask(amount, mask)
        if not salt:
            raise SaltRequired("Salt is required")

        bidder = self.resolver.resolve(address)
        sealed = Bid(bidder, target, amount, mask_amount, salt)

        with self.locks.hold(bidder):
            self.oracle.require_permitted(target, Operation.PLACE_BID)
            registrar = self.oracle.registrar()
            session = self.sessions.build(bidder, registrar, config)

            commitment = self.engine.build_commitment(sealed)
            call = ContractCall(registrar, "newBid", (commitment.seal,))
            with session.attached_value(sealed.mask):
                tx_hash = self.submitter.submit(session, call, cancel)

        logger.info(
            f"Bid placed: transactionid={tx_hash} name={target} "
            f"networkid={self.network.chain_id} address={bytes_to_hex(bidder)} "
            f"bid={format_amount(sealed.amount)} mask={format_amount(sealed.mask)}"
        )
        return tx_hash

    # =========================================================================
    # Reveal phase
    # =========================================================================

    def reveal_bid(
        self,
        name: str,
        address: str,
        bid: str,
        salt: str,
        commitment: Optional[str] = None,
        config: Optional[OperationConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Reveal a previously sealed bid.

        Args:
            commitment: optional 0x-hex seal recorded when bidding; if given
                the claimed bid must open it

        Raises:
            RevealMismatch: the bid, salt and address do not open the given
                commitment, or no sealed bid with that seal exists

        Returns:
            Transaction hash
        """
        config = config or OperationConfig()
        target = Name.parse(name)
        validate_auction_name(target)
        if not address:
            raise InvalidInput("Address that placed the bid is required")

        amount = self._parse_bid(bid)
        if amount == 0:
            raise InvalidAmount("Bid must be greater than zero")
        if not salt:
            raise SaltRequired("Salt is required")

        bidder = self.resolver.resolve(address)
        claimed = Bid(bidder, target, amount, salt=salt)

        if commitment:
            recorded = SealedBid(identifier=target.label_hash, seal=self._parse_seal(commitment))
            if not self.engine.verify_reveal(claimed, recorded):
                raise RevealMismatch("Bid and salt do not match the commitment")

        with self.locks.hold(bidder):
            self.oracle.require_permitted(target, Operation.REVEAL_BID)
            sealed = self.engine.build_commitment(claimed)
            if is_null_address(self.oracle.sealed_bid_deed(bidder, sealed.seal)):
                raise RevealMismatch(f"No sealed bid from {bytes_to_hex(bidder)} matches that bid and salt")

            registrar = self.oracle.registrar()
            session = self.sessions.build(bidder, registrar, config)
            call = ContractCall(registrar, "unsealBid", (target.label_hash, amount, salt_hash(salt)))
            tx_hash = self.submitter.submit(session, call, cancel)

        logger.info(
            f"Bid revealed: transactionid={tx_hash} name={target} "
            f"networkid={self.network.chain_id} address={bytes_to_hex(bidder)} "
            f"bid={format_amount(amount)}"
        )
        return tx_hash

    # =========================================================================
    # Ownership
    # =========================================================================

    def finalize_auction(
        self,
        name: str,
        address: str,
        config: Optional[OperationConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Finalize a won auction, transferring the name to the winner.

        Returns:
            Transaction hash
        """
        config = config or OperationConfig()
        target = Name.parse(name)
        validate_auction_name(target)
        if not address:
            raise InvalidInput("Address of the winning bidder is required")

        winner = self.resolver.resolve(address)

        with self.locks.hold(winner):
            self.oracle.require_permitted(target, Operation.FINALIZE_AUCTION)
            entry = self.oracle.entry(target)
            if not entry.has_deed:
                raise InvalidState(f"No deed recorded for {target}")
            if self.oracle.deed_owner(entry) != winner:
                raise InvalidState(f"{bytes_to_hex(winner)} is not the winning bidder for {target}")

            registrar = self.oracle.registrar()
            session = self.sessions.build(winner, registrar, config)
            call = ContractCall(registrar, "finalizeAuction", (target.label_hash,))
            tx_hash = self.submitter.submit(session, call, cancel)

        logger.info(
            f"Auction finalized: transactionid={tx_hash} name={target} "
            f"networkid={self.network.chain_id} address={bytes_to_hex(winner)}"
        )
        return tx_hash

    def set_address(
        self,
        name: str,
        target: str,
        config: Optional[OperationConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """
        Point a name at an address through its resolver.

        The transaction is signed by the registry owner of the name, whose
        keystore must be local and unlock with the configured passphrase.

        Args:
            name: owned name, e.g. "enstest.eth"
            target: address, or another name whose address to use

        Returns:
            Transaction hash
        """
        config = config or OperationConfig()
        subject = Name.parse(name)
        if not target:
            raise InvalidInput("Address to set is required")

        owner = self.oracle.owner(subject)

        with self.locks.hold(owner):
            self.oracle.require_permitted(subject, Operation.SET_ADDRESS)
            if is_null_address(owner):
                raise OwnerNotSet("Owner is not set")

            resolver_address = self.oracle.resolver(subject)
            if is_null_address(resolver_address):
                raise NoResolver("No resolver for that name")
            resolution = self.resolver.resolve(target)

            resolver = ContractRef(ContractKind.RESOLVER, resolver_address)
            session = self.sessions.build(owner, resolver, config)
            call = ContractCall(resolver, "setAddr", (subject.node, resolution))
            tx_hash = self.submitter.submit(session, call, cancel)

        logger.info(
            f"Address set: transactionid={tx_hash} networkid={self.network.chain_id} "
            f"name={subject} address={bytes_to_hex(resolution)}"
        )
        return tx_hash

    # =========================================================================
    # Queries
    # =========================================================================

    def describe(self, name: str) -> NameInfo:
        """Current state, auction entry, owner and resolver of a name."""
        subject = Name.parse(name)
        entry = self.oracle.entry(subject)
        return NameInfo(
            name=subject,
            state=entry.state,
            entry=entry,
            owner=self.oracle.owner(subject),
            resolver=self.oracle.resolver(subject),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _parse_bid(text: str) -> int:
        try:
            return parse_amount(text)
        except InvalidAmount as e:
            raise InvalidAmount(f"Invalid bid price: {e}")

    @staticmethod
    def _parse_seal(text: str) -> bytes:
        try:
            seal = hex_to_bytes(text)
        except ValueError:
            raise InvalidInput(f"Invalid commitment {text!r}")
        if len(seal) != HASH_SIZE:
            raise InvalidInput(f"Commitment must be {HASH_SIZE} bytes")
        return seal
